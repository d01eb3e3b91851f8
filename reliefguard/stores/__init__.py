"""External stores consumed by the authorization core"""

from .transaction_store import TransactionStore, InMemoryTransactionStore
from .category_limit_store import CategoryLimitStore, InMemoryCategoryLimitStore
from .balance_oracle import BalanceOracle, StaticBalanceOracle, LedgerBalanceOracle
from .suspicion_store import (
    VendorSuspicionStore,
    InMemoryVendorSuspicionStore,
    RedisVendorSuspicionStore,
    get_suspicion_store,
)

__all__ = [
    "TransactionStore",
    "InMemoryTransactionStore",
    "CategoryLimitStore",
    "InMemoryCategoryLimitStore",
    "BalanceOracle",
    "StaticBalanceOracle",
    "LedgerBalanceOracle",
    "VendorSuspicionStore",
    "InMemoryVendorSuspicionStore",
    "RedisVendorSuspicionStore",
    "get_suspicion_store",
]
