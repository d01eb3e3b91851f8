"""Wallet balance oracles"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional
from reliefguard.constants import SPEND_TRANSACTION_TYPES, TransactionStatus, TransactionType
from reliefguard.stores.transaction_store import TransactionStore


class BalanceOracle(ABC):
    """Source of truth for a party's total wallet balance (minor units)"""

    @abstractmethod
    def get_balance(self, party: str) -> int:
        """Current wallet balance of the party"""


class StaticBalanceOracle(BalanceOracle):
    """Balances supplied explicitly, e.g. from a ledger snapshot"""

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._lock = threading.Lock()
        self._balances = dict(balances or {})

    def set_balance(self, party: str, balance: int) -> None:
        with self._lock:
            self._balances[party] = balance

    def get_balance(self, party: str) -> int:
        with self._lock:
            return self._balances.get(party, 0)


class LedgerBalanceOracle(BalanceOracle):
    """Balance derived from confirmed transactions: donations in minus spends out"""

    def __init__(self, store: TransactionStore):
        self.store = store

    def get_balance(self, party: str) -> int:
        received = self.store.sum_amount(
            recipient=party,
            types=[TransactionType.DONATION],
            statuses=[TransactionStatus.CONFIRMED],
        )
        spent = self.store.sum_amount(
            sender=party,
            types=SPEND_TRANSACTION_TYPES,
            statuses=[TransactionStatus.CONFIRMED],
        )
        return max(0, received - spent)
