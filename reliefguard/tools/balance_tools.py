"""Category balance allocation derived from the transaction history"""

from datetime import datetime
from typing import Dict, List, Optional
from reliefguard.constants import AidCategory, SPEND_TRANSACTION_TYPES, TransactionStatus, TransactionType
from reliefguard.models.category import CategoryBalance, CategoryBalanceReport
from reliefguard.stores.transaction_store import TransactionStore
from reliefguard.utils.logging import get_logger
from reliefguard.utils.metrics import balance_discrepancy

logger = get_logger(__name__)

STANDARD_CATEGORIES: List[AidCategory] = list(AidCategory)


def allocate_category_balances(
    received_by_category: Dict[AidCategory, int],
    spent_by_category: Dict[AidCategory, int],
    total_wallet_balance: int,
    categories: Optional[List[AidCategory]] = None,
) -> List[CategoryBalance]:
    """
    Split a wallet balance into per-category available balances.

    Categories with earmarked donations get max(0, received - spent).
    Categories without any earmarked donation share the unallocated part of
    the wallet (wallet - all earmarked donations) equally, in whole minor
    units; the remainder of the division is left unallocated.

    Args:
        received_by_category: Confirmed earmarked donations per category
        spent_by_category: Confirmed spends per category
        total_wallet_balance: Balance reported by the oracle
        categories: Categories to report (defaults to every aid category)

    Returns:
        One CategoryBalance per category, in category order
    """
    categories = categories or STANDARD_CATEGORIES

    unfunded = [c for c in categories if received_by_category.get(c, 0) == 0]
    fallback_share = 0
    if unfunded:
        unallocated = total_wallet_balance - sum(received_by_category.values())
        if unallocated > 0:
            fallback_share = unallocated // len(unfunded)

    balances = []
    for category in categories:
        received = received_by_category.get(category, 0)
        spent = spent_by_category.get(category, 0)

        if received == 0:
            available = fallback_share
        else:
            available = max(0, received - spent)

        balances.append(CategoryBalance(
            category=category,
            total_received=received,
            total_spent=spent,
            available_balance=available,
            uses_fallback_allocation=received == 0,
        ))

    return balances


def compute_category_balances(
    store: TransactionStore,
    beneficiary: str,
    total_wallet_balance: int,
    now: Optional[datetime] = None,
) -> CategoryBalanceReport:
    """
    Derive every category balance for a beneficiary.

    Recomputed from the store on every call: confirmed transactions since the
    previous call change the result, so nothing is cached.

    Args:
        store: Transaction store
        beneficiary: Beneficiary party identifier
        total_wallet_balance: Wallet balance from the balance oracle (minor units)
        now: Report timestamp

    Returns:
        CategoryBalanceReport with balances, unallocated amount and discrepancy
    """
    received = store.sum_by_category(
        recipient=beneficiary,
        types=[TransactionType.DONATION],
        statuses=[TransactionStatus.CONFIRMED],
    )
    spent = store.sum_by_category(
        sender=beneficiary,
        types=SPEND_TRANSACTION_TYPES,
        statuses=[TransactionStatus.CONFIRMED],
    )

    balances = allocate_category_balances(received, spent, total_wallet_balance)
    total_available = sum(b.available_balance for b in balances)
    discrepancy = abs(total_wallet_balance - total_available)

    balance_discrepancy.set(discrepancy)
    if discrepancy:
        logger.warning(
            "Category balances drift from wallet balance",
            beneficiary=beneficiary,
            wallet_balance=total_wallet_balance,
            total_available=total_available,
            discrepancy=discrepancy,
        )

    return CategoryBalanceReport(
        beneficiary=beneficiary,
        total_wallet_balance=total_wallet_balance,
        balances=balances,
        unallocated_balance=total_wallet_balance - sum(received.values()),
        discrepancy=discrepancy,
        computed_at=now or datetime.now(),
    )
