"""Per-category spending limit enforcement"""

from datetime import datetime, timedelta
from typing import Dict, Optional
from reliefguard.constants import AidCategory, LimitType, SPEND_TRANSACTION_TYPES, TransactionStatus
from reliefguard.models.category import LimitCheckResult, LimitViolation
from reliefguard.stores.category_limit_store import CategoryLimitStore
from reliefguard.stores.transaction_store import TransactionStore
from reliefguard.utils.logging import get_logger

logger = get_logger(__name__)

LIMIT_CHECK_ORDER = (LimitType.PER_TRANSACTION, LimitType.DAILY, LimitType.WEEKLY, LimitType.MONTHLY)


def window_start(limit_type: LimitType, now: datetime) -> Optional[datetime]:
    """
    Start of the aggregation window for a limit type.

    daily: local midnight; weekly: trailing 7 days; monthly: first of the month.
    """
    if limit_type == LimitType.DAILY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if limit_type == LimitType.WEEKLY:
        return now - timedelta(days=7)
    if limit_type == LimitType.MONTHLY:
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return None


class SpendingLimitEnforcer:
    """Validates a proposed spend against category limits and windowed spend"""

    def __init__(self, transaction_store: TransactionStore, limit_store: CategoryLimitStore):
        self.transaction_store = transaction_store
        self.limit_store = limit_store

    def spent_in_window(self, beneficiary: str, category: AidCategory, since: datetime) -> int:
        """Confirmed spend by the beneficiary in a category since a point in time"""
        return self.transaction_store.sum_amount(
            sender=beneficiary,
            category=category,
            types=SPEND_TRANSACTION_TYPES,
            statuses=[TransactionStatus.CONFIRMED],
            since=since,
        )

    def check_spending_limits(
        self,
        beneficiary: str,
        category: AidCategory,
        amount: int,
        now: Optional[datetime] = None,
    ) -> LimitCheckResult:
        """
        Check a spend against the per-transaction, daily, weekly and monthly limits.

        All four checks are evaluated; the first failure in that order is the
        rejection reported to the caller.

        Args:
            beneficiary: Spending beneficiary
            category: Aid category
            amount: Requested amount (minor units)
            now: Evaluation time (defaults to now)

        Returns:
            LimitCheckResult (ok, or the rejecting LimitViolation)
        """
        now = now or datetime.now()
        limit = self.limit_store.get_limit_for_category(category)

        if limit is None:
            logger.debug("No active limit configured", category=category.value)
            return LimitCheckResult(ok=True, skipped_reason="no_limit_configured")

        if limit.is_emergency_override_active(now):
            logger.info("Emergency override active, skipping limits", category=category.value,
                        reason=limit.emergency_override.reason)
            return LimitCheckResult(ok=True, skipped_reason="emergency_override")

        spent: Dict[LimitType, int] = {LimitType.PER_TRANSACTION: 0}
        for limit_type in (LimitType.DAILY, LimitType.WEEKLY, LimitType.MONTHLY):
            spent[limit_type] = self.spent_in_window(beneficiary, category, window_start(limit_type, now))

        violations = []
        for limit_type in LIMIT_CHECK_ORDER:
            limit_value = limit.limit_for(limit_type)
            already_spent = spent[limit_type]
            if already_spent + amount > limit_value:
                violations.append(LimitViolation(
                    category=category,
                    limit_type=limit_type,
                    limit_value=limit_value,
                    already_spent=already_spent,
                    requested=amount,
                    remaining=max(0, limit_value - already_spent),
                ))

        if violations:
            first = violations[0]
            logger.info(
                "Spending limit exceeded",
                beneficiary=beneficiary,
                category=category.value,
                limit_type=first.limit_type.value,
                remaining=first.remaining,
                requested=amount,
            )
            return LimitCheckResult(ok=False, violation=first, violations=violations)

        return LimitCheckResult(ok=True)
