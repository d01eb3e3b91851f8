"""Unit tests for category spending limit enforcement"""

import pytest
from datetime import datetime, timedelta
from reliefguard.constants import AidCategory, LimitType, TransactionStatus, TransactionType
from reliefguard.models.category import CategoryLimit, EmergencyOverride
from reliefguard.stores.category_limit_store import InMemoryCategoryLimitStore
from reliefguard.tools.limit_tools import SpendingLimitEnforcer, window_start
from conftest import BENEFICIARY, NOW, make_txn


def food_limit(**overrides):
    values = dict(category=AidCategory.FOOD, per_transaction_limit=100, daily_limit=50,
                  weekly_limit=1000, monthly_limit=5000)
    values.update(overrides)
    return CategoryLimit(**values)


@pytest.fixture
def enforcer(store):
    return SpendingLimitEnforcer(store, InMemoryCategoryLimitStore([food_limit()]))


def test_daily_limit_boundary(store, enforcer):
    """Daily limit 50 with 40 spent today: 10 passes, 11 fails with remaining 10"""
    store.append(make_txn(40, minutes_ago=60))

    assert enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 10, now=NOW).ok

    result = enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 11, now=NOW)
    assert not result.ok
    assert result.violation.limit_type == LimitType.DAILY
    assert result.violation.remaining == 10
    assert result.violation.already_spent == 40
    assert result.violation.limit_value == 50


def test_yesterday_does_not_count_toward_daily(store, enforcer):
    """Spend before local midnight is outside the daily window"""
    store.append(make_txn(45, minutes_ago=15 * 60))  # 23:00 the previous day

    assert enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 45, now=NOW).ok


def test_per_transaction_limit_reported_first(store, enforcer):
    """When several limits fail the per-transaction violation is the rejection"""
    result = enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 150, now=NOW)

    assert not result.ok
    assert result.violation.limit_type == LimitType.PER_TRANSACTION
    assert [v.limit_type for v in result.violations] == [LimitType.PER_TRANSACTION, LimitType.DAILY]


def test_weekly_limit_uses_trailing_seven_days(store):
    """Weekly window is the trailing seven days"""
    enforcer = SpendingLimitEnforcer(store, InMemoryCategoryLimitStore([
        food_limit(daily_limit=1000, weekly_limit=100)
    ]))
    store.append(make_txn(60, minutes_ago=6 * 24 * 60))
    store.append(make_txn(60, minutes_ago=8 * 24 * 60))

    assert enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 40, now=NOW).ok
    result = enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 41, now=NOW)
    assert result.violation.limit_type == LimitType.WEEKLY


def test_monthly_limit_starts_on_first_of_month(store):
    """Monthly window starts at local midnight on the first"""
    enforcer = SpendingLimitEnforcer(store, InMemoryCategoryLimitStore([
        food_limit(daily_limit=1000, weekly_limit=1000, monthly_limit=100)
    ]))
    store.append(make_txn(90, minutes_ago=9 * 24 * 60))   # March 3rd
    store.append(make_txn(90, minutes_ago=12 * 24 * 60))  # February 28th

    result = enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 20, now=NOW)
    assert result.violation.limit_type == LimitType.MONTHLY
    assert result.violation.remaining == 10


def test_only_confirmed_spends_count(store, enforcer):
    """Pending spends and donations do not consume limits"""
    store.append(make_txn(40, status=TransactionStatus.PENDING))
    store.append(make_txn(40, type=TransactionType.DONATION, sender="donor", recipient=BENEFICIARY))

    assert enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 50, now=NOW).ok


def test_vendor_payments_consume_limits(store, enforcer):
    """Vendor-initiated purchases count like beneficiary spends"""
    store.append(make_txn(40, type=TransactionType.VENDOR_PAYMENT))

    assert not enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 11, now=NOW).ok


def test_no_limit_configured(store):
    """Categories without an active limit are unrestricted"""
    enforcer = SpendingLimitEnforcer(store, InMemoryCategoryLimitStore([food_limit(is_active=False)]))

    result = enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 10 ** 9, now=NOW)
    assert result.ok
    assert result.skipped_reason == "no_limit_configured"


def test_emergency_override_skips_limits(store):
    """An active override lifts every limit until it expires"""
    override = EmergencyOverride(active=True, reason="Flood response", expiry=NOW + timedelta(days=1))
    enforcer = SpendingLimitEnforcer(store, InMemoryCategoryLimitStore([food_limit(emergency_override=override)]))

    result = enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 10 ** 6, now=NOW)
    assert result.ok
    assert result.skipped_reason == "emergency_override"

    later = enforcer.check_spending_limits(BENEFICIARY, AidCategory.FOOD, 10 ** 6, now=NOW + timedelta(days=2))
    assert not later.ok


def test_window_start():
    """Window boundaries for each limit type"""
    now = datetime(2025, 3, 12, 14, 30)

    assert window_start(LimitType.DAILY, now) == datetime(2025, 3, 12)
    assert window_start(LimitType.WEEKLY, now) == datetime(2025, 3, 5, 14, 30)
    assert window_start(LimitType.MONTHLY, now) == datetime(2025, 3, 1)
    assert window_start(LimitType.PER_TRANSACTION, now) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
