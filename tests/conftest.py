"""Shared fixtures: in-memory stores and a fixed clock"""

import pytest
from datetime import datetime, timedelta

from reliefguard.constants import AidCategory, TransactionStatus, TransactionType, VendorStatus
from reliefguard.models.category import CategoryLimit
from reliefguard.models.transaction import Transaction
from reliefguard.orchestrator.spend_authorizer import SpendAuthorizer
from reliefguard.stores.balance_oracle import StaticBalanceOracle
from reliefguard.stores.category_limit_store import InMemoryCategoryLimitStore
from reliefguard.stores.suspicion_store import InMemoryVendorSuspicionStore
from reliefguard.stores.transaction_store import InMemoryTransactionStore
from reliefguard.tools.vendor_tools import VendorSuspicionTracker
from reliefguard.utils.config_loader import AuthorizationSettings, FraudThresholds

# Wednesday afternoon, well clear of day/month boundaries
NOW = datetime(2025, 3, 12, 14, 0, 0)

BENEFICIARY = "beneficiary-1"
VENDOR = "vendor-1"
DONOR = "donor-1"


def make_txn(
    amount,
    minutes_ago=0,
    sender=BENEFICIARY,
    recipient=VENDOR,
    type=TransactionType.SPENDING,
    category=AidCategory.FOOD,
    status=TransactionStatus.CONFIRMED,
    now=NOW,
):
    return Transaction(
        type=type,
        sender=sender,
        recipient=recipient,
        amount=amount,
        category=category,
        status=status,
        created_at=now - timedelta(minutes=minutes_ago),
    )


def make_donation(amount, category=None, days_ago=3, recipient=BENEFICIARY):
    return make_txn(
        amount,
        minutes_ago=days_ago * 24 * 60,
        sender=DONOR,
        recipient=recipient,
        type=TransactionType.DONATION,
        category=category,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return InMemoryTransactionStore()


@pytest.fixture
def thresholds():
    """Default thresholds with whole-unit amounts (token_decimals = 0)"""
    return FraudThresholds.defaults(token_decimals=0)


@pytest.fixture
def settings():
    return AuthorizationSettings(
        token_decimals=0,
        query_timeout_seconds=1,
        oracle_max_retries=2,
        oracle_retry_base_delay=0,
        detector_workers=2,
    )


@pytest.fixture
def limit_store():
    return InMemoryCategoryLimitStore([
        CategoryLimit(category=AidCategory.FOOD, per_transaction_limit=200, daily_limit=500,
                      weekly_limit=2000, monthly_limit=8000),
        CategoryLimit(category=AidCategory.CLOTHING, per_transaction_limit=200, daily_limit=400,
                      weekly_limit=1200, monthly_limit=4000),
    ])


@pytest.fixture
def suspicion_store():
    return InMemoryVendorSuspicionStore()


@pytest.fixture
def tracker(suspicion_store):
    tracker = VendorSuspicionTracker(suspicion_store, auto_suspend_threshold=5)
    tracker.register_vendor(VENDOR, VendorStatus.APPROVED)
    return tracker


@pytest.fixture
def oracle():
    return StaticBalanceOracle()


@pytest.fixture
def authorizer(store, limit_store, oracle, tracker, thresholds, settings):
    return SpendAuthorizer(
        transaction_store=store,
        limit_store=limit_store,
        balance_oracle=oracle,
        suspicion_tracker=tracker,
        thresholds=thresholds,
        settings=settings,
    )
