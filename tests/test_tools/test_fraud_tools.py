"""Unit tests for fraud pattern detectors and the analyzer"""

import pytest
from datetime import timedelta
from reliefguard.constants import FraudPattern, RecommendedAction, RiskLevel, TransactionType
from reliefguard.tools.fraud_tools import (
    DetectionContext,
    FraudPatternAnalyzer,
    check_daily_spending,
    check_duplicate_transactions,
    check_excessive_amount,
    check_rapid_succession,
    check_suspicious_timing,
    check_vendor_daily_limits,
    check_vendor_pattern,
)
from reliefguard.utils.config_loader import FraudThresholds
from reliefguard.utils.errors import StoreUnavailableError
from conftest import BENEFICIARY, NOW, VENDOR, make_txn


def context(candidate, sender_history=(), recipient_history=(), thresholds=None):
    return DetectionContext(
        candidate=candidate,
        sender_history=list(sender_history),
        recipient_history=list(recipient_history),
        thresholds=thresholds or FraudThresholds.defaults(token_decimals=0),
        now=NOW,
    )


# Single-transaction checks

def test_excessive_amount():
    """Amounts above the single-transaction threshold are flagged"""
    assert check_excessive_amount(context(make_txn(1001)))['exceeds_limit'] is True
    assert check_excessive_amount(context(make_txn(1000)))['exceeds_limit'] is False


def test_duplicate_within_window():
    """Same recipient and amount five minutes earlier is a duplicate"""
    earlier = make_txn(25, minutes_ago=5)
    result = check_duplicate_transactions(context(make_txn(25), [earlier]))

    assert result['is_duplicate'] is True
    assert result['count'] == 1
    assert result['time_window_minutes'] == 5
    assert result['matching_transaction_ids'] == [earlier.transaction_id]


def test_duplicate_outside_window():
    """Six minutes earlier is outside the duplicate window"""
    result = check_duplicate_transactions(context(make_txn(25), [make_txn(25, minutes_ago=6)]))
    assert result['is_duplicate'] is False


def test_duplicate_requires_same_recipient_and_amount():
    """Different amount or recipient is not a duplicate"""
    history = [make_txn(26, minutes_ago=1), make_txn(25, minutes_ago=1, recipient="vendor-2")]
    assert check_duplicate_transactions(context(make_txn(25), history))['is_duplicate'] is False


# Velocity checks

def test_rapid_succession_eleventh_transaction():
    """Ten widely spaced transactions in the hour plus the candidate exceed the cap"""
    history = [make_txn(10 + i, minutes_ago=5 * (i + 1)) for i in range(10)]
    result = check_rapid_succession(context(make_txn(99), history))

    assert result['is_rapid'] is True
    assert result['transaction_count'] == 11
    assert result['rapid_pairs'] == 0


def test_rapid_succession_ninth_transaction():
    """Eight spaced transactions plus the candidate stay under the cap"""
    history = [make_txn(10 + i, minutes_ago=6 * (i + 1)) for i in range(8)]
    result = check_rapid_succession(context(make_txn(99), history))

    assert result['is_rapid'] is False
    assert result['transaction_count'] == 9


def test_rapid_succession_close_pairs():
    """More than two sub-minute gaps trip the detector even at low volume"""
    history = [make_txn(10 + i, minutes_ago=(i + 1) / 6) for i in range(3)]  # 10s apart
    result = check_rapid_succession(context(make_txn(99), history))

    assert result['is_rapid'] is True
    assert result['rapid_pairs'] == 3


def test_daily_spending():
    """Today's spend plus the candidate above the daily cap is flagged"""
    history = [make_txn(2500, minutes_ago=120), make_txn(2000, minutes_ago=60)]

    assert check_daily_spending(context(make_txn(600), history))['exceeds_limit'] is True
    assert check_daily_spending(context(make_txn(500), history))['exceeds_limit'] is False


def test_daily_spending_ignores_yesterday():
    """Only spend since local midnight counts"""
    history = [make_txn(4900, minutes_ago=15 * 60)]
    result = check_daily_spending(context(make_txn(600), history))

    assert result['exceeds_limit'] is False
    assert result['current_daily'] == 0


# Pattern checks

def test_vendor_concentration():
    """All recent spends going to one vendor is a concentration warning"""
    history = [make_txn(10, minutes_ago=60 * 24 * (i + 1)) for i in range(5)]
    result = check_vendor_pattern(context(make_txn(10), history))

    assert result['is_suspicious'] is True
    assert result['concentration'] == 1.0


def test_vendor_concentration_needs_history():
    """Fewer than five recent spends is not enough to judge"""
    history = [make_txn(10, minutes_ago=60 * 24 * (i + 1)) for i in range(4)]
    result = check_vendor_pattern(context(make_txn(10), history))

    assert result['is_suspicious'] is False
    assert result['reason'] == 'Insufficient transaction history'


def test_vendor_concentration_spread():
    """Spends spread over vendors stay below the ratio"""
    history = [
        make_txn(10, minutes_ago=60 * 24 * (i + 1), recipient=VENDOR if i % 2 else "vendor-2")
        for i in range(6)
    ]
    assert check_vendor_pattern(context(make_txn(10), history))['is_suspicious'] is False


def test_vendor_daily_limits():
    """Vendor receiving above its daily cap is flagged"""
    received = [make_txn(4750, minutes_ago=30, sender=f"beneficiary-{i}") for i in range(2)]

    assert check_vendor_daily_limits(context(make_txn(600), recipient_history=received))['exceeds_limit'] is True
    assert check_vendor_daily_limits(context(make_txn(500), recipient_history=received))['exceeds_limit'] is False


def test_suspicious_timing():
    """Activity confined to a single hour of the day is bot-like"""
    history = [make_txn(10, minutes_ago=60 * 24 * (i + 1)) for i in range(3)]
    result = check_suspicious_timing(context(make_txn(10), history))

    assert result['is_suspicious'] is True
    assert result['active_hours'] == 1
    assert result['hour_distribution'] == {14: 3}


def test_suspicious_timing_spread_hours():
    """Activity across many hours is normal"""
    history = [make_txn(10, minutes_ago=60 * 24 + 60 * i * 5) for i in range(4)]
    assert check_suspicious_timing(context(make_txn(10), history))['is_suspicious'] is False


# Analyzer

def test_analyzer_clean_transaction(store, thresholds):
    """No history, ordinary amount: low risk, allow"""
    analyzer = FraudPatternAnalyzer(store, thresholds, query_timeout_seconds=1, max_workers=2)
    result = analyzer.analyze(make_txn(25), now=NOW)

    assert result.risk_level == RiskLevel.LOW
    assert result.recommendation.action == RecommendedAction.ALLOW
    assert result.flags == []
    assert not result.is_suspicious


def test_analyzer_two_high_flags_block(store, thresholds):
    """Excessive amount plus a duplicate is critical"""
    store.append(make_txn(1500, minutes_ago=2))
    analyzer = FraudPatternAnalyzer(store, thresholds, query_timeout_seconds=1, max_workers=2)

    result = analyzer.analyze(make_txn(1500), now=NOW)
    patterns = [f.pattern for f in result.flags]

    assert FraudPattern.EXCESSIVE_AMOUNT in patterns
    assert FraudPattern.DUPLICATE_TRANSACTION in patterns
    assert result.risk_level == RiskLevel.CRITICAL
    assert result.recommendation.action == RecommendedAction.BLOCK


def test_analyzer_ignores_other_senders(store, thresholds):
    """Only the sender's history feeds the sender checks"""
    store.append(make_txn(25, minutes_ago=1, sender="someone-else"))
    analyzer = FraudPatternAnalyzer(store, thresholds, query_timeout_seconds=1, max_workers=2)

    assert analyzer.analyze(make_txn(25), now=NOW).risk_level == RiskLevel.LOW


def test_analyzer_skips_spend_only_detectors_for_donations(store, thresholds):
    """Daily spending does not apply to donations"""
    analyzer = FraudPatternAnalyzer(store, thresholds, query_timeout_seconds=1, max_workers=2)
    donation = make_txn(900, sender="donor-1", recipient=BENEFICIARY, type=TransactionType.DONATION)
    store.append(make_txn(4500, minutes_ago=60, sender="donor-1", recipient=BENEFICIARY,
                          type=TransactionType.DONATION))

    result = analyzer.analyze(donation, now=NOW)
    assert FraudPattern.EXCESSIVE_DAILY_SPENDING not in [f.pattern for f in result.flags]


def test_analyzer_store_failure_raises(thresholds):
    """History read failures surface as StoreUnavailableError"""
    class BrokenStore:
        def find(self, **filters):
            raise ConnectionError("store down")

    analyzer = FraudPatternAnalyzer(BrokenStore(), thresholds, query_timeout_seconds=1)
    with pytest.raises(StoreUnavailableError):
        analyzer.analyze(make_txn(25), now=NOW)


def test_analyzer_candidate_time_window(store, thresholds):
    """Transactions after the evaluation time are not history"""
    store.append(make_txn(25, minutes_ago=-1))
    analyzer = FraudPatternAnalyzer(store, thresholds, query_timeout_seconds=1)

    result = analyzer.analyze(make_txn(25), now=NOW)
    assert FraudPattern.DUPLICATE_TRANSACTION not in [f.pattern for f in result.flags]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
