"""Fraud pattern detectors and the analyzer that runs them"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

import pandas as pd
from pydantic import BaseModel

from reliefguard.constants import (
    DETECTOR_WORKERS,
    QUERY_TIMEOUT_SECONDS,
    SPEND_TRANSACTION_TYPES,
    FraudPattern,
    SeverityLevel,
    TransactionStatus,
)
from reliefguard.models.fraud import FraudAnalysisResult, FraudFinding
from reliefguard.models.transaction import Transaction
from reliefguard.stores.transaction_store import TransactionStore
from reliefguard.tools.risk_tools import aggregate
from reliefguard.utils.config_loader import FraudThresholds
from reliefguard.utils.logging import get_logger
from reliefguard.utils.metrics import fraud_findings, risk_levels
from reliefguard.utils.retry_handler import call_with_timeout

logger = get_logger(__name__)

ACTIVE_STATUSES = (TransactionStatus.PENDING, TransactionStatus.CONFIRMED)


class DetectionContext(BaseModel):
    """Everything a detector may look at; detectors never touch the store"""

    candidate: Transaction
    sender_history: List[Transaction]
    recipient_history: List[Transaction]
    thresholds: FraudThresholds
    now: datetime

    class Config:
        frozen = True

    @property
    def start_of_day(self) -> datetime:
        return self.now.replace(hour=0, minute=0, second=0, microsecond=0)

    def sender_since(self, since: datetime, spend_only: bool = False) -> List[Transaction]:
        return [
            t for t in self.sender_history
            if t.created_at >= since and (not spend_only or t.is_spend)
        ]


def check_excessive_amount(ctx: DetectionContext) -> Dict[str, Any]:
    amount = ctx.candidate.amount
    return {
        'exceeds_limit': amount > ctx.thresholds.max_transaction_amount,
        'amount': amount,
        'threshold': ctx.thresholds.max_transaction_amount,
    }


def check_duplicate_transactions(ctx: DetectionContext) -> Dict[str, Any]:
    """Identical (sender, recipient, amount) within the trailing duplicate window"""
    window = ctx.thresholds.duplicate_window_seconds
    since = ctx.now - timedelta(seconds=window)
    duplicates = [
        t for t in ctx.sender_since(since)
        if t.recipient == ctx.candidate.recipient
        and t.amount == ctx.candidate.amount
        and t.transaction_id != ctx.candidate.transaction_id
    ]
    return {
        'is_duplicate': len(duplicates) > 0,
        'count': len(duplicates),
        'time_window_minutes': window / 60,
        'matching_transaction_ids': [t.transaction_id for t in duplicates],
    }


def check_rapid_succession(ctx: DetectionContext) -> Dict[str, Any]:
    """
    Transactions in the trailing hour, counting the candidate itself.

    Rapid when the hourly count exceeds the cap, or when more than
    rapid_pairs_threshold consecutive transactions are closer than
    rapid_succession_seconds.
    """
    recent = ctx.sender_since(ctx.now - timedelta(hours=1))
    times = pd.Series(sorted([t.created_at for t in recent] + [ctx.now]))
    gaps = times.diff().dropna()
    rapid_pairs = int((gaps < pd.Timedelta(seconds=ctx.thresholds.rapid_succession_seconds)).sum())
    count = len(times)

    return {
        'is_rapid': count > ctx.thresholds.max_transactions_per_hour
        or rapid_pairs > ctx.thresholds.rapid_pairs_threshold,
        'transaction_count': count,
        'rapid_pairs': rapid_pairs,
        'threshold': ctx.thresholds.max_transactions_per_hour,
    }


def check_daily_spending(ctx: DetectionContext) -> Dict[str, Any]:
    today = [
        t for t in ctx.sender_since(ctx.start_of_day, spend_only=True)
        if t.status in ACTIVE_STATUSES
    ]
    current_daily = sum(t.amount for t in today)
    projected = current_daily + ctx.candidate.amount
    return {
        'exceeds_limit': projected > ctx.thresholds.max_daily_amount,
        'current_daily': current_daily,
        'projected_total': projected,
        'limit': ctx.thresholds.max_daily_amount,
        'transaction_count': len(today),
    }


def check_vendor_pattern(ctx: DetectionContext) -> Dict[str, Any]:
    """Share of the sender's recent spends that went to the candidate's recipient"""
    since = ctx.now - timedelta(days=ctx.thresholds.vendor_concentration_window_days)
    recent = ctx.sender_since(since, spend_only=True)
    total = len(recent)

    if total < ctx.thresholds.vendor_concentration_min_transactions:
        return {'is_suspicious': False, 'reason': 'Insufficient transaction history', 'total_transactions': total}

    counts = pd.Series([t.recipient for t in recent]).value_counts()
    vendor_count = int(counts.get(ctx.candidate.recipient, 0))
    concentration = vendor_count / total

    return {
        'is_suspicious': concentration > ctx.thresholds.vendor_concentration_ratio,
        'concentration': round(concentration, 4),
        'vendor_transactions': vendor_count,
        'total_transactions': total,
        'threshold': ctx.thresholds.vendor_concentration_ratio,
    }


def check_vendor_daily_limits(ctx: DetectionContext) -> Dict[str, Any]:
    received_today = [
        t for t in ctx.recipient_history
        if t.is_spend and t.status in ACTIVE_STATUSES and t.created_at >= ctx.start_of_day
    ]
    current_daily = sum(t.amount for t in received_today)
    projected = current_daily + ctx.candidate.amount
    return {
        'exceeds_limit': projected > ctx.thresholds.max_vendor_daily_amount,
        'current_daily': current_daily,
        'projected_total': projected,
        'limit': ctx.thresholds.max_vendor_daily_amount,
        'transaction_count': len(received_today),
    }


def check_suspicious_timing(ctx: DetectionContext) -> Dict[str, Any]:
    """Recent activity confined to very few hours of the day (bot-like behaviour)"""
    recent = ctx.sender_since(ctx.now - timedelta(days=ctx.thresholds.timing_window_days))
    total = len(recent)

    if total < ctx.thresholds.timing_min_transactions:
        return {'is_suspicious': False, 'reason': 'Insufficient data', 'total_transactions': total}

    hour_counts = pd.Series([t.created_at.hour for t in recent]).value_counts()
    active_hours = len(hour_counts)
    max_share = int(hour_counts.max()) / total

    return {
        'is_suspicious': active_hours <= ctx.thresholds.timing_max_active_hours
        and max_share > ctx.thresholds.timing_concentration_ratio,
        'active_hours': active_hours,
        'max_hour_concentration': round(max_share, 4),
        'hour_distribution': {int(hour): int(count) for hour, count in hour_counts.items()},
        'total_transactions': total,
    }


class Detector(NamedTuple):
    pattern: FraudPattern
    check: Callable[[DetectionContext], Dict[str, Any]]
    trigger_key: str
    severity: SeverityLevel
    description: str
    is_warning: bool = False
    spend_only: bool = False


DETECTORS: Tuple[Detector, ...] = (
    Detector(FraudPattern.EXCESSIVE_AMOUNT, check_excessive_amount, 'exceeds_limit',
             SeverityLevel.HIGH, "Transaction amount exceeds maximum threshold"),
    Detector(FraudPattern.DUPLICATE_TRANSACTION, check_duplicate_transactions, 'is_duplicate',
             SeverityLevel.HIGH, "Potential duplicate transaction detected"),
    Detector(FraudPattern.RAPID_SUCCESSION, check_rapid_succession, 'is_rapid',
             SeverityLevel.MEDIUM, "Multiple transactions in rapid succession"),
    Detector(FraudPattern.EXCESSIVE_DAILY_SPENDING, check_daily_spending, 'exceeds_limit',
             SeverityLevel.HIGH, "Daily spending limit exceeded", spend_only=True),
    Detector(FraudPattern.UNUSUAL_VENDOR_PATTERN, check_vendor_pattern, 'is_suspicious',
             SeverityLevel.LOW, "Unusual vendor concentration pattern", is_warning=True, spend_only=True),
    Detector(FraudPattern.VENDOR_EXCESSIVE_DAILY, check_vendor_daily_limits, 'exceeds_limit',
             SeverityLevel.MEDIUM, "Vendor daily receiving limit exceeded", spend_only=True),
    Detector(FraudPattern.SUSPICIOUS_TIMING, check_suspicious_timing, 'is_suspicious',
             SeverityLevel.LOW, "Unusual transaction timing pattern", is_warning=True),
)


def run_detector(detector: Detector, ctx: DetectionContext) -> Optional[FraudFinding]:
    """Run one detector; None when its condition is false"""
    details = detector.check(ctx)
    if not details.get(detector.trigger_key):
        return None
    return FraudFinding(
        pattern=detector.pattern,
        severity=detector.severity,
        description=detector.description,
        details=details,
    )


class FraudPatternAnalyzer:
    """Runs every applicable detector over the sender/recipient history"""

    def __init__(
        self,
        store: TransactionStore,
        thresholds: FraudThresholds,
        query_timeout_seconds: float = QUERY_TIMEOUT_SECONDS,
        max_workers: int = DETECTOR_WORKERS,
    ):
        self.store = store
        self.thresholds = thresholds
        self.query_timeout_seconds = query_timeout_seconds
        self.max_workers = max_workers

    def load_context(self, candidate: Transaction, now: datetime) -> DetectionContext:
        """
        Read the history the detectors need.

        Raises:
            StoreUnavailableError: If a query fails or exceeds the timeout
        """
        sender_history = call_with_timeout(
            self.store.find,
            self.query_timeout_seconds,
            "sender_history",
            sender=candidate.sender,
            since=now - timedelta(days=self.thresholds.history_window_days),
            until=now,
        )
        recipient_history = call_with_timeout(
            self.store.find,
            self.query_timeout_seconds,
            "recipient_history",
            recipient=candidate.recipient,
            since=now.replace(hour=0, minute=0, second=0, microsecond=0),
            until=now,
        )
        return DetectionContext(
            candidate=candidate,
            sender_history=sender_history,
            recipient_history=recipient_history,
            thresholds=self.thresholds,
            now=now,
        )

    def detect(self, ctx: DetectionContext) -> Tuple[List[FraudFinding], List[FraudFinding]]:
        """Run detectors concurrently; results keep detector order"""
        detectors = [d for d in DETECTORS if ctx.candidate.is_spend or not d.spend_only]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [(d, executor.submit(run_detector, d, ctx)) for d in detectors]
            results = [(d, future.result()) for d, future in futures]

        flags, warnings = [], []
        for detector, finding in results:
            if finding is None:
                continue
            fraud_findings.labels(pattern=finding.pattern.value, severity=finding.severity.value).inc()
            (warnings if detector.is_warning else flags).append(finding)
        return flags, warnings

    def analyze(self, candidate: Transaction, now: Optional[datetime] = None) -> FraudAnalysisResult:
        """
        Analyze a candidate transaction for suspicious patterns

        Args:
            candidate: Transaction about to be recorded
            now: Evaluation time (defaults to now)

        Returns:
            FraudAnalysisResult with flags, warnings, risk level and recommendation

        Raises:
            StoreUnavailableError: If the history cannot be read
        """
        now = now or datetime.now()
        ctx = self.load_context(candidate, now)
        flags, warnings = self.detect(ctx)
        risk_level, recommendation = aggregate(flags, warnings)
        risk_levels.labels(risk_level=risk_level.value).inc()

        logger.info(
            "Fraud analysis complete",
            sender=candidate.sender,
            recipient=candidate.recipient,
            risk_level=risk_level.value,
            action=recommendation.action.value,
            flags=[f.pattern.value for f in flags],
            warnings=[w.pattern.value for w in warnings],
        )
        return FraudAnalysisResult(
            flags=flags,
            warnings=warnings,
            risk_level=risk_level,
            recommendation=recommendation,
        )
