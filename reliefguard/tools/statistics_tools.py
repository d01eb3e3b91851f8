"""Fraud statistics for the admin dashboard"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from reliefguard.constants import TransactionStatus, VendorStatus
from reliefguard.stores.transaction_store import TransactionStore
from reliefguard.tools.vendor_tools import VendorSuspicionTracker
from reliefguard.utils.logging import get_logger

logger = get_logger(__name__)

TIMEFRAME_DAYS = {'7d': 7, '30d': 30, '90d': 90}
TOP_PATTERN_COUNT = 5


def suspicious_transactions_frame(store: TransactionStore, since: datetime) -> pd.DataFrame:
    """One row per flagged transaction annotated since `since`"""
    records = []
    for annotation in store.annotations(since=since):
        if not annotation.flags:
            continue
        txn = store.get(annotation.transaction_id)
        if txn is None:
            continue
        records.append({
            'transaction_id': txn.transaction_id,
            'status': txn.status.value,
            'requires_review': annotation.requires_review,
            'risk_level': annotation.risk_level.value,
            'created_at': txn.created_at,
            'patterns': [f.pattern.value for f in annotation.flags],
        })

    return pd.DataFrame(
        records,
        columns=['transaction_id', 'status', 'requires_review', 'risk_level', 'created_at', 'patterns'],
    )


def analyze_fraud_patterns(suspicious: pd.DataFrame, top: int = TOP_PATTERN_COUNT) -> List[Dict[str, Any]]:
    """Most frequent flag patterns, most common first"""
    if suspicious.empty:
        return []
    counts = suspicious['patterns'].explode().dropna().value_counts().head(top)
    return [{'pattern': pattern, 'count': int(count)} for pattern, count in counts.items()]


def calculate_fraud_trends(suspicious: pd.DataFrame) -> List[Dict[str, Any]]:
    """Flagged transactions per calendar day, oldest first"""
    if suspicious.empty:
        return []
    days = pd.to_datetime(suspicious['created_at']).dt.strftime('%Y-%m-%d')
    daily = days.value_counts().sort_index()
    return [{'date': date, 'count': int(count)} for date, count in daily.items()]


def get_fraud_statistics(
    transaction_store: TransactionStore,
    tracker: VendorSuspicionTracker,
    timeframe: str = '30d',
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Summarize fraud activity over a timeframe

    Args:
        transaction_store: Transaction store with fraud annotations
        tracker: Vendor suspicion tracker
        timeframe: '7d', '30d' or '90d' (anything else is treated as 90 days)
        now: Report time (defaults to now)

    Returns:
        {
            'timeframe': str,
            'flagged_vendors': {'total', 'suspended', 'under_review'},
            'suspicious_transactions': {'total', 'blocked', 'under_review'},
            'patterns': [{'pattern', 'count'}, ...],
            'trends': [{'date', 'count'}, ...]
        }
    """
    now = now or datetime.now()
    days = TIMEFRAME_DAYS.get(timeframe, 90)
    start = now - timedelta(days=days)

    flagged_vendors = tracker.list_flagged_vendors(since=start)
    suspicious = suspicious_transactions_frame(transaction_store, start)

    stats = {
        'timeframe': timeframe,
        'flagged_vendors': {
            'total': len(flagged_vendors),
            'suspended': sum(1 for v in flagged_vendors if v.status == VendorStatus.SUSPENDED),
            'under_review': sum(1 for v in flagged_vendors if v.status == VendorStatus.UNDER_REVIEW),
        },
        'suspicious_transactions': {
            'total': len(suspicious),
            'blocked': int((suspicious['status'] == TransactionStatus.FAILED.value).sum()),
            'under_review': int(suspicious['requires_review'].astype(bool).sum()),
        },
        'patterns': analyze_fraud_patterns(suspicious),
        'trends': calculate_fraud_trends(suspicious),
    }

    logger.info("Fraud statistics computed", timeframe=timeframe,
                suspicious_transactions=stats['suspicious_transactions']['total'],
                flagged_vendors=stats['flagged_vendors']['total'])
    return stats
