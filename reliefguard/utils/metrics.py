"""Prometheus metrics definitions"""

from prometheus_client import Counter, Histogram, Gauge


# Authorization pipeline
spend_authorizations = Counter(
    'spend_authorizations_total',
    'Spend authorization outcomes',
    labelnames=['outcome']  # confirmed, pending, rejected, blocked, fail_closed
)

authorization_latency = Histogram(
    'spend_authorization_latency_seconds',
    'Time to authorize a spend request',
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5]
)

limit_rejections = Counter(
    'spending_limit_rejections_total',
    'Spend requests rejected by a category limit',
    labelnames=['limit_type', 'category']
)

insufficient_balance_rejections = Counter(
    'insufficient_category_balance_total',
    'Spend requests rejected for insufficient category balance',
    labelnames=['category']
)

# Fraud analysis
fraud_findings = Counter(
    'fraud_findings_total',
    'Fraud flags and warnings raised by detectors',
    labelnames=['pattern', 'severity']
)

risk_levels = Counter(
    'fraud_risk_levels_total',
    'Aggregated risk levels',
    labelnames=['risk_level']
)

# Vendor suspicion
vendor_flags = Counter(
    'vendor_flags_total',
    'Vendor suspicion flags',
    labelnames=['action']  # flagged, auto_suspended
)

# Infrastructure
store_failures = Counter(
    'store_failures_total',
    'External store or oracle failures (fail closed)',
    labelnames=['operation']
)

balance_discrepancy = Gauge(
    'category_balance_discrepancy',
    'Drift between wallet balance and summed category balances (minor units)'
)
