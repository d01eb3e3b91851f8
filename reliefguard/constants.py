"""Constants and enums for the spend-authorization core"""

from enum import Enum


class AidCategory(str, Enum):
    """Aid categories that restrict how funds may be spent"""
    FOOD = "Food"
    MEDICAL = "Medical"
    SHELTER = "Shelter"
    WATER = "Water"
    CLOTHING = "Clothing"
    EMERGENCY_SUPPLIES = "Emergency Supplies"


class TransactionType(str, Enum):
    """Transaction kinds recorded in the transaction store"""
    DONATION = "donation"
    SPENDING = "spending"
    VENDOR_PAYMENT = "vendor_payment"


class TransactionStatus(str, Enum):
    """Settlement status of a transaction"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SeverityLevel(str, Enum):
    """Severity of a single fraud finding or vendor report"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    """Aggregated risk of a transaction"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecommendedAction(str, Enum):
    """Action recommended for a risk level"""
    ALLOW = "allow"
    MONITOR = "monitor"
    REVIEW = "review"
    BLOCK = "block"


class FraudPattern(str, Enum):
    """Fraud patterns emitted by the detectors"""
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    EXCESSIVE_AMOUNT = "excessive_amount"
    RAPID_SUCCESSION = "rapid_succession"
    UNUSUAL_VENDOR_PATTERN = "unusual_vendor_pattern"
    EXCESSIVE_DAILY_SPENDING = "excessive_daily_spending"
    SUSPICIOUS_TIMING = "suspicious_timing"
    VENDOR_EXCESSIVE_DAILY = "vendor_excessive_daily"


class VendorStatus(str, Enum):
    """Vendor verification status"""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class VendorFlagAction(str, Enum):
    """Outcome of flagging a vendor"""
    FLAGGED = "flagged"
    AUTO_SUSPENDED = "auto_suspended"


class LimitType(str, Enum):
    """Spending limit windows"""
    PER_TRANSACTION = "per_transaction"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ReasonCode(str, Enum):
    """Stable reason codes surfaced to callers"""
    INSUFFICIENT_CATEGORY_BALANCE = "INSUFFICIENT_CATEGORY_BALANCE"
    PER_TRANSACTION_LIMIT_EXCEEDED = "PER_TRANSACTION_LIMIT_EXCEEDED"
    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"
    WEEKLY_LIMIT_EXCEEDED = "WEEKLY_LIMIT_EXCEEDED"
    MONTHLY_LIMIT_EXCEEDED = "MONTHLY_LIMIT_EXCEEDED"
    FRAUD_BLOCKED = "FRAUD_BLOCKED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class NotificationEvent(str, Enum):
    """Events emitted to the notification layer"""
    SPEND_BLOCKED = "spend_blocked"
    SPEND_REQUIRES_REVIEW = "spend_requires_review"
    VENDOR_FLAGGED = "vendor_flagged"


LIMIT_REASON_CODES = {
    LimitType.PER_TRANSACTION: ReasonCode.PER_TRANSACTION_LIMIT_EXCEEDED,
    LimitType.DAILY: ReasonCode.DAILY_LIMIT_EXCEEDED,
    LimitType.WEEKLY: ReasonCode.WEEKLY_LIMIT_EXCEEDED,
    LimitType.MONTHLY: ReasonCode.MONTHLY_LIMIT_EXCEEDED,
}

# Transactions that draw down a beneficiary's category funds
SPEND_TRANSACTION_TYPES = (TransactionType.SPENDING, TransactionType.VENDOR_PAYMENT)

# Token precision (minor units per major unit = 10 ** TOKEN_DECIMALS)
DEFAULT_TOKEN_DECIMALS = 18

# Default fraud thresholds (major units)
DEFAULT_MAX_TRANSACTION_AMOUNT = 1000
DEFAULT_MAX_DAILY_AMOUNT = 5000
DEFAULT_MAX_VENDOR_DAILY_AMOUNT = 10000
DEFAULT_MAX_TRANSACTIONS_PER_HOUR = 10
DEFAULT_DUPLICATE_WINDOW_SECONDS = 300
DEFAULT_RAPID_SUCCESSION_SECONDS = 60
DEFAULT_RAPID_PAIRS_THRESHOLD = 2
DEFAULT_VENDOR_CONCENTRATION_RATIO = 0.8
DEFAULT_VENDOR_CONCENTRATION_MIN_TRANSACTIONS = 5
DEFAULT_VENDOR_CONCENTRATION_WINDOW_DAYS = 30
DEFAULT_TIMING_WINDOW_DAYS = 7
DEFAULT_TIMING_MIN_TRANSACTIONS = 3
DEFAULT_TIMING_MAX_ACTIVE_HOURS = 2
DEFAULT_TIMING_CONCENTRATION_RATIO = 0.8

# Vendor suspicion
AUTO_SUSPEND_THRESHOLD = 5

# Authorization SLA
QUERY_TIMEOUT_SECONDS = 5
ORACLE_MAX_RETRIES = 2
ORACLE_RETRY_BASE_DELAY = 0.5
DETECTOR_WORKERS = 4
