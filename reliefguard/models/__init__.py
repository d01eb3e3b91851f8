"""Data models for the spend-authorization core"""

from .transaction import Transaction
from .category import (
    CategoryBalance,
    CategoryBalanceReport,
    CategoryLimit,
    EmergencyOverride,
    LimitCheckResult,
    LimitViolation,
)
from .fraud import FraudAnalysisResult, FraudAnnotation, FraudFinding, Recommendation
from .vendor_profile import FlagVendorResult, FraudReport, VendorSuspicionProfile
from .spend import CategoryBalanceSnapshot, SpendRequest, SpendResult

__all__ = [
    "Transaction",
    "CategoryBalance",
    "CategoryBalanceReport",
    "CategoryLimit",
    "EmergencyOverride",
    "LimitCheckResult",
    "LimitViolation",
    "FraudAnalysisResult",
    "FraudAnnotation",
    "FraudFinding",
    "Recommendation",
    "FlagVendorResult",
    "FraudReport",
    "VendorSuspicionProfile",
    "CategoryBalanceSnapshot",
    "SpendRequest",
    "SpendResult",
]
