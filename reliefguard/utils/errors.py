"""Custom exceptions for the spend-authorization core"""

from typing import Any, Dict, List, Optional

from reliefguard.constants import LIMIT_REASON_CODES, ReasonCode


class ReliefGuardError(Exception):
    """Base exception for spend-authorization errors"""

    reason_code: ReasonCode = ReasonCode.SYSTEM_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serializable payload for the caller"""
        return {
            "reason_code": self.reason_code.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ReliefGuardError):
    """Malformed spend request"""

    reason_code = ReasonCode.VALIDATION_ERROR


class BusinessRuleViolation(ReliefGuardError):
    """Balance or limit exceeded"""
    pass


class InsufficientCategoryBalanceError(BusinessRuleViolation):
    """Requested amount exceeds the category's available balance"""

    reason_code = ReasonCode.INSUFFICIENT_CATEGORY_BALANCE

    def __init__(self, category: str, available: int, requested: int):
        super().__init__(
            f"Insufficient {category} balance: requested {requested}, available {available}",
            details={
                "category": category,
                "available": available,
                "requested": requested,
                "shortfall": requested - available,
            },
        )
        self.category = category
        self.available = available
        self.requested = requested


class SpendingLimitExceededError(BusinessRuleViolation):
    """A category spending limit would be exceeded"""

    def __init__(self, violation):
        self.violation = violation
        self.reason_code = LIMIT_REASON_CODES[violation.limit_type]
        super().__init__(
            f"{violation.limit_type.value} limit exceeded for {violation.category.value}: "
            f"remaining {violation.remaining}, requested {violation.requested}",
            details=violation.model_dump(mode="json"),
        )


class FraudBlockedError(ReliefGuardError):
    """Risk aggregation recommended blocking the transaction"""

    reason_code = ReasonCode.FRAUD_BLOCKED

    def __init__(self, risk_level: str, flags: List[str]):
        super().__init__(
            "Transaction blocked due to fraud risk",
            details={"risk_level": risk_level, "flags": flags},
        )
        self.risk_level = risk_level
        self.flags = flags


class StoreUnavailableError(ReliefGuardError):
    """Transaction store, limit store or balance oracle failed or timed out"""

    reason_code = ReasonCode.SYSTEM_ERROR

    def __init__(self, operation: str, cause: str):
        super().__init__(
            f"{operation} unavailable: {cause}",
            details={"operation": operation, "cause": cause},
        )
        self.operation = operation


class VendorNotFoundError(ReliefGuardError):
    """Vendor has no suspicion profile"""

    reason_code = ReasonCode.VALIDATION_ERROR


class StateManagerError(ReliefGuardError):
    """Vendor state backend errors"""
    pass


class ConfigurationError(ReliefGuardError):
    """Configuration loading errors"""
    pass
