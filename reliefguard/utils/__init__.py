"""Utility modules"""

from .config_loader import load_config, save_config
from .errors import (
    ReliefGuardError,
    ValidationError,
    BusinessRuleViolation,
    InsufficientCategoryBalanceError,
    SpendingLimitExceededError,
    FraudBlockedError,
    StoreUnavailableError,
    VendorNotFoundError,
    StateManagerError,
    ConfigurationError
)

__all__ = [
    "load_config",
    "save_config",
    "ReliefGuardError",
    "ValidationError",
    "BusinessRuleViolation",
    "InsufficientCategoryBalanceError",
    "SpendingLimitExceededError",
    "FraudBlockedError",
    "StoreUnavailableError",
    "VendorNotFoundError",
    "StateManagerError",
    "ConfigurationError"
]
