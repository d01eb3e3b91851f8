"""Configuration file loader with validation"""

import yaml
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field
from reliefguard import constants
from reliefguard.constants import AidCategory
from reliefguard.models.category import CategoryLimit
from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "rules.yaml"

REQUIRED_KEYS = ['version', 'currency', 'fraud_thresholds', 'category_limits', 'suspicion', 'authorization']


class FraudThresholds(BaseModel):
    """Immutable detector thresholds (monetary values in minor units)"""

    max_transaction_amount: int = Field(..., ge=0)
    max_daily_amount: int = Field(..., ge=0)
    max_vendor_daily_amount: int = Field(..., ge=0)
    max_transactions_per_hour: int = constants.DEFAULT_MAX_TRANSACTIONS_PER_HOUR
    duplicate_window_seconds: int = constants.DEFAULT_DUPLICATE_WINDOW_SECONDS
    rapid_succession_seconds: int = constants.DEFAULT_RAPID_SUCCESSION_SECONDS
    rapid_pairs_threshold: int = constants.DEFAULT_RAPID_PAIRS_THRESHOLD
    vendor_concentration_ratio: float = constants.DEFAULT_VENDOR_CONCENTRATION_RATIO
    vendor_concentration_min_transactions: int = constants.DEFAULT_VENDOR_CONCENTRATION_MIN_TRANSACTIONS
    vendor_concentration_window_days: int = constants.DEFAULT_VENDOR_CONCENTRATION_WINDOW_DAYS
    timing_window_days: int = constants.DEFAULT_TIMING_WINDOW_DAYS
    timing_min_transactions: int = constants.DEFAULT_TIMING_MIN_TRANSACTIONS
    timing_max_active_hours: int = constants.DEFAULT_TIMING_MAX_ACTIVE_HOURS
    timing_concentration_ratio: float = constants.DEFAULT_TIMING_CONCENTRATION_RATIO

    class Config:
        frozen = True

    @property
    def history_window_days(self) -> int:
        """Widest trailing window any detector reads"""
        return max(self.vendor_concentration_window_days, self.timing_window_days, 1)

    @classmethod
    def defaults(cls, token_decimals: int = constants.DEFAULT_TOKEN_DECIMALS) -> "FraudThresholds":
        scale = 10 ** token_decimals
        return cls(
            max_transaction_amount=constants.DEFAULT_MAX_TRANSACTION_AMOUNT * scale,
            max_daily_amount=constants.DEFAULT_MAX_DAILY_AMOUNT * scale,
            max_vendor_daily_amount=constants.DEFAULT_MAX_VENDOR_DAILY_AMOUNT * scale,
        )


class AuthorizationSettings(BaseModel):
    """Timeouts, retries and precision used by the spend authorizer"""

    token_decimals: int = Field(default=constants.DEFAULT_TOKEN_DECIMALS, ge=0)
    query_timeout_seconds: float = Field(default=constants.QUERY_TIMEOUT_SECONDS, gt=0)
    oracle_max_retries: int = Field(default=constants.ORACLE_MAX_RETRIES, ge=1)
    oracle_retry_base_delay: float = Field(default=constants.ORACLE_RETRY_BASE_DELAY, ge=0)
    detector_workers: int = Field(default=constants.DETECTOR_WORKERS, ge=1)
    auto_suspend_threshold: int = Field(default=constants.AUTO_SUSPEND_THRESHOLD, ge=1)

    class Config:
        frozen = True


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load YAML configuration file with validation.

    Args:
        config_path: Path to configuration file. Defaults to $RELIEFGUARD_CONFIG,
            then the bundled config/rules.yaml

    Returns:
        Dictionary with configuration

    Raises:
        ConfigurationError: If file doesn't exist or invalid YAML
    """
    config_path = config_path or os.getenv("RELIEFGUARD_CONFIG") or str(DEFAULT_CONFIG_PATH)

    try:
        config_file = Path(config_path)

        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration must be a mapping: {config_path}")

        # Validate required keys
        missing_keys = [key for key in REQUIRED_KEYS if key not in config]

        if missing_keys:
            raise ConfigurationError(f"Missing required configuration keys: {missing_keys}")

        return config

    except ConfigurationError:
        raise
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
    except Exception as e:
        raise ConfigurationError(f"Error loading configuration: {e}")


def save_config(config_path: str, config: Dict[str, Any]) -> None:
    """
    Save configuration to YAML file

    Args:
        config_path: Path to configuration file
        config: Configuration dictionary

    Raises:
        ConfigurationError: If unable to write file
    """
    try:
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    except Exception as e:
        raise ConfigurationError(f"Error saving configuration: {e}")


def scale_exact(amount: Decimal, token_decimals: int) -> Optional[int]:
    """
    Shift a finite decimal by token_decimals places using integer arithmetic.

    Returns None when the value has more fractional digits than the token supports.
    """
    sign, digits, exponent = amount.as_tuple()
    coefficient = int("".join(str(d) for d in digits) or "0")
    shift = exponent + token_decimals
    if shift >= 0:
        scaled = coefficient * 10 ** shift
    else:
        scaled, remainder = divmod(coefficient, 10 ** -shift)
        if remainder:
            return None
    return -scaled if sign else scaled


def to_minor_units(value: Any, token_decimals: int) -> int:
    """
    Convert a major-unit amount (number or decimal string) to integer minor units.

    Raises:
        ConfigurationError: If the value is not a number or has more precision
            than the token supports
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"Not a number: {value!r}")
    if not amount.is_finite():
        raise ConfigurationError(f"Not a finite number: {value!r}")

    scaled = scale_exact(amount, token_decimals)
    if scaled is None:
        raise ConfigurationError(f"{value!r} has more than {token_decimals} decimal places")
    return scaled


def get_token_decimals(config: Dict[str, Any]) -> int:
    return int(config.get('currency', {}).get('token_decimals', constants.DEFAULT_TOKEN_DECIMALS))


def get_fraud_thresholds(config: Dict[str, Any]) -> FraudThresholds:
    """Build the immutable detector thresholds from a loaded configuration"""
    decimals = get_token_decimals(config)
    raw = dict(config.get('fraud_thresholds', {}))

    for key in ('max_transaction_amount', 'max_daily_amount', 'max_vendor_daily_amount'):
        if key not in raw:
            raise ConfigurationError(f"Missing fraud threshold: {key}")
        raw[key] = to_minor_units(raw[key], decimals)

    try:
        return FraudThresholds(**raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid fraud thresholds: {e}")


def get_authorization_settings(config: Dict[str, Any]) -> AuthorizationSettings:
    """Build authorizer settings from a loaded configuration"""
    raw = dict(config.get('authorization', {}))
    raw['token_decimals'] = get_token_decimals(config)
    raw['auto_suspend_threshold'] = config.get('suspicion', {}).get(
        'auto_suspend_threshold', constants.AUTO_SUSPEND_THRESHOLD
    )

    try:
        return AuthorizationSettings(**raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid authorization settings: {e}")


def get_default_category_limits(config: Dict[str, Any]) -> List[CategoryLimit]:
    """
    Build the default per-category limits

    Args:
        config: Full configuration dictionary

    Returns:
        One CategoryLimit per configured category (minor units)
    """
    decimals = get_token_decimals(config)
    limits = []

    for name, values in config.get('category_limits', {}).items():
        try:
            category = AidCategory(name)
        except ValueError:
            raise ConfigurationError(f"Unknown aid category in category_limits: {name}")

        try:
            limits.append(CategoryLimit(
                category=category,
                per_transaction_limit=to_minor_units(values['per_transaction'], decimals),
                daily_limit=to_minor_units(values['daily'], decimals),
                weekly_limit=to_minor_units(values['weekly'], decimals),
                monthly_limit=to_minor_units(values['monthly'], decimals),
            ))
        except KeyError as e:
            raise ConfigurationError(f"Missing limit {e} for category {name}")

    return limits
