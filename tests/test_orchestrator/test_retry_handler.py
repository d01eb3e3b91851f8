"""Tests for retry and timeout helpers"""

import time
import pytest
from reliefguard.utils.errors import StoreUnavailableError, ValidationError
from reliefguard.utils.retry_handler import call_with_timeout, retry_with_exponential_backoff


def test_retry_handler():
    """Test retry logic with exponential backoff"""
    attempts = []

    def failing_func():
        attempts.append(1)
        if len(attempts) < 3:
            raise Exception("Test failure")
        return "success"

    result = retry_with_exponential_backoff(failing_func, max_retries=5, base_delay=0)
    assert result == "success"
    assert len(attempts) == 3


def test_retry_handler_exhaustion():
    """Test that retry handler re-raises the last error after max attempts"""
    def always_fail():
        raise StoreUnavailableError("balance_oracle", "down")

    with pytest.raises(StoreUnavailableError):
        retry_with_exponential_backoff(always_fail, max_retries=3, base_delay=0)


def test_retry_only_on_listed_errors():
    """Errors outside retry_on propagate on the first attempt"""
    attempts = []

    def invalid():
        attempts.append(1)
        raise ValidationError("bad input")

    with pytest.raises(ValidationError):
        retry_with_exponential_backoff(invalid, max_retries=3, base_delay=0, retry_on=(StoreUnavailableError,))
    assert len(attempts) == 1


def test_call_with_timeout_returns_result():
    assert call_with_timeout(lambda a, b=0: a + b, 1, "sum", 2, b=3) == 5


def test_call_with_timeout_times_out():
    with pytest.raises(StoreUnavailableError) as excinfo:
        call_with_timeout(time.sleep, 0.05, "slow_read", 0.5)
    assert excinfo.value.operation == "slow_read"
    assert "timed out" in excinfo.value.message


def test_call_with_timeout_wraps_errors():
    def broken():
        raise ConnectionError("refused")

    with pytest.raises(StoreUnavailableError) as excinfo:
        call_with_timeout(broken, 1, "transaction_store")
    assert excinfo.value.details == {'operation': 'transaction_store', 'cause': 'refused'}


def test_call_with_timeout_passes_domain_errors():
    def invalid():
        raise ValidationError("bad input")

    with pytest.raises(ValidationError):
        call_with_timeout(invalid, 1, "transaction_store")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
