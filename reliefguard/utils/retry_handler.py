"""Retry logic with exponential backoff, and timeouts for external reads"""

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Any, Tuple, Type
from reliefguard.utils.logging import get_logger
from reliefguard.utils.errors import ReliefGuardError, StoreUnavailableError
from reliefguard.utils.metrics import store_failures

logger = get_logger(__name__)


def retry_with_exponential_backoff(
    func: Callable,
    *args,
    max_retries: int = 5,
    base_delay: float = 30,
    max_delay: float = 480,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    **kwargs
) -> Any:
    """
    Retry an idempotent call with exponential backoff

    Args:
        func: Function to retry
        *args, **kwargs: Arguments to pass to func
        max_retries: Maximum attempts
        base_delay: Base delay in seconds
        max_delay: Max delay cap in seconds
        retry_on: Exception types that trigger another attempt

    Returns:
        Function result

    Raises:
        The last error once all attempts are exhausted
    """
    for attempt in range(max_retries):
        try:
            return func(*args, **kwargs)

        except retry_on as e:
            if attempt == max_retries - 1:
                logger.error(f"All {max_retries} retry attempts exhausted", error=str(e))
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(f"Attempt {attempt + 1} failed, retrying in {delay}s: {e}")
            time.sleep(delay)


def call_with_timeout(func: Callable, timeout: float, operation: str, *args, **kwargs) -> Any:
    """
    Run an external read with a deadline.

    Any failure or timeout becomes StoreUnavailableError so callers can fail
    closed. The worker thread of a timed-out call is abandoned, not killed.

    Args:
        func: Store or oracle call
        timeout: Deadline in seconds
        operation: Operation label for logs and metrics
        *args, **kwargs: Arguments to pass to func

    Raises:
        StoreUnavailableError: On timeout or any non-domain error
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        store_failures.labels(operation=operation).inc()
        raise StoreUnavailableError(operation, f"timed out after {timeout}s")
    except ReliefGuardError:
        raise
    except Exception as e:
        store_failures.labels(operation=operation).inc()
        raise StoreUnavailableError(operation, str(e))
    finally:
        executor.shutdown(wait=False)
