"""Retry logic with exponential backoff.

This module provides:
- retry_with_backoff: Simple exponential backoff retry
- is_transient_error: Classify remote errors worth retrying
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import httplib2
from google.auth.exceptions import TransportError

from zmsync.client.drive import APIError

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 30.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Status codes Google asks clients to retry with backoff
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Network failures: refused or reset connections, timeouts, DNS
TRANSIENT_EXCEPTIONS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    httplib2.HttpLib2Error,
    TransportError,
)


def is_transient_error(error: Exception) -> bool:
    """Check whether an error is likely to succeed on retry.

    A transient error does not prove the request was not applied; callers
    retrying non-idempotent requests must check for that first.

    Args:
        error: Exception raised by a remote call.

    Returns:
        True for network failures, rate limiting and server errors.
    """
    if isinstance(error, TRANSIENT_EXCEPTIONS):
        return True
    if isinstance(error, APIError):
        return error.status_code in RETRYABLE_STATUS_CODES
    return False


def retry_with_backoff(
    func: Callable[[], Any],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    should_retry: Callable[[Exception], bool] = is_transient_error,
) -> Any:
    """Execute a function with exponential backoff retry.

    Args:
        func: Function to execute.
        max_retries: Maximum number of retry attempts.
        initial_backoff: Initial backoff time in seconds.
        max_backoff: Maximum backoff time in seconds.
        backoff_multiplier: Multiplier for each retry.
        should_retry: Predicate deciding whether an exception is retried.

    Returns:
        Result of the function.

    Raises:
        The last exception if all retries fail or it is not retryable.
    """
    backoff = initial_backoff

    for attempt in range(max_retries + 1):
        try:
            return func()
        except Exception as e:
            if attempt == max_retries or not should_retry(e):
                raise

            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {backoff:.1f}s..."
            )
            time.sleep(backoff)
            backoff = min(backoff * backoff_multiplier, max_backoff)

    raise RuntimeError("Unexpected retry loop exit")
