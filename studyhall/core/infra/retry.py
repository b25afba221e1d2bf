"""Retry strategies for facility API calls."""

import logging as stdlib_logging
from typing import Tuple, Type, Union

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from studyhall.core.exceptions import NetworkError

# Stdlib logger needed for tenacity's before_sleep_log
_stdlib_logger = stdlib_logging.getLogger(__name__)


def _make_retry(
    attempts: int,
    wait_strategy: object,
    exception_types: Union[Type[Exception], Tuple[Type[Exception], ...]],
) -> object:
    """
    Factory for creating retry decorators with consistent configuration.

    Args:
        attempts: Maximum number of retry attempts
        wait_strategy: Tenacity wait strategy
        exception_types: Exception type(s) to retry on

    Returns:
        Configured retry decorator
    """
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_strategy,
        retry=retry_if_exception_type(exception_types),
        before_sleep=before_sleep_log(_stdlib_logger, stdlib_logging.WARNING),
        reraise=True,
    )


def get_fetch_retry():
    """
    Get retry strategy for read-only API calls.

    Only transport failures are retried; an HTTP error answer is final.

    Returns:
        Retry decorator configured for network errors
    """
    return _make_retry(
        attempts=3,
        wait_strategy=wait_exponential(multiplier=0.5, min=0.5, max=4) + wait_random(0, 0.5),
        exception_types=NetworkError,
    )
