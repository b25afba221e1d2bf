"""Core infrastructure module."""

from .exceptions import (
    # Base exception
    StudyHallError,
    # Remote data
    FetchError,
    NetworkError,
    SubmitError,
    # Input
    ValidationError,
    # Configuration
    ConfigurationError,
    # Authorization facts
    PermissionDeniedError,
)
from .logger import renewal_session_ctx, setup_structured_logging

__all__ = [
    "StudyHallError",
    "FetchError",
    "NetworkError",
    "SubmitError",
    "ValidationError",
    "ConfigurationError",
    "PermissionDeniedError",
    "renewal_session_ctx",
    "setup_structured_logging",
]
