"""Custom exception classes for the renewal desk."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class StudyHallError(Exception):
    """Base exception for the renewal desk."""

    def __init__(
        self, message: str, recoverable: bool = True, details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize renewal desk error.

        Args:
            message: Error message
            recoverable: Whether the operator can retry or correct the input
            details: Additional error details
        """
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class NetworkError(StudyHallError):
    """Network connection error occurred."""

    def __init__(self, message: str = "Network error occurred", recoverable: bool = True):
        super().__init__(message, recoverable)


class FetchError(StudyHallError):
    """Retrieving catalog, availability or student data failed."""

    def __init__(
        self,
        message: str = "Failed to fetch data",
        resource: Optional[str] = None,
        status: Optional[int] = None,
    ):
        """
        Initialize fetch error.

        Args:
            message: Error message
            resource: Name of the resource that could not be fetched
            status: HTTP status code, if the server answered
        """
        self.resource = resource
        self.status = status
        details: Dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if status is not None:
            details["status"] = status
        super().__init__(message, recoverable=True, details=details)


class ValidationError(StudyHallError):
    """Renewal input validation error."""

    def __init__(
        self,
        message: str = "Validation error",
        field: Optional[str] = None,
        missing: Optional[List[str]] = None,
    ):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            missing: Required fields that were left empty
        """
        self.field = field
        self.missing = list(missing or [])
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if self.missing:
            details["missing"] = self.missing
        super().__init__(message, recoverable=True, details=details)


class SubmitError(StudyHallError):
    """The server rejected the renewal payload."""

    def __init__(self, message: str = "Failed to renew membership", status: Optional[int] = None):
        """
        Initialize submit error.

        Args:
            message: Message reported by the server, kept verbatim
            status: HTTP status code of the rejection
        """
        self.status = status
        super().__init__(
            message, recoverable=True, details={"status": status} if status is not None else {}
        )


class ConfigurationError(StudyHallError):
    """Configuration error occurred."""

    def __init__(
        self,
        message: str = "Configuration error",
        recoverable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class PermissionDeniedError(StudyHallError):
    """Raised when the operator lacks the permission for an action."""

    def __init__(self, action: str):
        super().__init__(
            f"Insufficient permissions to {action}",
            recoverable=False,
            details={"action": action},
        )
