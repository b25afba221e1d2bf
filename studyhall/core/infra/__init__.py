"""Infrastructure utilities module."""

from .retry import get_fetch_retry

__all__ = ["get_fetch_retry"]
