"""Facility API access."""

from .client import DEFAULT_DELETE_ERROR, DEFAULT_RENEW_ERROR, StudyHallApiClient

__all__ = ["StudyHallApiClient", "DEFAULT_RENEW_ERROR", "DEFAULT_DELETE_ERROR"]
