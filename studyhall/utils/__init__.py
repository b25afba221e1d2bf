"""Utility helpers."""

from .helpers import add_months, filter_students, whatsapp_url

__all__ = ["add_months", "filter_students", "whatsapp_url"]
