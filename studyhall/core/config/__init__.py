"""Configuration management module."""

from .settings import StudyHallSettings, get_settings, load_settings

__all__ = ["StudyHallSettings", "get_settings", "load_settings"]
