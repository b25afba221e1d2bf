"""Data models."""

from .schemas import (
    Assignment,
    Branch,
    Locker,
    RenewalPayload,
    Seat,
    ShiftDefinition,
    Student,
)

__all__ = [
    "Assignment",
    "Branch",
    "Locker",
    "RenewalPayload",
    "Seat",
    "ShiftDefinition",
    "Student",
]
