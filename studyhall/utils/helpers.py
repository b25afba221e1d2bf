"""Helper utilities shared by the screen and the renewal dialog."""

import re
from datetime import date, timedelta
from typing import Iterable, List

from ..models.schemas import Student

__all__ = ["add_months", "filter_students", "whatsapp_url"]


def add_months(start: date, months: int) -> date:
    """
    Add calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month is Feb 28 (or 29 in leap years).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    return date(y, m, min(start.day, last_day.day))


def filter_students(students: Iterable[Student], term: str) -> List[Student]:
    """
    Search the expired list by name, phone or registration number.

    Name and registration number match case-insensitively; phone matches as a substring.
    """
    needle = term.strip().lower()
    if not needle:
        return list(students)
    matches = []
    for student in students:
        if (
            needle in student.name.lower()
            or (student.phone and term.strip() in student.phone)
            or (student.registration_number and needle in student.registration_number.lower())
        ):
            matches.append(student)
    return matches


def whatsapp_url(phone: str) -> str:
    """Build a wa.me chat link from a phone number in any format."""
    return f"https://wa.me/{re.sub(r'[^0-9]', '', phone)}"
