"""Tests for helper utilities."""

from datetime import date

import pytest

from studyhall.models.schemas import Student
from studyhall.utils.helpers import add_months, filter_students, whatsapp_url


class TestAddMonths:
    @pytest.mark.parametrize(
        "start,months,expected",
        [
            (date(2026, 3, 15), 1, date(2026, 4, 15)),
            (date(2026, 1, 31), 1, date(2026, 2, 28)),
            (date(2028, 1, 31), 1, date(2028, 2, 29)),
            (date(2026, 12, 10), 1, date(2027, 1, 10)),
            (date(2026, 8, 31), 3, date(2026, 11, 30)),
        ],
    )
    def test_add_months(self, start, months, expected):
        assert add_months(start, months) == expected


class TestFilterStudents:
    @pytest.fixture
    def students(self):
        return [
            Student(id=1, name="Asha Verma", phone="98765 43210", registration_number="REG-1"),
            Student(id=2, name="Ravi Kumar", phone="91234 55555", registration_number=None),
            Student(id=3, name="Meena Rao", phone="", registration_number="ABC-77"),
        ]

    def test_name_case_insensitive(self, students):
        assert [s.id for s in filter_students(students, "VERMA")] == [1]

    def test_phone_substring(self, students):
        assert [s.id for s in filter_students(students, "55555")] == [2]

    def test_registration_number(self, students):
        assert [s.id for s in filter_students(students, "abc")] == [3]

    def test_blank_term_returns_all(self, students):
        assert len(filter_students(students, "  ")) == 3

    def test_no_match(self, students):
        assert filter_students(students, "zzz") == []


def test_whatsapp_url_strips_formatting():
    assert whatsapp_url("+91 98765-43210") == "https://wa.me/919876543210"
