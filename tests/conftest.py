"""Pytest configuration and common fixtures."""

import os
import sys
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Try to load test-specific environment file if it exists
test_env_file = Path(__file__).parent / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file)

# Set environment variables BEFORE any studyhall imports
os.environ.setdefault("ENV", "testing")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from typing import Dict, List
from unittest.mock import AsyncMock, MagicMock

# NOW it's safe to import from studyhall
import pytest
import pytest_asyncio

from studyhall.core.config.settings import StudyHallSettings, get_settings
from studyhall.models.schemas import Assignment, Branch, Locker, Seat, ShiftDefinition, Student
from studyhall.services.renewal.availability import AvailabilityResolver
from studyhall.services.renewal.catalog import CatalogCache
from studyhall.services.renewal.selection import SelectionStateMachine
from studyhall.services.renewal.sequencer import RequestSequencer
from studyhall.services.renewal.shift_eligibility import ShiftAvailabilityResolver

SUBJECT_ID = 42


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    # Suppress async mock warnings
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Automatically set up test environment for all tests."""
    monkeypatch.setenv("ENV", "testing")
    monkeypatch.setenv("API_BASE_URL", "https://desk.test/api")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> StudyHallSettings:
    """Settings instance isolated from any .env file."""
    return StudyHallSettings(_env_file=None)


@pytest.fixture
def sample_shifts() -> List[ShiftDefinition]:
    return [
        ShiftDefinition(id=1, title="Morning", fee=300),
        ShiftDefinition(id=2, title="Evening", fee=500),
        ShiftDefinition(id=3, title="Night", fee=250),
    ]


@pytest.fixture
def sample_branches() -> List[Branch]:
    return [Branch(id=1, name="Central"), Branch(id=2, name="North")]


@pytest.fixture
def branch_seats() -> Dict[int, List[Seat]]:
    """Seats per branch: A10 held by the subject, A12 held by someone else."""
    return {
        1: [
            Seat(id=10, seat_number="A10", occupant_student_id=SUBJECT_ID),
            Seat(id=11, seat_number="A11"),
            Seat(id=12, seat_number="A12", occupant_student_id=7),
            Seat(id=13, seat_number="A13"),
        ],
        2: [Seat(id=20, seat_number="N20"), Seat(id=21, seat_number="N21")],
    }


@pytest.fixture
def branch_lockers() -> Dict[int, List[Locker]]:
    return {
        1: [
            Locker(id=5, locker_number="L5"),
            Locker(id=6, locker_number="L6", is_assigned=True, occupant_student_id=7),
            Locker(id=7, locker_number="L7", is_assigned=True, occupant_student_id=SUBJECT_ID),
        ],
        2: [Locker(id=8, locker_number="N8")],
    }


@pytest.fixture
def free_shifts(sample_shifts) -> Dict[int, List[ShiftDefinition]]:
    """Shifts each seat reports as free."""
    by_id = {s.id: s for s in sample_shifts}
    return {
        10: [by_id[2]],
        11: [by_id[2], by_id[3]],
        13: [by_id[3]],
        20: list(sample_shifts),
        21: [by_id[1]],
    }


@pytest.fixture
def sample_student() -> Student:
    """Student 42 sitting on A10 in the morning shift of branch Central."""
    return Student(
        id=SUBJECT_ID,
        name="Asha Verma",
        registration_number="REG-042",
        father_name="Ramesh Verma",
        phone="98765 43210",
        email="asha@example.com",
        address="12 MG Road",
        branch_id=1,
        branch_name="Central",
        membership_end="2026-09-30",
        total_fee=300,
        cash=100,
        online=50,
        assignments=[
            Assignment(seat_id=10, shift_id=1, seat_number="A10", shift_title="Morning")
        ],
    )


@pytest.fixture
def mock_api(
    sample_shifts, sample_branches, branch_seats, branch_lockers, free_shifts, sample_student
):
    """Facility API double returning the sample data."""
    api = MagicMock()
    api.get_schedules = AsyncMock(return_value=list(sample_shifts))
    api.get_branches = AsyncMock(return_value=list(sample_branches))
    api.get_expired_memberships = AsyncMock(return_value=[sample_student])
    api.get_student = AsyncMock(return_value=sample_student)
    api.get_seats = AsyncMock(side_effect=lambda branch_id: list(branch_seats[branch_id]))
    api.get_lockers = AsyncMock(side_effect=lambda branch_id: list(branch_lockers[branch_id]))
    api.get_available_shifts = AsyncMock(
        side_effect=lambda seat_id: list(free_shifts.get(seat_id, []))
    )
    api.renew_student = AsyncMock(return_value=None)
    api.delete_student = AsyncMock(return_value=None)
    return api


@pytest_asyncio.fixture
async def catalog(mock_api) -> CatalogCache:
    """Loaded catalog cache."""
    cache = CatalogCache(mock_api)
    await cache.load()
    return cache


@pytest.fixture
def machine(mock_api, catalog, sample_student) -> SelectionStateMachine:
    """State machine for the sample student with nothing selected."""
    sequencer = RequestSequencer()
    return SelectionStateMachine(
        sample_student,
        catalog,
        AvailabilityResolver(mock_api, sequencer),
        ShiftAvailabilityResolver(mock_api, sequencer),
    )
