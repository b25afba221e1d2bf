"""Tests for seat and locker availability."""

import asyncio

import pytest

from studyhall.core.exceptions import FetchError
from studyhall.models.schemas import Locker, Seat
from studyhall.services.renewal.availability import (
    NO_BRANCH_AVAILABILITY,
    NONE_LABEL,
    AvailabilityResolver,
    build_availability,
    is_locker_offerable,
    is_seat_offerable,
    offerable_seats,
)


class TestOfferableFilters:
    """Tests for the pure offerability filters."""

    def test_seat_held_by_subject_is_offered(self):
        s1 = Seat(id=1, seat_number="S1")
        s2 = Seat(id=2, seat_number="S2", occupant_student_id=7)

        availability = build_availability(1, [s1, s2], [], subject_student_id=7)

        assert [o.label for o in availability.seats] == [NONE_LABEL, "S1", "S2"]
        assert availability.seats[0].is_none

    def test_seat_held_by_other_student_is_never_offered(self, branch_seats):
        seats = offerable_seats(branch_seats[1], subject_student_id=42)

        assert all(s.occupant_student_id in (None, 42) for s in seats)
        assert 12 not in [s.id for s in seats]

    def test_locker_rules(self):
        assert is_locker_offerable(Locker(id=1, locker_number="L1"), 42)
        assert is_locker_offerable(
            Locker(id=2, locker_number="L2", is_assigned=True, occupant_student_id=42), 42
        )
        assert not is_locker_offerable(
            Locker(id=3, locker_number="L3", is_assigned=True, occupant_student_id=7), 42
        )

    def test_seat_rules(self):
        assert is_seat_offerable(Seat(id=1, seat_number="S1"), 42)
        assert not is_seat_offerable(Seat(id=1, seat_number="S1", occupant_student_id=9), 42)

    def test_lookup_by_id(self, branch_seats, branch_lockers):
        availability = build_availability(1, branch_seats[1], branch_lockers[1], 42)

        assert availability.seat(11).seat_number == "A11"
        assert availability.seat(12) is None
        assert availability.locker(7).locker_number == "L7"
        assert availability.locker(6) is None
        assert availability.offers(None)


class TestAvailabilityResolver:
    """Tests for AvailabilityResolver."""

    @pytest.mark.asyncio
    async def test_no_branch_skips_fetch(self, mock_api):
        resolver = AvailabilityResolver(mock_api)

        result = await resolver.resolve(None, 42)

        assert result is NO_BRANCH_AVAILABILITY
        mock_api.get_seats.assert_not_called()
        mock_api.get_lockers.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolve_commits_seats_and_lockers_together(self, mock_api):
        resolver = AvailabilityResolver(mock_api)

        result = await resolver.resolve(1, 42)

        assert result.branch_id == 1
        assert [o.value for o in result.seats] == [None, 10, 11, 13]
        assert [o.value for o in result.lockers] == [None, 5, 7]
        assert resolver.snapshot is result

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self, mock_api):
        resolver = AvailabilityResolver(mock_api)
        await resolver.resolve(1, 42)
        previous = resolver.snapshot

        mock_api.get_lockers.side_effect = FetchError("boom", resource="lockers")

        with pytest.raises(FetchError):
            await resolver.resolve(2, 42)

        assert resolver.snapshot is previous

    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self, mock_api, branch_seats):
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow_seats(branch_id):
            if branch_id == 1:
                started.set()
                await release.wait()
            return list(branch_seats[branch_id])

        mock_api.get_seats.side_effect = slow_seats
        resolver = AvailabilityResolver(mock_api)

        first = asyncio.create_task(resolver.resolve(1, 42))
        await started.wait()
        second = await resolver.resolve(2, 42)
        release.set()

        assert await first is None
        assert second.branch_id == 2
        assert resolver.snapshot.branch_id == 2

    @pytest.mark.asyncio
    async def test_stale_failure_is_ignored(self, mock_api, branch_seats):
        release = asyncio.Event()
        started = asyncio.Event()

        async def failing_seats(branch_id):
            if branch_id == 1:
                started.set()
                await release.wait()
                raise FetchError("late failure", resource="seats")
            return list(branch_seats[branch_id])

        mock_api.get_seats.side_effect = failing_seats
        resolver = AvailabilityResolver(mock_api)

        first = asyncio.create_task(resolver.resolve(1, 42))
        await started.wait()
        await resolver.resolve(2, 42)
        release.set()

        assert await first is None
        assert resolver.snapshot.branch_id == 2
