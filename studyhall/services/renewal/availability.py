"""Seat and locker availability for a branch."""

import asyncio
from dataclasses import dataclass
from typing import Generic, Iterable, List, Optional, Tuple, TypeVar, Union

from loguru import logger

from ...core.exceptions import FetchError
from ...models.schemas import Locker, Seat
from ..api.client import StudyHallApiClient
from .sequencer import RequestSequencer

AVAILABILITY_SLOT = "availability"
NONE_LABEL = "None"

T = TypeVar("T", Seat, Locker)


@dataclass(frozen=True)
class ResourceOption(Generic[T]):
    """One entry of a seat or locker picker; ``item`` is None for the explicit "none" choice."""

    item: Optional[T]
    label: str

    @property
    def value(self) -> Optional[int]:
        return self.item.id if self.item is not None else None

    @property
    def is_none(self) -> bool:
        return self.item is None


NO_SEAT: ResourceOption[Seat] = ResourceOption(item=None, label=NONE_LABEL)
NO_LOCKER: ResourceOption[Locker] = ResourceOption(item=None, label=NONE_LABEL)


def _find(options: Iterable[ResourceOption[T]], item_id: int) -> Optional[T]:
    for option in options:
        if option.item is not None and option.item.id == item_id:
            return option.item
    return None


@dataclass(frozen=True)
class BranchAvailability:
    """Offerable seats and lockers of one branch, each list headed by the "none" option."""

    branch_id: Optional[int]
    seats: Tuple[ResourceOption[Seat], ...]
    lockers: Tuple[ResourceOption[Locker], ...]

    def seat(self, seat_id: int) -> Optional[Seat]:
        return _find(self.seats, seat_id)

    def locker(self, locker_id: int) -> Optional[Locker]:
        return _find(self.lockers, locker_id)

    def offers(self, item: Union[Seat, Locker, None]) -> bool:
        """Check whether a seat/locker (or the "none" choice) is among the options."""
        if item is None:
            return True
        if isinstance(item, Seat):
            return self.seat(item.id) is not None
        return self.locker(item.id) is not None


NO_BRANCH_AVAILABILITY = BranchAvailability(branch_id=None, seats=(NO_SEAT,), lockers=(NO_LOCKER,))


def is_seat_offerable(seat: Seat, subject_student_id: int) -> bool:
    """A seat is offerable when it is free or held by the student being renewed."""
    return seat.occupant_student_id is None or seat.occupant_student_id == subject_student_id


def is_locker_offerable(locker: Locker, subject_student_id: int) -> bool:
    """A locker is offerable when it is unassigned or held by the student being renewed."""
    return not locker.is_assigned or locker.occupant_student_id == subject_student_id


def offerable_seats(seats: Iterable[Seat], subject_student_id: int) -> List[Seat]:
    return [seat for seat in seats if is_seat_offerable(seat, subject_student_id)]


def offerable_lockers(lockers: Iterable[Locker], subject_student_id: int) -> List[Locker]:
    return [locker for locker in lockers if is_locker_offerable(locker, subject_student_id)]


def build_availability(
    branch_id: int, seats: Iterable[Seat], lockers: Iterable[Locker], subject_student_id: int
) -> BranchAvailability:
    """Filter raw branch inventory down to the options offered for a renewal."""
    return BranchAvailability(
        branch_id=branch_id,
        seats=(NO_SEAT,)
        + tuple(
            ResourceOption(item=seat, label=seat.seat_number)
            for seat in offerable_seats(seats, subject_student_id)
        ),
        lockers=(NO_LOCKER,)
        + tuple(
            ResourceOption(item=locker, label=locker.locker_number)
            for locker in offerable_lockers(lockers, subject_student_id)
        ),
    )


class AvailabilityResolver:
    """
    Resolves the seat and locker options for a branch.

    Seats and lockers are fetched together and committed as one snapshot.
    A failed fetch leaves the previous snapshot in place, and a response for
    a branch the operator has already moved away from is discarded.
    """

    def __init__(self, api: StudyHallApiClient, sequencer: Optional[RequestSequencer] = None):
        self._api = api
        self._sequencer = sequencer or RequestSequencer()
        self.snapshot: BranchAvailability = NO_BRANCH_AVAILABILITY

    async def resolve(
        self, branch_id: Optional[int], subject_student_id: int
    ) -> Optional[BranchAvailability]:
        """
        Resolve the offerable seats and lockers of a branch.

        Args:
            branch_id: Selected branch, or None when no branch is chosen
            subject_student_id: Student being renewed

        Returns:
            The committed snapshot, or None when the response was superseded

        Raises:
            FetchError: If the latest request failed (previous options are kept)
        """
        ticket = self._sequencer.begin(AVAILABILITY_SLOT)

        if branch_id is None:
            self.snapshot = NO_BRANCH_AVAILABILITY
            return self.snapshot

        try:
            seats, lockers = await asyncio.gather(
                self._api.get_seats(branch_id), self._api.get_lockers(branch_id)
            )
        except FetchError as e:
            if not self._sequencer.is_current(AVAILABILITY_SLOT, ticket):
                logger.debug(f"Ignoring failure of superseded seat/locker fetch: {e}")
                return None
            logger.warning(
                f"Failed to fetch seats and lockers for branch {branch_id}, "
                "keeping previous options"
            )
            raise

        if not self._sequencer.is_current(AVAILABILITY_SLOT, ticket):
            logger.debug(f"Discarding stale seat/locker response for branch {branch_id}")
            return None

        self.snapshot = build_availability(branch_id, seats, lockers, subject_student_id)
        logger.info(
            f"Branch {branch_id}: {len(self.snapshot.seats) - 1} offerable seats, "
            f"{len(self.snapshot.lockers) - 1} offerable lockers"
        )
        return self.snapshot

    def supersede(self) -> None:
        """Drop any in-flight seat/locker request."""
        self._sequencer.supersede(AVAILABILITY_SLOT)
