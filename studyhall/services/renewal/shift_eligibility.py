"""Shift eligibility for a seat."""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from ...core.exceptions import FetchError
from ...models.schemas import Assignment, ShiftDefinition
from ..api.client import StudyHallApiClient
from .fees import format_amount
from .sequencer import RequestSequencer

SHIFT_SLOT = "shift_eligibility"


@dataclass(frozen=True)
class ShiftOption:
    """A catalog shift annotated with whether it can be chosen for the current seat."""

    shift: ShiftDefinition
    eligible: bool
    label: str

    @property
    def id(self) -> int:
        return self.shift.id

    @property
    def title(self) -> str:
        return self.shift.title

    @property
    def fee(self) -> float:
        return self.shift.fee


@dataclass(frozen=True)
class ShiftEligibility:
    """Eligibility of every catalog shift; ``seat_id`` is None when no seat constrains it."""

    seat_id: Optional[int]
    options: Tuple[ShiftOption, ...]
    eligible_ids: FrozenSet[int] = frozenset()

    def is_eligible(self, shift_id: int) -> bool:
        # Without a seat every shift is open, including ones missing from the catalog
        if self.seat_id is None:
            return True
        return shift_id in self.eligible_ids


def catalog_label(shift: ShiftDefinition) -> str:
    return f"{shift.title} - [Fee: {format_amount(shift.fee)}]"


def open_eligibility(all_shifts: Iterable[ShiftDefinition]) -> ShiftEligibility:
    """Eligibility when no seat is selected: every shift may be chosen."""
    options = tuple(
        ShiftOption(shift=shift, eligible=True, label=catalog_label(shift)) for shift in all_shifts
    )
    return ShiftEligibility(
        seat_id=None, options=options, eligible_ids=frozenset(o.id for o in options)
    )


def mark_eligibility(
    seat_id: int,
    all_shifts: Iterable[ShiftDefinition],
    available_ids: Iterable[int],
    current_assignments: Iterable[Assignment],
) -> ShiftEligibility:
    """
    Mark catalog shifts eligible for a seat.

    The student's own current shifts are always merged into the free set, so a
    renewal can never be blocked by the student's existing occupancy.
    """
    eligible_ids = set(available_ids) | {a.shift_id for a in current_assignments}
    options = []
    for shift in all_shifts:
        eligible = shift.id in eligible_ids
        status = "Available" if eligible else "Assigned"
        options.append(
            ShiftOption(shift=shift, eligible=eligible, label=f"{shift.title} ({status})")
        )
    return ShiftEligibility(
        seat_id=seat_id, options=tuple(options), eligible_ids=frozenset(eligible_ids)
    )


def retain_eligible(
    selected: Sequence[ShiftDefinition], eligibility: ShiftEligibility
) -> List[ShiftDefinition]:
    """Drop shifts that are no longer eligible, keeping the operator's order."""
    return [shift for shift in selected if eligibility.is_eligible(shift.id)]


class ShiftAvailabilityResolver:
    """
    Resolves which shifts can be chosen for a seat.

    A failed fetch keeps the previous eligibility snapshot; it never falls
    back to "everything open", which could double-book a seat.
    """

    def __init__(self, api: StudyHallApiClient, sequencer: Optional[RequestSequencer] = None):
        self._api = api
        self._sequencer = sequencer or RequestSequencer()
        self.snapshot: ShiftEligibility = ShiftEligibility(seat_id=None, options=())

    def open(self, all_shifts: Iterable[ShiftDefinition]) -> ShiftEligibility:
        """Switch to the no-seat state, superseding any in-flight seat request."""
        self._sequencer.supersede(SHIFT_SLOT)
        self.snapshot = open_eligibility(all_shifts)
        return self.snapshot

    async def resolve(
        self,
        seat_id: Optional[int],
        current_assignments: Sequence[Assignment],
        all_shifts: Sequence[ShiftDefinition],
    ) -> Optional[ShiftEligibility]:
        """
        Resolve shift eligibility for a seat.

        Args:
            seat_id: Selected seat, or None for "no seat"
            current_assignments: Student's existing seat/shift assignments
            all_shifts: Full shift catalog

        Returns:
            The committed snapshot, or None when the response was superseded

        Raises:
            FetchError: If the latest request failed (previous snapshot is kept)
        """
        if seat_id is None:
            return self.open(all_shifts)

        ticket = self._sequencer.begin(SHIFT_SLOT)
        try:
            free_shifts = await self._api.get_available_shifts(seat_id)
        except FetchError as e:
            if not self._sequencer.is_current(SHIFT_SLOT, ticket):
                logger.debug(f"Ignoring failure of superseded shift fetch: {e}")
                return None
            logger.warning(
                f"Failed to fetch available shifts for seat {seat_id}, "
                "keeping previous eligibility"
            )
            raise

        if not self._sequencer.is_current(SHIFT_SLOT, ticket):
            logger.debug(f"Discarding stale shift availability for seat {seat_id}")
            return None

        self.snapshot = mark_eligibility(
            seat_id, all_shifts, (s.id for s in free_shifts), current_assignments
        )
        logger.info(
            f"Seat {seat_id}: {len(self.snapshot.eligible_ids)}/{len(self.snapshot.options)} "
            "shifts eligible"
        )
        return self.snapshot
