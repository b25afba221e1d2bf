"""Renewal selection state machine.

Branch, seat, shift and locker choices depend on each other. Every mutation
marks its node dirty and walks ``DEPENDENCY_GRAPH`` in ``RECOMPUTE_ORDER``,
recomputing each child whose parent changed. Remote lookups (seat/locker
options, shift eligibility) are children like any other; a lookup that was
superseded by a newer selection stops the walk.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from loguru import logger

from ...core.exceptions import FetchError, StudyHallError, ValidationError
from ...models.schemas import Branch, Locker, Seat, ShiftDefinition, Student
from .availability import AvailabilityResolver, BranchAvailability, ResourceOption
from .catalog import CatalogCache
from .fees import RESET_FEE_INPUT, FeeBreakdown, fee_input_for, is_fee_locked, reconcile_fees
from .shift_eligibility import ShiftAvailabilityResolver, ShiftOption, retain_eligible

# child -> parents
DEPENDENCY_GRAPH: Dict[str, Tuple[str, ...]] = {
    "seat": ("branch",),
    "locker": ("branch",),
    "locker_fee": ("locker",),
    "shift_eligibility": ("branch", "seat"),
    "shifts": ("shift_eligibility",),
    "total_fee": ("shifts",),
    "availability": ("branch",),
}

# Topological order; the seat/locker fetch runs last so local resets are
# already applied when it fails.
RECOMPUTE_ORDER: Tuple[str, ...] = (
    "seat",
    "locker",
    "locker_fee",
    "shift_eligibility",
    "shifts",
    "total_fee",
    "availability",
)

SHIFTS_UNCONFIRMED_MESSAGE = (
    "Shift availability for the selected seat could not be confirmed. Reselect the seat."
)


class SelectionState(str, Enum):
    """How far the renewal selection has progressed."""

    IDLE = "idle"
    BRANCH_CHOSEN = "branch_chosen"
    SEAT_RESOLVED = "seat_resolved"
    SHIFTS_RESOLVED = "shifts_resolved"


@dataclass
class RenewalSelection:
    """Current choices of one renewal dialog; amounts are the raw text the operator typed."""

    branch: Optional[Branch] = None
    seat: Optional[Seat] = None
    shifts: List[ShiftDefinition] = field(default_factory=list)
    locker: Optional[Locker] = None
    total_fee: str = RESET_FEE_INPUT
    locker_fee: str = "0"
    cash: str = "0"
    online: str = "0"
    security_money: str = "0"
    discount: str = "0"

    @property
    def shift_ids(self) -> List[int]:
        return [shift.id for shift in self.shifts]


class SessionClosedError(StudyHallError):
    """Raised when a closed renewal session is mutated."""

    def __init__(self):
        super().__init__("Renewal session is closed", recoverable=False)


def _amount_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


class SelectionStateMachine:
    """
    Keeps a renewal's branch/seat/shift/locker choices consistent with live availability.

    One instance lives for the lifetime of a renewal dialog.
    """

    def __init__(
        self,
        student: Student,
        catalog: CatalogCache,
        availability: AvailabilityResolver,
        shift_resolver: ShiftAvailabilityResolver,
    ):
        """
        Initialize the state machine.

        Args:
            student: Student being renewed (with current assignments)
            catalog: Loaded shift/branch catalog
            availability: Seat/locker resolver
            shift_resolver: Shift eligibility resolver
        """
        self.student = student
        self.selection = RenewalSelection()
        self.availability_error: Optional[FetchError] = None
        self.eligibility_error: Optional[FetchError] = None
        self._catalog = catalog
        self._availability = availability
        self._shift_resolver = shift_resolver
        self._closed = False
        self._shift_resolver.open(self._catalog.shifts)

    # ------------------------------------------------------------------ views

    @property
    def state(self) -> SelectionState:
        if self.selection.shifts:
            return SelectionState.SHIFTS_RESOLVED
        if self.selection.seat is not None:
            return SelectionState.SEAT_RESOLVED
        if self.selection.branch is not None:
            return SelectionState.BRANCH_CHOSEN
        return SelectionState.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def availability(self) -> BranchAvailability:
        return self._availability.snapshot

    @property
    def seat_options(self) -> Tuple[ResourceOption[Seat], ...]:
        return self._availability.snapshot.seats

    @property
    def locker_options(self) -> Tuple[ResourceOption[Locker], ...]:
        return self._availability.snapshot.lockers

    @property
    def shift_options(self) -> Tuple[ShiftOption, ...]:
        return self._shift_resolver.snapshot.options

    @property
    def shifts_confirmed(self) -> bool:
        """Whether shift eligibility was resolved for the seat currently selected."""
        seat = self.selection.seat
        return self._shift_resolver.snapshot.seat_id == (seat.id if seat else None)

    @property
    def fee_locked(self) -> bool:
        return is_fee_locked(self.selection.shifts)

    @property
    def fees(self) -> FeeBreakdown:
        sel = self.selection
        return reconcile_fees(sel.shifts, sel.total_fee, sel.discount, sel.cash, sel.online)

    # -------------------------------------------------------------- mutations

    async def set_branch(self, branch: Optional[Branch]) -> None:
        """
        Choose a branch.

        Seat and locker are cleared (their options are branch scoped), shift
        eligibility returns to "no seat", and seat/locker options are re-fetched.

        Raises:
            ValidationError: If the branch is not in the catalog
            FetchError: If seat/locker options could not be fetched
        """
        self._ensure_open()
        known = branch is None or not self._catalog.is_loaded or self._catalog.branch(branch.id)
        if not known:
            raise ValidationError(f"Unknown branch {branch.id}", field="branch")

        self.selection.branch = branch
        logger.info(
            f"Renewal of student {self.student.id}: branch -> "
            f"{branch.name if branch else 'none'}"
        )
        await self._propagate({"branch"})

    async def set_seat(self, seat: Optional[Seat]) -> None:
        """
        Choose a seat, or None for "no seat".

        Shift eligibility is re-resolved and shifts that are no longer
        eligible silently drop out of the selection.

        Raises:
            ValidationError: If the seat is not offered for the selected branch
            FetchError: If shift eligibility could not be fetched
        """
        self._ensure_open()
        if seat is not None and not self._offered_for_branch(seat):
            raise ValidationError(
                f"Seat {seat.seat_number} is not available for the selected branch", field="seat"
            )

        self.selection.seat = seat
        logger.info(
            f"Renewal of student {self.student.id}: seat -> "
            f"{seat.seat_number if seat else 'none'}"
        )
        await self._propagate({"seat"})

    async def set_shifts(self, shifts: Iterable[Union[int, ShiftDefinition]]) -> None:
        """
        Choose the shifts to renew.

        Raises:
            ValidationError: If a shift is unknown, not eligible for the seat, or
                eligibility for the selected seat has not been resolved
        """
        self._ensure_open()
        entries = list(shifts)
        if entries and not self.shifts_confirmed:
            raise ValidationError(SHIFTS_UNCONFIRMED_MESSAGE, field="shifts")

        chosen: List[ShiftDefinition] = []
        seen: Set[int] = set()
        for entry in entries:
            shift = self._lookup_shift(entry)
            if shift.id in seen:
                continue
            if not self._shift_resolver.snapshot.is_eligible(shift.id):
                raise ValidationError(
                    f"Shift '{shift.title}' is not available for the selected seat",
                    field="shifts",
                )
            seen.add(shift.id)
            chosen.append(shift)

        if chosen == self.selection.shifts:
            return
        self.selection.shifts = chosen
        await self._propagate({"shifts"})

    async def set_locker(self, locker: Optional[Locker]) -> None:
        """
        Choose a locker, or None to hold no locker (which zeroes the locker fee).

        Raises:
            ValidationError: If the locker is not offered for the selected branch
        """
        self._ensure_open()
        if locker is not None and not self._offered_for_branch(locker):
            raise ValidationError(
                f"Locker {locker.locker_number} is not available for the selected branch",
                field="locker",
            )
        self.selection.locker = locker
        await self._propagate({"locker"})

    def set_total_fee(self, value: Any) -> None:
        """
        Edit the membership fee.

        Raises:
            ValidationError: While exactly one shift is selected (the fee is system owned)
        """
        self._ensure_open()
        if self.fee_locked:
            raise ValidationError(
                "Membership fee is set by the selected shift and cannot be edited",
                field="total_fee",
            )
        self.selection.total_fee = _amount_text(value)

    def set_locker_fee(self, value: Any) -> None:
        self._ensure_open()
        if self.selection.locker is None:
            raise ValidationError(
                "Select a locker before entering a locker fee", field="locker_fee"
            )
        self.selection.locker_fee = _amount_text(value)

    def set_discount(self, value: Any) -> None:
        self._ensure_open()
        self.selection.discount = _amount_text(value)

    def set_cash(self, value: Any) -> None:
        self._ensure_open()
        self.selection.cash = _amount_text(value)

    def set_online(self, value: Any) -> None:
        self._ensure_open()
        self.selection.online = _amount_text(value)

    def set_security_money(self, value: Any) -> None:
        self._ensure_open()
        self.selection.security_money = _amount_text(value)

    def hydrate(
        self,
        branch: Optional[Branch],
        seat: Optional[Seat],
        shifts: Sequence[ShiftDefinition],
        locker: Optional[Locker],
        total_fee: Any = None,
        locker_fee: Any = None,
        cash: Any = None,
        online: Any = None,
        security_money: Any = None,
        discount: Any = None,
    ) -> None:
        """
        Prefill the selection from the student's current record without cascade resets.

        Call ``refresh_options`` afterwards to load the options for the
        prefilled branch and seat.
        """
        self._ensure_open()
        sel = self.selection
        sel.branch = branch
        sel.seat = seat
        sel.shifts = list({shift.id: shift for shift in shifts}.values())
        sel.locker = locker
        sel.locker_fee = _amount_text(locker_fee if locker is not None else None) or "0"
        sel.cash = _amount_text(cash) or "0"
        sel.online = _amount_text(online) or "0"
        sel.security_money = _amount_text(security_money) or "0"
        sel.discount = _amount_text(discount) or "0"
        if is_fee_locked(sel.shifts):
            sel.total_fee = fee_input_for(sel.shifts)
        else:
            sel.total_fee = _amount_text(total_fee) or RESET_FEE_INPUT

    async def refresh_options(self) -> List[FetchError]:
        """
        Re-resolve seat/locker options and shift eligibility for the current branch and seat.

        Both lookups run concurrently and both are awaited even when one fails.

        Returns:
            The fetch failures, in lookup order; empty when both lookups succeeded
        """
        self._ensure_open()
        results = await asyncio.gather(
            self._recompute_availability(), self._propagate({"seat"}), return_exceptions=True
        )
        failures: List[FetchError] = []
        for result in results:
            if isinstance(result, FetchError):
                failures.append(result)
            elif isinstance(result, BaseException):
                raise result
        return failures

    def close(self) -> None:
        """Tear the session down; in-flight lookups are discarded."""
        if self._closed:
            return
        self._closed = True
        self._availability.supersede()
        self._shift_resolver.open(())
        logger.debug(f"Renewal session for student {self.student.id} closed")

    # --------------------------------------------------------------- internals

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    def _offered_for_branch(self, item: Union[Seat, Locker]) -> bool:
        snapshot = self._availability.snapshot
        branch = self.selection.branch
        if branch is None or snapshot.branch_id != branch.id:
            return False
        return snapshot.offers(item)

    def _lookup_shift(self, entry: Union[int, ShiftDefinition]) -> ShiftDefinition:
        shift_id = entry.id if isinstance(entry, ShiftDefinition) else int(entry)
        shift = self._catalog.shift(shift_id)
        if shift is None:
            for selected in self.selection.shifts:
                if selected.id == shift_id:
                    return selected
            if isinstance(entry, ShiftDefinition):
                return entry
            raise ValidationError(f"Unknown shift {shift_id}", field="shifts")
        return shift

    async def _propagate(self, changed: Set[str]) -> None:
        """Recompute every node downstream of ``changed``."""
        dirty = set(changed)
        for node in RECOMPUTE_ORDER:
            if not dirty.intersection(DEPENDENCY_GRAPH[node]):
                continue
            outcome = await self._recompute(node)
            if outcome is None:
                logger.debug(f"Recompute of '{node}' superseded, stopping")
                return
            if outcome:
                dirty.add(node)

    async def _recompute(self, node: str) -> Optional[bool]:
        """
        Recompute one node.

        Returns:
            True if the node's value changed, False if not, None if a newer
            selection superseded the lookup
        """
        sel = self.selection
        if node == "seat":
            changed = sel.seat is not None
            sel.seat = None
            return changed
        if node == "locker":
            changed = sel.locker is not None
            sel.locker = None
            return changed
        if node == "locker_fee":
            if sel.locker is None and sel.locker_fee != "0":
                sel.locker_fee = "0"
                return True
            return False
        if node == "shift_eligibility":
            return await self._recompute_eligibility()
        if node == "shifts":
            retained = retain_eligible(sel.shifts, self._shift_resolver.snapshot)
            if retained == sel.shifts:
                return False
            dropped = [s.title for s in sel.shifts if s not in retained]
            logger.info(f"Dropped shifts no longer eligible for the seat: {dropped}")
            sel.shifts = retained
            return True
        if node == "total_fee":
            sel.total_fee = fee_input_for(sel.shifts)
            return True
        if node == "availability":
            return await self._recompute_availability()
        raise KeyError(node)

    async def _recompute_eligibility(self) -> Optional[bool]:
        seat = self.selection.seat
        try:
            result = await self._shift_resolver.resolve(
                seat.id if seat else None, self.student.assignments, self._catalog.shifts
            )
        except FetchError as e:
            self.eligibility_error = e
            raise
        if result is None:
            return None
        self.eligibility_error = None
        return True

    async def _recompute_availability(self) -> Optional[bool]:
        branch = self.selection.branch
        try:
            result = await self._availability.resolve(
                branch.id if branch else None, self.student.id
            )
        except FetchError as e:
            self.availability_error = e
            raise
        if result is None:
            return None
        self.availability_error = None
        return True
