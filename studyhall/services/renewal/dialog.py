"""Renewal dialog - personal fields, prefill, validation and submission."""

import functools
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from loguru import logger

from ...core.exceptions import FetchError, SubmitError, ValidationError
from ...core.logger import renewal_session_ctx
from ...models.schemas import Branch, Locker, RenewalPayload, Seat, ShiftDefinition, Student
from ...utils.helpers import add_months
from ..api.client import StudyHallApiClient
from ..notices import NoticeBoard
from .availability import AvailabilityResolver
from .catalog import CatalogCache
from .fees import format_amount, optional_amount, parse_amount
from .sequencer import RequestSequencer
from .selection import SHIFTS_UNCONFIRMED_MESSAGE, SelectionStateMachine
from .shift_eligibility import ShiftAvailabilityResolver

REQUIRED_FIELDS_MESSAGE = "Please fill all required fields. At least one shift must be selected."
SEAT_LOCKER_FETCH_MESSAGE = "Failed to fetch seats and lockers"
SHIFT_FETCH_MESSAGE = "Failed to load available shifts."


def _in_session(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """Tag every log line emitted by a dialog operation with the dialog's session id."""

    @functools.wraps(func)
    async def wrapper(self: "RenewalDialog", *args: Any, **kwargs: Any) -> Any:
        token = renewal_session_ctx.set(self.session_id)
        try:
            return await func(self, *args, **kwargs)
        finally:
            renewal_session_ctx.reset(token)

    return wrapper


@dataclass
class PersonalDetails:
    """Editable personal fields of the renewal form."""

    name: str = ""
    registration_number: str = ""
    father_name: str = ""
    aadhar_number: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""
    remark: str = ""

    @classmethod
    def from_student(cls, student: Student) -> "PersonalDetails":
        return cls(
            name=student.name or "",
            registration_number=student.registration_number or "",
            father_name=student.father_name or "",
            aadhar_number=student.aadhar_number or "",
            address=student.address or "",
            email=student.email or "",
            phone=student.phone or "",
            remark=student.remark or "",
        )


def _amount(value: Optional[float]) -> str:
    return format_amount(value) if value else "0"


class RenewalDialog:
    """
    One open renewal of one student.

    The dialog is the error boundary of the renewal: fetch failures and
    validation problems become notices instead of exceptions, and a rejected
    submission leaves every field as the operator left it.
    """

    def __init__(
        self,
        api: StudyHallApiClient,
        catalog: CatalogCache,
        student: Student,
        notices: Optional[NoticeBoard] = None,
        membership_months: int = 1,
        today: Optional[date] = None,
    ):
        """
        Initialize the dialog (use ``RenewalDialog.open`` to fetch the student first).

        Args:
            api: Facility API client
            catalog: Loaded shift/branch catalog
            student: Full student record including assignments
            notices: Board receiving operator messages
            membership_months: Length of the renewed membership
            today: Start date of the renewed membership (defaults to today)
        """
        self.session_id = uuid.uuid4().hex[:12]
        self.student = student
        self.notices = notices or NoticeBoard()
        self.details = PersonalDetails.from_student(student)
        start = today or date.today()
        self.membership_start: Optional[date] = start
        self.membership_end: Optional[date] = add_months(start, membership_months)
        self.submitted = False
        self._api = api
        self._catalog = catalog

        sequencer = RequestSequencer()
        self.machine = SelectionStateMachine(
            student,
            catalog,
            AvailabilityResolver(api, sequencer),
            ShiftAvailabilityResolver(api, sequencer),
        )

    @classmethod
    async def open(
        cls,
        api: StudyHallApiClient,
        catalog: CatalogCache,
        student_id: int,
        notices: Optional[NoticeBoard] = None,
        membership_months: int = 1,
        today: Optional[date] = None,
    ) -> "RenewalDialog":
        """
        Fetch the student, prefill the form and load the options for the current selection.

        Raises:
            FetchError: If the student record could not be fetched
        """
        student = await api.get_student(student_id)
        dialog = cls(api, catalog, student, notices, membership_months, today)
        dialog.prefill()
        await dialog.load_options()
        return dialog

    # ---------------------------------------------------------------- prefill

    def prefill(self) -> None:
        """Seed the selection from the student's current branch, assignments and payments."""
        student = self.student

        branch: Optional[Branch] = None
        if student.branch_id:
            branch = self._catalog.branch(student.branch_id) or Branch(
                id=student.branch_id, name=student.branch_name or ""
            )

        seat: Optional[Seat] = None
        if student.assignments:
            first = student.assignments[0]
            seat = Seat(
                id=first.seat_id, seat_number=first.seat_number, occupant_student_id=student.id
            )

        shifts: List[ShiftDefinition] = []
        for assignment in student.assignments:
            shift = self._catalog.shift(assignment.shift_id)
            if shift is None:
                shift = ShiftDefinition(id=assignment.shift_id, title=assignment.shift_title)
            shifts.append(shift)

        locker: Optional[Locker] = None
        if student.locker_id:
            locker = Locker(
                id=student.locker_id,
                locker_number=student.locker_number or "",
                is_assigned=True,
                occupant_student_id=student.id,
            )

        self.machine.hydrate(
            branch=branch,
            seat=seat,
            shifts=shifts,
            locker=locker,
            total_fee=_amount(student.total_fee),
            locker_fee=_amount(student.locker_fee),
            cash=_amount(student.cash),
            online=_amount(student.online),
            security_money=_amount(student.security_money),
            discount=_amount(student.discount),
        )

    @_in_session
    async def load_options(self) -> bool:
        """Resolve seat/locker options and shift eligibility for the prefilled selection."""
        failures = await self.machine.refresh_options()
        for e in failures:
            if e.resource == "available shifts":
                self.notices.error(SHIFT_FETCH_MESSAGE)
            else:
                self.notices.error(SEAT_LOCKER_FETCH_MESSAGE)
        return not failures

    # ------------------------------------------------------------- selections

    async def _guarded(self, action: Awaitable[None], fetch_message: str) -> bool:
        try:
            await action
        except FetchError:
            self.notices.error(fetch_message)
            return False
        except ValidationError as e:
            self.notices.error(e.message)
            return False
        return True

    def _guarded_sync(self, action: Callable[[], None]) -> bool:
        try:
            action()
        except ValidationError as e:
            self.notices.error(e.message)
            return False
        return True

    @_in_session
    async def select_branch(self, branch_id: Optional[int]) -> bool:
        branch = self._catalog.branch(branch_id) if branch_id is not None else None
        if branch_id is not None and branch is None:
            self.notices.error(f"Unknown branch {branch_id}")
            return False
        return await self._guarded(self.machine.set_branch(branch), SEAT_LOCKER_FETCH_MESSAGE)

    @_in_session
    async def select_seat(self, seat_id: Optional[int]) -> bool:
        seat = self.machine.availability.seat(seat_id) if seat_id is not None else None
        if seat_id is not None and seat is None:
            self.notices.error(f"Seat {seat_id} is not available for the selected branch")
            return False
        return await self._guarded(self.machine.set_seat(seat), SHIFT_FETCH_MESSAGE)

    @_in_session
    async def select_shifts(self, shift_ids: Iterable[int]) -> bool:
        return await self._guarded(self.machine.set_shifts(shift_ids), SHIFT_FETCH_MESSAGE)

    @_in_session
    async def select_locker(self, locker_id: Optional[int]) -> bool:
        locker = self.machine.availability.locker(locker_id) if locker_id is not None else None
        if locker_id is not None and locker is None:
            self.notices.error(f"Locker {locker_id} is not available for the selected branch")
            return False
        return await self._guarded(self.machine.set_locker(locker), SEAT_LOCKER_FETCH_MESSAGE)

    def set_total_fee(self, value: Any) -> bool:
        return self._guarded_sync(lambda: self.machine.set_total_fee(value))

    def set_locker_fee(self, value: Any) -> bool:
        return self._guarded_sync(lambda: self.machine.set_locker_fee(value))

    def set_discount(self, value: Any) -> bool:
        return self._guarded_sync(lambda: self.machine.set_discount(value))

    def set_cash(self, value: Any) -> bool:
        return self._guarded_sync(lambda: self.machine.set_cash(value))

    def set_online(self, value: Any) -> bool:
        return self._guarded_sync(lambda: self.machine.set_online(value))

    def set_security_money(self, value: Any) -> bool:
        return self._guarded_sync(lambda: self.machine.set_security_money(value))

    def set_dates(self, start: Optional[date], end: Optional[date]) -> None:
        self.membership_start = start
        self.membership_end = end

    # ------------------------------------------------------------- submission

    def missing_fields(self) -> List[str]:
        """Required fields that are still empty."""
        sel = self.machine.selection
        checks = [
            ("name", bool(self.details.name.strip())),
            ("phone", bool(self.details.phone.strip())),
            ("address", bool(self.details.address.strip())),
            ("total_fee", bool(sel.total_fee.strip())),
            ("branch", sel.branch is not None),
            ("shifts", bool(sel.shifts) and self.machine.shifts_confirmed),
            ("membership_start", self.membership_start is not None),
            ("membership_end", self.membership_end is not None),
        ]
        return [name for name, present in checks if not present]

    def validate(self) -> None:
        """
        Check the form before anything is sent.

        Raises:
            ValidationError: If a required field is empty, no shift is selected, or
                shift availability for the selected seat is unconfirmed
        """
        missing = self.missing_fields()
        if missing:
            message = REQUIRED_FIELDS_MESSAGE
            if "shifts" in missing and self.machine.selection.shifts:
                message = SHIFTS_UNCONFIRMED_MESSAGE
            raise ValidationError(message, missing=missing)

    def build_payload(self) -> RenewalPayload:
        """Snapshot the whole form into a renewal payload (call ``validate`` first)."""
        self.validate()
        sel = self.machine.selection
        details = self.details
        start, end = self.membership_start, self.membership_end
        if sel.branch is None or start is None or end is None:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE, missing=self.missing_fields())
        return RenewalPayload(
            name=details.name,
            registration_number=details.registration_number,
            father_name=details.father_name,
            aadhar_number=details.aadhar_number,
            address=details.address,
            membership_start=start,
            membership_end=end,
            email=details.email,
            phone=details.phone,
            branch_id=sel.branch.id,
            shift_ids=sel.shift_ids,
            seat_id=sel.seat.id if sel.seat else None,
            locker_id=sel.locker.id if sel.locker else None,
            locker_fee=parse_amount(sel.locker_fee),
            discount=optional_amount(sel.discount),
            total_fee=self.machine.fees.total_fee,
            cash=parse_amount(sel.cash),
            online=parse_amount(sel.online),
            security_money=parse_amount(sel.security_money),
            remark=details.remark.strip() or None,
        )

    @_in_session
    async def submit(self) -> bool:
        """
        Validate and send the renewal.

        Nothing is sent when validation fails. When the server rejects the
        renewal its message is shown verbatim and the dialog stays open.

        Returns:
            True if the membership was renewed
        """
        if self.machine.closed:
            self.notices.error("This renewal has already been closed")
            return False

        try:
            payload = self.build_payload()
        except ValidationError as e:
            logger.info(f"Renewal of student {self.student.id} blocked: missing {e.missing}")
            self.notices.error(e.message)
            return False

        try:
            await self._api.renew_student(self.student.id, payload)
        except SubmitError as e:
            self.notices.error(e.message)
            return False

        self.submitted = True
        self.machine.close()
        self.notices.success(f"Membership renewed for {self.student.name}")
        return True

    def cancel(self) -> None:
        """Discard the renewal; nothing is sent."""
        self.machine.close()
        logger.info(f"Renewal of student {self.student.id} cancelled")
