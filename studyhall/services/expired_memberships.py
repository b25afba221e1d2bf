"""Expired memberships screen - list, search, renew and delete."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from loguru import logger

from ..core.config.settings import StudyHallSettings, get_settings
from ..core.exceptions import FetchError, PermissionDeniedError, SubmitError
from ..models.schemas import Student
from ..utils.helpers import filter_students
from .api.client import StudyHallApiClient
from .notices import NoticeBoard
from .renewal.catalog import CatalogCache
from .renewal.dialog import RenewalDialog

ALL_BRANCHES_LABEL = "All Branches"

RENEW_ROLES = frozenset({"admin", "staff"})
DELETE_PERMISSION = "manage_students"


@dataclass(frozen=True)
class OperatorPermissions:
    """What the signed-in operator may do; computed once from their role."""

    can_renew: bool = False
    can_delete: bool = False

    @classmethod
    def from_user(
        cls, role: Optional[str], permissions: Iterable[str] = ()
    ) -> "OperatorPermissions":
        role = (role or "").lower()
        granted = set(permissions)
        return cls(
            can_renew=role in RENEW_ROLES,
            can_delete=role == "admin" or DELETE_PERMISSION in granted,
        )

    def require(self, action: str) -> None:
        """
        Raises:
            PermissionDeniedError: If the operator may not perform ``action``
        """
        allowed = {"renew memberships": self.can_renew, "delete students": self.can_delete}
        if not allowed.get(action, False):
            raise PermissionDeniedError(action)


@dataclass(frozen=True)
class BranchFilterOption:
    value: Optional[int]
    label: str


class ExpiredMembershipsScreen:
    """
    Lists students whose membership has expired and hosts the renewal dialog.

    Every failure is turned into a notice on ``notices``; the screen itself
    never raises for remote errors.
    """

    def __init__(
        self,
        api: StudyHallApiClient,
        permissions: OperatorPermissions,
        settings: Optional[StudyHallSettings] = None,
        notices: Optional[NoticeBoard] = None,
    ):
        self.api = api
        self.permissions = permissions
        self.settings = settings or get_settings()
        self.notices = notices or NoticeBoard()
        self.catalog = CatalogCache(api)
        self.students: List[Student] = []
        self.branch_filter: Optional[int] = None
        self.search_term = ""
        self.dialog: Optional[RenewalDialog] = None

    async def activate(self) -> None:
        """Load the catalogs and the expired list."""
        try:
            await self.catalog.load()
        except FetchError:
            self.notices.error("Failed to fetch supporting data.")
        await self.refresh()

    async def refresh(self) -> bool:
        """
        Re-fetch the expired list for the current branch filter.

        On failure the previous list stays on screen.
        """
        try:
            self.students = await self.api.get_expired_memberships(self.branch_filter)
        except FetchError:
            self.notices.error("Failed to fetch expired memberships.")
            return False
        logger.info(f"Loaded {len(self.students)} expired memberships")
        return True

    @property
    def branch_filter_options(self) -> Tuple[BranchFilterOption, ...]:
        return (BranchFilterOption(None, ALL_BRANCHES_LABEL),) + tuple(
            BranchFilterOption(branch.id, branch.name) for branch in self.catalog.branches
        )

    async def set_branch_filter(self, branch_id: Optional[int]) -> bool:
        self.branch_filter = branch_id
        return await self.refresh()

    def set_search(self, term: str) -> None:
        self.search_term = term

    @property
    def visible_students(self) -> List[Student]:
        return filter_students(self.students, self.search_term)

    # ---------------------------------------------------------------- renewal

    async def open_renewal(self, student_id: int) -> Optional[RenewalDialog]:
        """Open the renewal dialog for a student, replacing any dialog already open."""
        try:
            self.permissions.require("renew memberships")
        except PermissionDeniedError as e:
            self.notices.error(e.message)
            return None

        if self.dialog is not None:
            self.dialog.cancel()
            self.dialog = None

        try:
            self.dialog = await RenewalDialog.open(
                self.api,
                self.catalog,
                student_id,
                notices=self.notices,
                membership_months=self.settings.default_membership_months,
            )
        except FetchError:
            self.notices.error("Failed to load student details for renewal.")
            return None
        return self.dialog

    async def submit_renewal(self) -> bool:
        """Submit the open dialog; on success close it and reload the list."""
        if self.dialog is None:
            self.notices.error("No renewal is open")
            return False
        if not await self.dialog.submit():
            return False
        self.dialog = None
        await self.refresh()
        return True

    def cancel_renewal(self) -> None:
        if self.dialog is not None:
            self.dialog.cancel()
            self.dialog = None

    # ----------------------------------------------------------------- delete

    async def delete_student(self, student_id: int) -> bool:
        """Delete a student and drop the row from the list."""
        try:
            self.permissions.require("delete students")
        except PermissionDeniedError as e:
            self.notices.error(e.message)
            return False

        try:
            await self.api.delete_student(student_id)
        except SubmitError as e:
            self.notices.error(e.message)
            return False

        self.students = [s for s in self.students if s.id != student_id]
        self.notices.success("Student deleted successfully")
        return True
