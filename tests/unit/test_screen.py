"""Tests for the expired memberships screen."""

import pytest

from studyhall.core.exceptions import FetchError, SubmitError
from studyhall.models.schemas import Student
from studyhall.services.expired_memberships import (
    ALL_BRANCHES_LABEL,
    ExpiredMembershipsScreen,
    OperatorPermissions,
)

STAFF = OperatorPermissions(can_renew=True, can_delete=False)
ADMIN = OperatorPermissions(can_renew=True, can_delete=True)


@pytest.fixture
def screen(mock_api, test_settings):
    return ExpiredMembershipsScreen(mock_api, ADMIN, settings=test_settings)


class TestOperatorPermissions:
    @pytest.mark.parametrize(
        "role,permissions,can_renew,can_delete",
        [
            ("admin", [], True, True),
            ("staff", [], True, False),
            ("staff", ["manage_students"], True, True),
            ("viewer", ["manage_students"], False, True),
            (None, [], False, False),
        ],
    )
    def test_from_user(self, role, permissions, can_renew, can_delete):
        facts = OperatorPermissions.from_user(role, permissions)

        assert facts.can_renew is can_renew
        assert facts.can_delete is can_delete


class TestExpiredList:
    """Tests for loading and filtering the list."""

    @pytest.mark.asyncio
    async def test_activate_loads_catalog_and_list(self, screen, mock_api):
        await screen.activate()

        assert screen.catalog.is_loaded
        assert [s.id for s in screen.students] == [42]
        mock_api.get_expired_memberships.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_branch_filter_options(self, screen):
        await screen.activate()

        options = screen.branch_filter_options
        assert options[0].label == ALL_BRANCHES_LABEL
        assert options[0].value is None
        assert [o.value for o in options[1:]] == [1, 2]

    @pytest.mark.asyncio
    async def test_branch_filter_reloads(self, screen, mock_api):
        await screen.activate()

        await screen.set_branch_filter(2)

        mock_api.get_expired_memberships.assert_awaited_with(2)

    @pytest.mark.asyncio
    async def test_catalog_failure_still_lists(self, screen, mock_api):
        mock_api.get_schedules.side_effect = FetchError("down", resource="schedules")

        await screen.activate()

        assert screen.notices.errors()[0].message == "Failed to fetch supporting data."
        assert len(screen.students) == 1

    @pytest.mark.asyncio
    async def test_list_failure_keeps_previous_rows(self, screen, mock_api):
        await screen.activate()
        mock_api.get_expired_memberships.side_effect = FetchError("down")

        assert await screen.refresh() is False

        assert len(screen.students) == 1
        assert screen.notices.latest.message == "Failed to fetch expired memberships."

    @pytest.mark.asyncio
    async def test_search(self, screen, mock_api, sample_student):
        other = Student(id=7, name="Ravi Kumar", phone="91234 00000", registration_number="R-7")
        mock_api.get_expired_memberships.return_value = [sample_student, other]
        await screen.activate()

        screen.set_search("asha")
        assert [s.id for s in screen.visible_students] == [42]
        screen.set_search("r-7")
        assert [s.id for s in screen.visible_students] == [7]
        screen.set_search("")
        assert len(screen.visible_students) == 2


class TestRenewalFlow:
    """Tests for opening and submitting renewals from the screen."""

    @pytest.mark.asyncio
    async def test_submit_closes_dialog_and_refreshes(self, screen, mock_api):
        await screen.activate()
        dialog = await screen.open_renewal(42)
        assert dialog is not None

        assert await screen.submit_renewal() is True

        assert screen.dialog is None
        assert mock_api.get_expired_memberships.await_count == 2
        assert screen.notices.latest.level == "success"
        assert screen.notices.latest.message == "Membership renewed for Asha Verma"

    @pytest.mark.asyncio
    async def test_rejected_submit_keeps_dialog(self, screen, mock_api):
        await screen.activate()
        await screen.open_renewal(42)
        mock_api.renew_student.side_effect = SubmitError("Payment mismatch", 400)

        assert await screen.submit_renewal() is False

        assert screen.dialog is not None
        assert screen.notices.latest.message == "Payment mismatch"

    @pytest.mark.asyncio
    async def test_open_failure_becomes_notice(self, screen, mock_api):
        await screen.activate()
        mock_api.get_student.side_effect = FetchError("gone", resource="student")

        assert await screen.open_renewal(42) is None
        assert screen.notices.latest.message == "Failed to load student details for renewal."

    @pytest.mark.asyncio
    async def test_renew_requires_permission(self, mock_api, test_settings):
        screen = ExpiredMembershipsScreen(mock_api, OperatorPermissions(), settings=test_settings)

        assert await screen.open_renewal(42) is None

        assert screen.notices.latest.message == "Insufficient permissions to renew memberships"
        mock_api.get_student.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel(self, screen):
        await screen.activate()
        dialog = await screen.open_renewal(42)

        screen.cancel_renewal()

        assert screen.dialog is None
        assert dialog.machine.closed

    @pytest.mark.asyncio
    async def test_submit_without_dialog(self, screen):
        assert await screen.submit_renewal() is False


class TestDelete:
    """Tests for deleting students."""

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, screen, mock_api):
        await screen.activate()

        assert await screen.delete_student(42) is True

        mock_api.delete_student.assert_awaited_once_with(42)
        assert screen.students == []

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_row(self, screen, mock_api):
        await screen.activate()
        mock_api.delete_student.side_effect = SubmitError("Student has dues", 409)

        assert await screen.delete_student(42) is False

        assert len(screen.students) == 1
        assert screen.notices.latest.message == "Student has dues"

    @pytest.mark.asyncio
    async def test_delete_requires_permission(self, mock_api, test_settings):
        screen = ExpiredMembershipsScreen(mock_api, STAFF, settings=test_settings)

        assert await screen.delete_student(42) is False

        mock_api.delete_student.assert_not_called()
