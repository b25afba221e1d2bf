#!/usr/bin/env python3
"""
Study hall renewal desk.

Command-line entry point: list expired memberships and inspect the renewal
options the desk would offer a student.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from studyhall.core.config import StudyHallSettings, load_settings
from studyhall.core.exceptions import ConfigurationError, FetchError, StudyHallError
from studyhall.core.logger import setup_structured_logging
from studyhall.services.api.client import StudyHallApiClient
from studyhall.services.expired_memberships import ExpiredMembershipsScreen, OperatorPermissions
from studyhall.services.notices import NoticeBoard
from studyhall.services.renewal.catalog import CatalogCache
from studyhall.services.renewal.dialog import RenewalDialog
from studyhall.utils.helpers import whatsapp_url


def _print_notices(notices: NoticeBoard) -> None:
    for notice in notices.errors():
        print(f"! {notice.message}", file=sys.stderr)


async def list_expired(
    settings: StudyHallSettings, branch_id: Optional[int], search: str
) -> int:
    """Print the expired memberships, optionally filtered by branch and search term."""
    async with StudyHallApiClient.from_settings(settings) as api:
        screen = ExpiredMembershipsScreen(api, OperatorPermissions(), settings=settings)
        screen.branch_filter = branch_id
        await screen.activate()
        screen.set_search(search)

        for student in screen.visible_students:
            print(
                f"{student.id:>6}  {student.name:<28} {student.phone:<14} "
                f"{student.branch_name or '-':<16} expired {student.membership_end or '-'}  "
                f"{whatsapp_url(student.phone) if student.phone else ''}"
            )
        print(f"{len(screen.visible_students)} expired memberships")
        _print_notices(screen.notices)
        return 1 if screen.notices.errors() else 0


async def show_options(settings: StudyHallSettings, student_id: int) -> int:
    """Print the seat, locker and shift options a renewal of the student would offer."""
    notices = NoticeBoard()
    async with StudyHallApiClient.from_settings(settings) as api:
        catalog = CatalogCache(api)
        try:
            await catalog.load()
            dialog = await RenewalDialog.open(
                api,
                catalog,
                student_id,
                notices=notices,
                membership_months=settings.default_membership_months,
            )
        except FetchError as e:
            print(f"! {e.message}", file=sys.stderr)
            return 1

        machine = dialog.machine
        sel = machine.selection
        print(f"Student:  {dialog.student.name} (#{dialog.student.id})")
        print(f"Branch:   {sel.branch.name if sel.branch else '-'}")
        print(f"Period:   {dialog.membership_start} .. {dialog.membership_end}")
        print("Seats:    " + ", ".join(option.label for option in machine.seat_options))
        print("Lockers:  " + ", ".join(option.label for option in machine.locker_options))
        print("Shifts:")
        for option in machine.shift_options:
            marker = "x" if option.id in sel.shift_ids else " "
            state = "" if option.eligible else "  (taken)"
            print(f"  [{marker}] {option.label}{state}")
        fees = machine.fees
        print(
            f"Fee:      {sel.total_fee}{' (locked)' if fees.fee_locked else ''}  "
            f"paid {fees.paid_display}  due {fees.due_display}"
        )
        dialog.cancel()
        _print_notices(notices)
        return 1 if notices.errors() else 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Study hall renewal desk")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to LOG_LEVEL from the environment)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    expired = subparsers.add_parser("expired", help="List expired memberships")
    expired.add_argument("--branch", type=int, default=None, help="Only show this branch ID")
    expired.add_argument("--search", default="", help="Filter by name, phone or registration")

    options = subparsers.add_parser("options", help="Show renewal options for a student")
    options.add_argument("student_id", type=int, help="Student ID")

    args = parser.parse_args()

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        sys.exit(2)

    setup_structured_logging(args.log_level or settings.log_level, json_format=settings.log_json)
    logger = logging.getLogger(__name__)

    try:
        if args.command == "expired":
            code = asyncio.run(list_expired(settings, args.branch, args.search))
        else:
            code = asyncio.run(show_options(settings, args.student_id))
    except StudyHallError as e:
        logger.error(f"Fatal error: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
