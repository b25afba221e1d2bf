"""Tests for the operator notice board."""

from studyhall.services.notices import NoticeBoard


def test_notices_kept_in_order():
    board = NoticeBoard()
    board.info("Loading")
    board.error("Failed to fetch seats and lockers")
    board.success("Membership renewed for Asha")

    assert [n.level for n in board.items] == ["info", "error", "success"]
    assert board.latest.message == "Membership renewed for Asha"
    assert [n.message for n in board.errors()] == ["Failed to fetch seats and lockers"]


def test_clear():
    board = NoticeBoard()
    board.error("x")
    board.clear()

    assert board.items == []
    assert board.latest is None
