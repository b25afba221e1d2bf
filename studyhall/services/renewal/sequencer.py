"""Per-slot request versioning for stale-response suppression."""

from typing import Dict


class RequestSequencer:
    """
    Hands out monotonically increasing tickets per selection slot.

    A response is only applied when the ticket it was issued under is still
    the latest one for its slot; anything older has been superseded by a
    newer selection and must be dropped.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, int] = {}

    def begin(self, slot: str) -> int:
        """Start a new request for a slot and return its ticket."""
        ticket = self._latest.get(slot, 0) + 1
        self._latest[slot] = ticket
        return ticket

    def is_current(self, slot: str, ticket: int) -> bool:
        """Check whether a ticket is still the latest for its slot."""
        return self._latest.get(slot, 0) == ticket

    def supersede(self, slot: str) -> None:
        """Invalidate every outstanding request for a slot."""
        self.begin(slot)

    def latest(self, slot: str) -> int:
        return self._latest.get(slot, 0)
