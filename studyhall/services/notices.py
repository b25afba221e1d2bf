"""Operator-facing notices (success and error messages shown on the screen)."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger


@dataclass(frozen=True)
class Notice:
    """One message for the operator."""

    level: str  # "success" | "error" | "info"
    message: str
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class NoticeBoard:
    """Collects notices in the order they were raised."""

    def __init__(self) -> None:
        self._items: List[Notice] = []

    def success(self, message: str) -> None:
        logger.info(message)
        self._items.append(Notice("success", message))

    def error(self, message: str) -> None:
        logger.warning(message)
        self._items.append(Notice("error", message))

    def info(self, message: str) -> None:
        logger.info(message)
        self._items.append(Notice("info", message))

    @property
    def items(self) -> List[Notice]:
        return list(self._items)

    @property
    def latest(self) -> Optional[Notice]:
        return self._items[-1] if self._items else None

    def errors(self) -> List[Notice]:
        return [n for n in self._items if n.level == "error"]

    def clear(self) -> None:
        self._items.clear()
