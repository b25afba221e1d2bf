"""Business logic services module."""

import importlib as _importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .api.client import StudyHallApiClient as StudyHallApiClient
    from .expired_memberships import ExpiredMembershipsScreen as ExpiredMembershipsScreen
    from .notices import NoticeBoard as NoticeBoard

_LAZY_MODULE_MAP = {
    "StudyHallApiClient": ("studyhall.services.api.client", "StudyHallApiClient"),
    "ExpiredMembershipsScreen": (
        "studyhall.services.expired_memberships",
        "ExpiredMembershipsScreen",
    ),
    "NoticeBoard": ("studyhall.services.notices", "NoticeBoard"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str):
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
