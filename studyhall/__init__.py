"""Study hall renewal desk - expired memberships and renewal selection engine."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

__version__ = "1.0.0"
__license__ = "MIT"

if TYPE_CHECKING:
    from .core.config.settings import StudyHallSettings as StudyHallSettings
    from .core.config.settings import get_settings as get_settings
    from .core.logger import setup_structured_logging as setup_structured_logging
    from .services.api.client import StudyHallApiClient as StudyHallApiClient
    from .services.expired_memberships import ExpiredMembershipsScreen as ExpiredMembershipsScreen
    from .services.expired_memberships import OperatorPermissions as OperatorPermissions
    from .services.renewal.dialog import RenewalDialog as RenewalDialog
    from .services.renewal.selection import SelectionStateMachine as SelectionStateMachine

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    # Core
    "StudyHallSettings": ("studyhall.core.config.settings", "StudyHallSettings"),
    "get_settings": ("studyhall.core.config.settings", "get_settings"),
    "setup_structured_logging": ("studyhall.core.logger", "setup_structured_logging"),
    # Services
    "StudyHallApiClient": ("studyhall.services.api.client", "StudyHallApiClient"),
    "ExpiredMembershipsScreen": (
        "studyhall.services.expired_memberships",
        "ExpiredMembershipsScreen",
    ),
    "OperatorPermissions": ("studyhall.services.expired_memberships", "OperatorPermissions"),
    "RenewalDialog": ("studyhall.services.renewal.dialog", "RenewalDialog"),
    "SelectionStateMachine": ("studyhall.services.renewal.selection", "SelectionStateMachine"),
}

# Auto-derive __all__ from _LAZY_MODULE_MAP to prevent manual sync issues
__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        # Cache in module globals to avoid repeated imports
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
