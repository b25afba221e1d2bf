"""Renewal engine: catalog, availability, shift eligibility, selection and fees."""

from .availability import AvailabilityResolver, BranchAvailability, ResourceOption
from .catalog import Catalog, CatalogCache
from .dialog import RenewalDialog
from .fees import FeeBreakdown, reconcile_fees
from .selection import RenewalSelection, SelectionState, SelectionStateMachine
from .sequencer import RequestSequencer
from .shift_eligibility import ShiftAvailabilityResolver, ShiftEligibility, ShiftOption

__all__ = [
    "AvailabilityResolver",
    "BranchAvailability",
    "ResourceOption",
    "Catalog",
    "CatalogCache",
    "RenewalDialog",
    "FeeBreakdown",
    "reconcile_fees",
    "RenewalSelection",
    "SelectionState",
    "SelectionStateMachine",
    "RequestSequencer",
    "ShiftAvailabilityResolver",
    "ShiftEligibility",
    "ShiftOption",
]
