"""Membership fee reconciliation.

Everything here is a pure function of the current selection; nothing talks
to the network and nothing is cached.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ...models.schemas import ShiftDefinition

# Value the membership fee falls back to whenever the shift count leaves "exactly one"
RESET_FEE_INPUT = "0"


def parse_amount(value: Any) -> float:
    """
    Read an operator-typed amount.

    Missing, blank or non-numeric input counts as 0, never as an error.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        try:
            amount = float(str(value).strip())
        except ValueError:
            return 0.0
    return amount if math.isfinite(amount) else 0.0


def format_amount(value: float) -> str:
    """Render an amount as input text: ``300`` for whole numbers, ``12.5`` otherwise."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_money(value: float) -> str:
    """Render a derived amount for display (two decimals)."""
    return f"{value:.2f}"


def is_fee_locked(shifts: Sequence[ShiftDefinition]) -> bool:
    """The membership fee is system owned exactly when one shift is selected."""
    return len(shifts) == 1


def fee_input_for(shifts: Sequence[ShiftDefinition]) -> str:
    """
    Membership fee text after the shift selection changed.

    One shift: that shift's nominal fee. Any other count: reset to "0" and
    left for the operator to fill in.
    """
    if is_fee_locked(shifts):
        return format_amount(shifts[0].fee)
    return RESET_FEE_INPUT


@dataclass(frozen=True)
class FeeBreakdown:
    """Derived financial fields of a renewal."""

    total_fee: float
    discount: float
    paid: float
    due: float
    fee_locked: bool

    @property
    def paid_display(self) -> str:
        return format_money(self.paid)

    @property
    def due_display(self) -> str:
        return format_money(self.due)


def reconcile_fees(
    shifts: Sequence[ShiftDefinition],
    total_fee: Any,
    discount: Any = None,
    cash: Any = None,
    online: Any = None,
) -> FeeBreakdown:
    """
    Derive paid and due from the current inputs.

    ``paid = cash + online`` and ``due = total_fee - discount - paid``. Due may
    be negative (overpayment) and is reported as is.

    Args:
        shifts: Currently selected shifts
        total_fee: Membership fee input (ignored when exactly one shift is selected)
        discount: Discount input
        cash: Cash payment input
        online: Online payment input
    """
    locked = is_fee_locked(shifts)
    fee = shifts[0].fee if locked else parse_amount(total_fee)
    discount_amount = parse_amount(discount)
    paid = parse_amount(cash) + parse_amount(online)
    return FeeBreakdown(
        total_fee=fee,
        discount=discount_amount,
        paid=paid,
        due=fee - discount_amount - paid,
        fee_locked=locked,
    )


def optional_amount(value: Any) -> Optional[float]:
    """Amount for optional payload fields: zero or unreadable input is left out."""
    amount = parse_amount(value)
    return amount or None
