"""
Royalty calculation and workflow rules.

  Revenue Share: revenue × royalty_rate / 100
  Flat Fee:      flat_fee_amount, independent of revenue
  minimum_payment floors either result.

Workflow: Pending → Approved → Paid, forward only.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

CENTS = Decimal("0.01")

ROYALTY_STATUS_ORDER = {"Pending": 0, "Approved": 1, "Paid": 2}
# Once paid, the revenue and amount on a statement are final
REVENUE_EDITABLE_STATUSES = ("Pending", "Approved")


class RoyaltyCalculationError(Exception):
    pass


@dataclass
class RoyaltyCalculation:
    royalty_type: str
    revenue: Decimal
    royalty_rate: Optional[Decimal]
    gross_amount: Decimal
    royalty_amount: Decimal
    minimum_applied: bool


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_royalty(contract, revenue) -> RoyaltyCalculation:
    revenue = _money(revenue)
    if revenue < 0:
        raise RoyaltyCalculationError("Revenue cannot be negative")

    royalty_type = contract.royalty_type or "Revenue Share"
    rate = None
    if royalty_type == "Flat Fee":
        if contract.flat_fee_amount is None:
            raise RoyaltyCalculationError("Contract has no flat fee amount")
        gross = _money(contract.flat_fee_amount)
    else:
        if contract.royalty_rate is None:
            raise RoyaltyCalculationError("Contract has no royalty rate")
        rate = Decimal(str(contract.royalty_rate))
        gross = _money(revenue * rate / Decimal(100))

    amount = gross
    minimum_applied = False
    if contract.minimum_payment is not None:
        minimum = _money(contract.minimum_payment)
        if gross < minimum:
            amount = minimum
            minimum_applied = True

    return RoyaltyCalculation(
        royalty_type=royalty_type,
        revenue=revenue,
        royalty_rate=rate,
        gross_amount=gross,
        royalty_amount=amount,
        minimum_applied=minimum_applied,
    )


def can_transition(current: str, target: str) -> bool:
    """Forward-only; staying put is allowed."""
    if current not in ROYALTY_STATUS_ORDER or target not in ROYALTY_STATUS_ORDER:
        return False
    return ROYALTY_STATUS_ORDER[target] >= ROYALTY_STATUS_ORDER[current]


def can_edit_revenue(status: Optional[str]) -> bool:
    return (status or "Pending") in REVENUE_EDITABLE_STATUSES


def next_report_due(frequency: Optional[str], today: Optional[date] = None) -> Optional[date]:
    today = today or date.today()
    if frequency == "Monthly":
        year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
        return date(year, month, 15)
    if frequency == "Quarterly":
        next_quarter_month = ((today.month - 1) // 3 + 1) * 3 + 1
        if next_quarter_month > 12:
            return date(today.year + 1, 1, 15)
        return date(today.year, next_quarter_month, 15)
    if frequency == "Annually":
        return date(today.year + 1, 1, 31)
    return None
