"""Insurance and commission maths for a deal.

Everything here is pure: a deal snapshot (and optionally the rep's
profile) in, numbers out. Values are kept as full-precision floats and
only rounded by :func:`format_currency` at the display boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from roofline.core.enums import CommissionLevel
from roofline.schemas.deals import Deal, RepProfile

SALES_TAX_RATE = 0.0825

COMMISSION_LEVEL_PERCENTAGES: dict[str, float] = {
    CommissionLevel.JUNIOR.value: 5.0,
    CommissionLevel.SENIOR.value: 10.0,
    CommissionLevel.MANAGER.value: 13.0,
}

WASTE_FACTORS = {"gable": 0.10, "hip": 0.15, "mixed": 0.12}

RCV_TOLERANCE = 0.01

CommissionSource = Literal["override", "stored", "calculated"]


def sales_tax(rcv: float) -> float:
    return rcv * SALES_TAX_RATE


def base_amount(rcv: float) -> float:
    """RCV net of sales tax, i.e. ``rcv * 0.9175``."""
    return rcv - sales_tax(rcv)


def effective_rcv(deal: Deal) -> float:
    """RCV as entered, or ACV + depreciation when RCV was never filled in."""
    if deal.rcv is not None:
        return float(deal.rcv)
    return float(deal.acv or 0) + float(deal.depreciation or 0)


def commission_percent(rep: RepProfile | None) -> float:
    """Explicit per-rep percentage first, then the level default, then 0."""
    if rep is None:
        return 0.0
    if rep.default_commission_percent is not None and rep.default_commission_percent > 0:
        return float(rep.default_commission_percent)
    if rep.commission_level is None:
        return 0.0
    return COMMISSION_LEVEL_PERCENTAGES.get(rep.commission_level.value, 0.0)


@dataclass(frozen=True)
class CommissionBreakdown:
    rcv: float
    sales_tax: float
    base_amount: float
    percent: float
    amount: float
    source: CommissionSource
    override_reason: str | None = None

    @property
    def is_override(self) -> bool:
        return self.source == "override"

    @property
    def banner(self) -> str:
        if self.source == "override":
            text = f"Commission manually set to {format_currency(self.amount)} by admin"
            if self.override_reason:
                text = f"{text}: {self.override_reason}"
            return text
        if self.source == "stored":
            return f"Commission on record: {format_currency(self.amount)}"
        return (
            f"Estimated commission: {format_currency(self.amount)} "
            f"({self.percent:g}% of {format_currency(self.base_amount)})"
        )


def commission_amount(
    rcv: float,
    percent: float,
    override_amount: float | None = None,
    stored_amount: float | None = None,
) -> tuple[float, CommissionSource]:
    """Admin override beats the persisted record, which beats a fresh calculation."""
    if override_amount is not None:
        return float(override_amount), "override"
    if stored_amount is not None:
        return float(stored_amount), "stored"
    return base_amount(rcv) * percent / 100, "calculated"


def calculate_commission(deal: Deal, rep: RepProfile | None = None) -> CommissionBreakdown:
    rcv = effective_rcv(deal)
    percent = commission_percent(rep)
    record = deal.commission_record
    stored = record.commission_amount if record is not None else None
    amount, source = commission_amount(
        rcv,
        percent,
        override_amount=deal.commission_override_amount,
        stored_amount=stored,
    )
    return CommissionBreakdown(
        rcv=rcv,
        sales_tax=sales_tax(rcv),
        base_amount=base_amount(rcv),
        percent=percent,
        amount=amount,
        source=source,
        override_reason=deal.commission_override_reason if source == "override" else None,
    )


@dataclass(frozen=True)
class PaymentChecks:
    first_check: float
    second_check: float
    rcv_matches: bool
    reminder: str | None


def payment_checks(deal: Deal) -> PaymentChecks:
    """Split the claim into the two checks the homeowner receives.

    The RCV consistency flag only drives reminder text; mismatches are
    never rejected.
    """
    acv = float(deal.acv or 0)
    deductible = float(deal.deductible or 0)
    depreciation = float(deal.depreciation or 0)
    first = acv - deductible
    reminder = None
    rcv_matches = True
    if deal.rcv is not None and (deal.acv is not None or deal.depreciation is not None):
        expected = acv + depreciation
        rcv_matches = abs(float(deal.rcv) - expected) <= RCV_TOLERANCE
        if not rcv_matches:
            reminder = (
                f"RCV {format_currency(deal.rcv)} does not equal ACV + depreciation "
                f"({format_currency(expected)}). Double-check the loss statement."
            )
    return PaymentChecks(first_check=first, second_check=depreciation, rcv_matches=rcv_matches, reminder=reminder)


def calculate_insurance_amounts(rcv: float, depreciation_percent: float, deductible: float) -> dict[str, float]:
    """Estimate the claim split from an RCV and a depreciation rate."""
    depreciation = rcv * (depreciation_percent / 100)
    acv = rcv - depreciation
    return {
        "rcv": rcv,
        "depreciation": depreciation,
        "acv": acv,
        "deductible": deductible,
        "first_check": acv - deductible,
        "second_check": depreciation,
        "homeowner_out_of_pocket": deductible,
    }


def calculate_waste(actual_squares: float, roof_type: str) -> float:
    factor = WASTE_FACTORS.get(roof_type)
    if factor is None:
        raise ValueError(f"Unknown roof type: {roof_type}")
    return actual_squares * factor


def calculate_total_squares(actual_squares: float, roof_type: str) -> float:
    return actual_squares + calculate_waste(actual_squares, roof_type)


def format_currency(value: float | None) -> str:
    if value is None:
        return "$0.00"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"
