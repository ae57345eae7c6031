from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from budgetflow.models.enums import PeriodType

PERIOD_RANGES: dict[PeriodType, int] = {
    PeriodType.QUARTERLY: 4,
    PeriodType.MONTHLY: 12,
}


def period_error(period_type: PeriodType, period_number: int | None) -> str | None:
    """Describe what is wrong with a period, or return None when it is valid."""
    if period_type == PeriodType.ANNUAL:
        if period_number is not None:
            return "period_number must be omitted for annual periods"
        return None
    upper = PERIOD_RANGES[period_type]
    if period_number is None:
        return f"period_number is required for {period_type.value} periods"
    if not 1 <= period_number <= upper:
        return f"period_number for {period_type.value} periods must be between 1 and {upper}"
    return None


class BreakdownItem(BaseModel):
    """One line of an allocation's budget breakdown."""

    category: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=1000)
    amount: Decimal = Field(ge=0, max_digits=14, decimal_places=2)


class VersionedPayload(BaseModel):
    """Base for every mutation: the version the caller last observed."""

    version: int = Field(ge=1)
