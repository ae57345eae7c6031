# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from budgetflow.models.enums import AllocationStatus, PeriodType
from budgetflow.schemas.common import BreakdownItem, VersionedPayload, period_error

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateAllocationPayload(BaseModel):
    """Request body for drafting a new allocation request."""

    fiscal_year_id: uuid.UUID
    ministry_id: uuid.UUID
    period_type: PeriodType = PeriodType.ANNUAL
    period_number: int | None = None
    requested_amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    justification: str = Field(max_length=5000)
    budget_breakdown: list[BreakdownItem] = Field(default_factory=list)

    @field_validator("justification")
    @classmethod
    def _justification_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "justification must not be empty"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _validate_period(self) -> Self:
        error = period_error(self.period_type, self.period_number)
        if error is not None:
            raise ValueError(error)
        return self


class UpdateAllocationPayload(VersionedPayload):
    """Partial update of a draft. Omitted fields keep their current value."""

    period_type: PeriodType | None = None
    period_number: int | None = None
    requested_amount: Decimal | None = Field(default=None, gt=0, max_digits=14, decimal_places=2)
    justification: str | None = Field(default=None, max_length=5000)
    budget_breakdown: list[BreakdownItem] | None = None


class ReviewAllocationPayload(VersionedPayload):
    """Reviewer decision on a submitted allocation request."""

    decision: Literal["approve", "reject"]
    approved_amount: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    notes: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AllocationRequestResponse(BaseModel):
    """Response schema for a single allocation request."""

    id: uuid.UUID
    organization_id: uuid.UUID
    fiscal_year_id: uuid.UUID
    ministry_id: uuid.UUID
    requester_id: uuid.UUID
    period_type: PeriodType
    period_number: int | None
    requested_amount: Decimal
    approved_amount: Decimal | None
    justification: str
    budget_breakdown: list[BreakdownItem]
    # Advisory only: the breakdown is never rescaled to match the requested amount.
    breakdown_total: Decimal
    breakdown_mismatch: bool
    status: AllocationStatus
    version: int
    created_at: datetime
    submitted_at: datetime | None
    reviewed_at: datetime | None
    reviewed_by: uuid.UUID | None
    review_notes: str | None


class AllocationRequestListResponse(BaseModel):
    """Paginated list of allocation requests."""

    items: list[AllocationRequestResponse]
    total: int
