# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from budgetflow.models.enums import ExpenseStatus, PeriodType
from budgetflow.schemas.common import VersionedPayload, period_error

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateExpensePayload(BaseModel):
    """Request body for a new expense request."""

    fiscal_year_id: uuid.UUID
    ministry_id: uuid.UUID
    period_type: PeriodType = PeriodType.ANNUAL
    period_number: int | None = None
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    category: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    submit: bool = False

    @field_validator("category")
    @classmethod
    def _category_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "category must not be empty"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _validate_period(self) -> Self:
        error = period_error(self.period_type, self.period_number)
        if error is not None:
            raise ValueError(error)
        return self


class UpdateExpensePayload(VersionedPayload):
    """Partial update of a draft expense."""

    period_type: PeriodType | None = None
    period_number: int | None = None
    amount: Decimal | None = Field(default=None, gt=0, max_digits=14, decimal_places=2)
    category: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class AdvanceExpensePayload(VersionedPayload):
    """Stage owner's decision on a pending expense."""

    action: Literal["approve", "deny"]
    notes: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ApprovalDecision(BaseModel):
    """One stage's sign-off on an expense."""

    stage: Literal["leader", "treasury", "finance"]
    decided_by: uuid.UUID
    decided_at: datetime | None
    notes: str | None


class ExpenseRequestResponse(BaseModel):
    """Response schema for a single expense request."""

    id: uuid.UUID
    organization_id: uuid.UUID
    fiscal_year_id: uuid.UUID
    ministry_id: uuid.UUID
    requester_id: uuid.UUID
    period_type: PeriodType
    period_number: int | None
    amount: Decimal
    category: str
    description: str | None
    status: ExpenseStatus
    version: int
    created_at: datetime
    submitted_at: datetime | None
    approver_trail: list[ApprovalDecision]


class ExpenseRequestListResponse(BaseModel):
    """Paginated list of expense requests."""

    items: list[ExpenseRequestResponse]
    total: int
