# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from budgetflow.models.base import OrganizationScopedMixin, TimestampMixin, UUIDBase
from budgetflow.models.enums import AllocationStatus, ExpenseStatus, PeriodType


class AllocationRequest(UUIDBase, OrganizationScopedMixin, TimestampMixin, table=True):
    """A ministry's request for budget in one period of a fiscal year."""

    __tablename__ = "allocation_request"
    __table_args__ = (
        sa.Index("ix_allocation_org_fiscal_year_status", "organization_id", "fiscal_year_id", "status"),
        sa.CheckConstraint("requested_amount > 0", name="ck_allocation_requested_positive"),
        sa.CheckConstraint(
            "approved_amount IS NULL OR approved_amount <= requested_amount",
            name="ck_allocation_approved_within_requested",
        ),
        sa.CheckConstraint("version >= 1", name="ck_allocation_version_positive"),
    )

    requester_id: uuid.UUID = Field(index=True)
    period_type: str = Field(default=PeriodType.ANNUAL, max_length=20)
    period_number: int | None = None
    requested_amount: Decimal = Field(max_digits=14, decimal_places=2)
    approved_amount: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    justification: str
    budget_breakdown: list[dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)
    status: str = Field(
        default=AllocationStatus.DRAFT, max_length=50, index=True, sa_column_kwargs={"server_default": "draft"}
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
    submitted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    reviewed_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    reviewed_by: uuid.UUID | None = None
    review_notes: str | None = None


class ExpenseRequest(UUIDBase, OrganizationScopedMixin, TimestampMixin, table=True):
    """A ministry's expense moving through leader, treasury and finance sign-off."""

    __tablename__ = "expense_request"
    __table_args__ = (
        sa.Index("ix_expense_org_fiscal_year_status", "organization_id", "fiscal_year_id", "status"),
        sa.CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        sa.CheckConstraint("version >= 1", name="ck_expense_version_positive"),
    )

    requester_id: uuid.UUID = Field(index=True)
    period_type: str = Field(default=PeriodType.ANNUAL, max_length=20)
    period_number: int | None = None
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    category: str = Field(max_length=255)
    description: str | None = None
    status: str = Field(
        default=ExpenseStatus.DRAFT, max_length=50, index=True, sa_column_kwargs={"server_default": "draft"}
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
    submitted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]

    leader_decided_by: uuid.UUID | None = None
    leader_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    leader_notes: str | None = None
    treasury_decided_by: uuid.UUID | None = None
    treasury_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    treasury_notes: str | None = None
    finance_decided_by: uuid.UUID | None = None
    finance_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    finance_notes: str | None = None
