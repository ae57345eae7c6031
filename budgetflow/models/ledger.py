# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _now_utc() -> datetime:
    return datetime.now(UTC)


class BudgetLedgerEntry(SQLModel, table=True):
    """Running allocated/spent/pending totals for one ministry period.

    Remaining is derived on read. Rows are only ever adjusted through
    ``budgetflow.services.ledger.adjust``.
    """

    __tablename__ = "budget_ledger_entry"
    __table_args__ = (
        sa.PrimaryKeyConstraint("organization_id", "fiscal_year_id", "ministry_id", "period_type", "period_number"),
        sa.CheckConstraint("allocated >= 0", name="ck_ledger_allocated_non_negative"),
        sa.CheckConstraint("spent >= 0", name="ck_ledger_spent_non_negative"),
        sa.CheckConstraint("pending >= 0", name="ck_ledger_pending_non_negative"),
    )

    organization_id: uuid.UUID
    fiscal_year_id: uuid.UUID
    ministry_id: uuid.UUID
    period_type: str = Field(max_length=20)
    # 0 for annual periods so the key never contains NULL.
    period_number: int = 0
    allocated: Decimal = Field(
        default=Decimal("0"), max_digits=16, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
    spent: Decimal = Field(
        default=Decimal("0"), max_digits=16, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
    pending: Decimal = Field(
        default=Decimal("0"), max_digits=16, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )

    @property
    def remaining(self) -> Decimal:
        return self.allocated - self.spent - self.pending
