# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel

from budgetflow.models.enums import BudgetHealth, PeriodType


class LedgerTotals(BaseModel):
    """Counters for one ledger key after an adjustment."""

    allocated: Decimal
    spent: Decimal
    pending: Decimal
    remaining: Decimal


class PeriodBudget(LedgerTotals):
    """Totals for a single ministry period."""

    period_type: PeriodType
    period_number: int | None


class MinistryBudget(LedgerTotals):
    """Totals for one ministry across all its periods."""

    ministry_id: uuid.UUID
    utilization: Decimal
    health: BudgetHealth
    periods: list[PeriodBudget]


class ExpenseMetrics(BaseModel):
    """Counts and rates over a fiscal year's expense requests."""

    total: int
    pending_approvals: int
    completed: int
    denied: int
    completion_rate: Decimal
    approval_rate: Decimal
    average_expense: Decimal


class LedgerSummary(LedgerTotals):
    """Ledger position of an organization for one fiscal year."""

    organization_id: uuid.UUID
    fiscal_year_id: uuid.UUID
    utilization: Decimal
    health: BudgetHealth
    ministries: list[MinistryBudget]


class BudgetSummaryResponse(LedgerSummary):
    """Ledger position plus how the year's expense requests are moving."""

    expense_metrics: ExpenseMetrics
