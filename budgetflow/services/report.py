"""Reporting service: fiscal-year budget summaries and expense throughput."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from budgetflow.models.enums import (
    COMPLETED_EXPENSE_STATUSES,
    DENIED_EXPENSE_STATUSES,
    PENDING_EXPENSE_STATUSES,
    ExpenseStatus,
)
from budgetflow.models.request import ExpenseRequest
from budgetflow.schemas.ledger import BudgetSummaryResponse, ExpenseMetrics
from budgetflow.services import ledger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

_RATE_QUANTUM = Decimal("0.0001")
_MONEY_QUANTUM = Decimal("0.01")


def _rate(numerator: int, denominator: int) -> Decimal:
    if denominator <= 0:
        return Decimal("0")
    return (Decimal(numerator) / Decimal(denominator)).quantize(_RATE_QUANTUM)


async def get_expense_metrics(
    session: AsyncSession,
    organization_id: uuid.UUID,
    fiscal_year_id: uuid.UUID,
    spent: Decimal,
) -> ExpenseMetrics:
    """Count a fiscal year's submitted expenses by outcome.

    Drafts are left out. The approval rate is measured over decided
    requests only, so pending work does not drag it down. The average
    expense divides the ledger's ``spent`` by the completed count.
    """
    result = await session.execute(
        select(col(ExpenseRequest.status), func.count())
        .where(
            col(ExpenseRequest.organization_id) == organization_id,
            col(ExpenseRequest.fiscal_year_id) == fiscal_year_id,
            col(ExpenseRequest.status) != ExpenseStatus.DRAFT.value,
        )
        .group_by(col(ExpenseRequest.status))
    )
    counts: dict[str, int] = {status: count for status, count in result.all()}

    pending = sum(counts.get(s.value, 0) for s in PENDING_EXPENSE_STATUSES)
    completed = sum(counts.get(s.value, 0) for s in COMPLETED_EXPENSE_STATUSES)
    denied = sum(counts.get(s.value, 0) for s in DENIED_EXPENSE_STATUSES)
    total = pending + completed + denied
    average = (spent / completed).quantize(_MONEY_QUANTUM) if completed else Decimal("0")

    return ExpenseMetrics(
        total=total,
        pending_approvals=pending,
        completed=completed,
        denied=denied,
        completion_rate=_rate(completed, total),
        approval_rate=_rate(completed, completed + denied),
        average_expense=average,
    )


async def get_budget_summary(
    session: AsyncSession,
    organization_id: uuid.UUID,
    fiscal_year_id: uuid.UUID,
) -> BudgetSummaryResponse:
    """Ledger position of a fiscal year plus its expense metrics."""
    summary = await ledger.get_summary(session, organization_id, fiscal_year_id)
    metrics = await get_expense_metrics(session, organization_id, fiscal_year_id, summary.spent)
    return BudgetSummaryResponse(**summary.model_dump(), expense_metrics=metrics)
