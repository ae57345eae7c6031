# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from budgetflow.api.deps import AuthDep, validate_organization_scope
from budgetflow.db import SessionDep
from budgetflow.schemas.audit import AuditHistoryResponse
from budgetflow.schemas.ledger import BudgetSummaryResponse
from budgetflow.services import audit as audit_service
from budgetflow.services import report as report_service

budget_router = APIRouter(
    prefix="/organizations/{organization_id}",
    tags=["budget"],
    dependencies=[Depends(validate_organization_scope)],
)


@budget_router.get(
    "/fiscal-years/{fiscal_year_id}/budget-summary",
    response_model=BudgetSummaryResponse,
)
async def get_budget_summary(
    organization_id: uuid.UUID,
    fiscal_year_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> BudgetSummaryResponse:
    """Allocated, spent, pending and remaining totals for a fiscal year."""
    return await report_service.get_budget_summary(session, organization_id, fiscal_year_id)


@budget_router.get(
    "/requests/{request_id}/history",
    response_model=AuditHistoryResponse,
)
async def get_request_history(
    organization_id: uuid.UUID,
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> AuditHistoryResponse:
    """Audit trail of an allocation or expense request, oldest first."""
    return await audit_service.get_history(session, organization_id, request_id)
