# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from budgetflow.api.deps import AuthDep, validate_organization_scope
from budgetflow.db import SessionDep
from budgetflow.models.enums import ExpenseStatus
from budgetflow.schemas.common import VersionedPayload
from budgetflow.schemas.expense import (
    AdvanceExpensePayload,
    CreateExpensePayload,
    ExpenseRequestListResponse,
    ExpenseRequestResponse,
    UpdateExpensePayload,
)
from budgetflow.services import expense as expense_service

expenses_router = APIRouter(
    prefix="/organizations/{organization_id}/expense-requests",
    tags=["expense-requests"],
    dependencies=[Depends(validate_organization_scope)],
)


@expenses_router.post("", response_model=ExpenseRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_expense_request(
    organization_id: uuid.UUID,
    payload: CreateExpensePayload,
    session: SessionDep,
    auth: AuthDep,
) -> ExpenseRequestResponse:
    """Create an expense request, optionally submitting it at once."""
    return await expense_service.create_expense_request(session, auth, organization_id, payload)


@expenses_router.get("", response_model=ExpenseRequestListResponse)
async def list_expense_requests(
    organization_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    fiscal_year_id: uuid.UUID | None = Query(default=None),
    ministry_id: uuid.UUID | None = Query(default=None),
    status_filter: ExpenseStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> ExpenseRequestListResponse:
    """List expense requests with optional filters."""
    return await expense_service.list_expense_requests(
        session,
        organization_id,
        fiscal_year_id=fiscal_year_id,
        ministry_id=ministry_id,
        status_filter=status_filter.value if status_filter else None,
        offset=offset,
        limit=limit,
    )


@expenses_router.get("/{request_id}", response_model=ExpenseRequestResponse)
async def get_expense_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> ExpenseRequestResponse:
    """Get a single expense request."""
    return await expense_service.get_expense_request(session, auth, request_id)


@expenses_router.patch("/{request_id}", response_model=ExpenseRequestResponse)
async def update_expense_request(
    request_id: uuid.UUID,
    payload: UpdateExpensePayload,
    session: SessionDep,
    auth: AuthDep,
) -> ExpenseRequestResponse:
    """Edit a draft expense request."""
    return await expense_service.update_expense_request(session, auth, request_id, payload)


@expenses_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_expense_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    version: int = Query(ge=1),
) -> None:
    """Discard a draft expense request."""
    await expense_service.discard_expense_request(session, auth, request_id, version)


@expenses_router.post("/{request_id}/submit", response_model=ExpenseRequestResponse)
async def submit_expense_request(
    request_id: uuid.UUID,
    payload: VersionedPayload,
    session: SessionDep,
    auth: AuthDep,
) -> ExpenseRequestResponse:
    """Submit a draft expense to its ministry leader."""
    return await expense_service.submit_expense_request(session, auth, request_id, payload)


@expenses_router.post("/{request_id}/advance", response_model=ExpenseRequestResponse)
async def advance_expense_request(
    request_id: uuid.UUID,
    payload: AdvanceExpensePayload,
    session: SessionDep,
    auth: AuthDep,
) -> ExpenseRequestResponse:
    """Approve or deny an expense at its current stage."""
    return await expense_service.advance_expense_request(session, auth, request_id, payload)
