# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from budgetflow.config import get_settings
from budgetflow.models.enums import ExpenseStatus, PeriodType, RequestKind, WorkflowAction
from budgetflow.models.request import ExpenseRequest
from budgetflow.schemas.expense import ApprovalDecision, ExpenseRequestListResponse, ExpenseRequestResponse
from budgetflow.services import request_store, workflow
from budgetflow.services.workflow import TransitionPayload

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from budgetflow.schemas.auth import AuthContext
    from budgetflow.schemas.common import VersionedPayload
    from budgetflow.schemas.expense import AdvanceExpensePayload, CreateExpensePayload, UpdateExpensePayload

_NULLABLE_FIELDS = {"period_number", "description"}


def _approver_trail(request: ExpenseRequest) -> list[ApprovalDecision]:
    trail: list[ApprovalDecision] = []
    for stage in ("leader", "treasury", "finance"):
        decided_by = getattr(request, f"{stage}_decided_by")
        if decided_by is None:
            continue
        trail.append(
            ApprovalDecision(
                stage=stage,  # type: ignore[arg-type]
                decided_by=decided_by,
                decided_at=getattr(request, f"{stage}_decided_at"),
                notes=getattr(request, f"{stage}_notes"),
            )
        )
    return trail


def _build_expense_response(request: ExpenseRequest) -> ExpenseRequestResponse:
    """Map an expense model to its response schema."""
    return ExpenseRequestResponse(
        id=request.id,
        organization_id=request.organization_id,
        fiscal_year_id=request.fiscal_year_id,
        ministry_id=request.ministry_id,
        requester_id=request.requester_id,
        period_type=PeriodType(request.period_type),
        period_number=request.period_number,
        amount=request.amount,
        category=request.category,
        description=request.description,
        status=ExpenseStatus(request.status),
        version=request.version,
        created_at=request.created_at,
        submitted_at=request.submitted_at,
        approver_trail=_approver_trail(request),
    )


async def create_expense_request(
    session: AsyncSession,
    auth: AuthContext,
    organization_id: uuid.UUID,
    payload: CreateExpensePayload,
) -> ExpenseRequestResponse:
    """Create an expense as a draft, or straight into pending_leader.

    Submitting on create holds the amount as pending on the ministry's
    ledger in the same transaction as the insert.
    """
    request = ExpenseRequest(
        organization_id=organization_id,
        fiscal_year_id=payload.fiscal_year_id,
        ministry_id=payload.ministry_id,
        requester_id=auth.user_id,
        period_type=payload.period_type.value,
        period_number=payload.period_number,
        amount=payload.amount,
        category=payload.category,
        description=payload.description,
        status=ExpenseStatus.DRAFT.value,
    )
    submit = payload.submit or get_settings().expense_submit_on_create
    created = await workflow.create(session, auth, RequestKind.EXPENSE, request, submit=submit)
    return _build_expense_response(created)  # type: ignore[arg-type]


async def update_expense_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: UpdateExpensePayload,
) -> ExpenseRequestResponse:
    """Edit a draft expense in place."""
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True, exclude={"version"}).items()
        if value is not None or key in _NULLABLE_FIELDS
    }
    request = await workflow.transition(
        session,
        auth,
        RequestKind.EXPENSE,
        request_id,
        WorkflowAction.EDIT,
        TransitionPayload(version=payload.version, changes=changes),
    )
    return _build_expense_response(request)  # type: ignore[arg-type]


async def submit_expense_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: VersionedPayload,
) -> ExpenseRequestResponse:
    """Send a draft to its ministry leader, holding the amount as pending."""
    request = await workflow.transition(
        session,
        auth,
        RequestKind.EXPENSE,
        request_id,
        WorkflowAction.SUBMIT,
        TransitionPayload(version=payload.version),
    )
    return _build_expense_response(request)  # type: ignore[arg-type]


async def advance_expense_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: AdvanceExpensePayload,
) -> ExpenseRequestResponse:
    """Record the current stage owner's approval or denial."""
    action = WorkflowAction.APPROVE if payload.action == "approve" else WorkflowAction.DENY
    request = await workflow.transition(
        session,
        auth,
        RequestKind.EXPENSE,
        request_id,
        action,
        TransitionPayload(version=payload.version, notes=payload.notes),
    )
    return _build_expense_response(request)  # type: ignore[arg-type]


async def discard_expense_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    version: int,
) -> None:
    """Delete a draft expense."""
    await workflow.discard(session, auth, RequestKind.EXPENSE, request_id, version)


async def get_expense_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> ExpenseRequestResponse:
    """Get a single expense request."""
    request = await request_store.load(session, RequestKind.EXPENSE, auth, request_id)
    return _build_expense_response(request)  # type: ignore[arg-type]


async def list_expense_requests(
    session: AsyncSession,
    organization_id: uuid.UUID,
    *,
    fiscal_year_id: uuid.UUID | None = None,
    ministry_id: uuid.UUID | None = None,
    status_filter: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> ExpenseRequestListResponse:
    """List expense requests with optional filters, newest first."""
    items, total = await request_store.list_requests(
        session,
        RequestKind.EXPENSE,
        organization_id,
        fiscal_year_id=fiscal_year_id,
        ministry_id=ministry_id,
        status_filter=status_filter,
        offset=offset,
        limit=limit,
    )
    return ExpenseRequestListResponse(
        items=[_build_expense_response(r) for r in items],
        total=total,
    )
