# ruff: noqa: TC003
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from budgetflow.models.enums import AllocationStatus, PeriodType, RequestKind, WorkflowAction
from budgetflow.models.request import AllocationRequest
from budgetflow.schemas.allocation import AllocationRequestListResponse, AllocationRequestResponse
from budgetflow.schemas.common import BreakdownItem
from budgetflow.services import request_store, workflow
from budgetflow.services.workflow import TransitionPayload

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from budgetflow.schemas.allocation import (
        CreateAllocationPayload,
        ReviewAllocationPayload,
        UpdateAllocationPayload,
    )
    from budgetflow.schemas.auth import AuthContext
    from budgetflow.schemas.common import VersionedPayload

# Fields that may be explicitly cleared on update; everything else ignores null.
_NULLABLE_FIELDS = {"period_number"}


def _build_allocation_response(request: AllocationRequest) -> AllocationRequestResponse:
    """Map an allocation model to its response schema."""
    breakdown = [BreakdownItem.model_validate(item) for item in request.budget_breakdown or []]
    breakdown_total = sum((item.amount for item in breakdown), Decimal("0"))
    return AllocationRequestResponse(
        id=request.id,
        organization_id=request.organization_id,
        fiscal_year_id=request.fiscal_year_id,
        ministry_id=request.ministry_id,
        requester_id=request.requester_id,
        period_type=PeriodType(request.period_type),
        period_number=request.period_number,
        requested_amount=request.requested_amount,
        approved_amount=request.approved_amount,
        justification=request.justification,
        budget_breakdown=breakdown,
        breakdown_total=breakdown_total,
        breakdown_mismatch=bool(breakdown) and breakdown_total != request.requested_amount,
        status=AllocationStatus(request.status),
        version=request.version,
        created_at=request.created_at,
        submitted_at=request.submitted_at,
        reviewed_at=request.reviewed_at,
        reviewed_by=request.reviewed_by,
        review_notes=request.review_notes,
    )


async def create_allocation_request(
    session: AsyncSession,
    auth: AuthContext,
    organization_id: uuid.UUID,
    payload: CreateAllocationPayload,
) -> AllocationRequestResponse:
    """Draft a new allocation request owned by the acting user."""
    request = AllocationRequest(
        organization_id=organization_id,
        fiscal_year_id=payload.fiscal_year_id,
        ministry_id=payload.ministry_id,
        requester_id=auth.user_id,
        period_type=payload.period_type.value,
        period_number=payload.period_number,
        requested_amount=payload.requested_amount,
        justification=payload.justification,
        budget_breakdown=[item.model_dump(mode="json") for item in payload.budget_breakdown],
        status=AllocationStatus.DRAFT.value,
    )
    created = await workflow.create(session, auth, RequestKind.ALLOCATION, request)
    return _build_allocation_response(created)  # type: ignore[arg-type]


async def update_allocation_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: UpdateAllocationPayload,
) -> AllocationRequestResponse:
    """Edit a draft in place. Any other status fails with InvalidTransition."""
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True, exclude={"version"}).items()
        if value is not None or key in _NULLABLE_FIELDS
    }
    request = await workflow.transition(
        session,
        auth,
        RequestKind.ALLOCATION,
        request_id,
        WorkflowAction.EDIT,
        TransitionPayload(version=payload.version, changes=changes),
    )
    return _build_allocation_response(request)  # type: ignore[arg-type]


async def submit_allocation_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: VersionedPayload,
) -> AllocationRequestResponse:
    """Move a draft to submitted. The ledger does not move until approval."""
    request = await workflow.transition(
        session,
        auth,
        RequestKind.ALLOCATION,
        request_id,
        WorkflowAction.SUBMIT,
        TransitionPayload(version=payload.version),
    )
    return _build_allocation_response(request)  # type: ignore[arg-type]


async def review_allocation_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: ReviewAllocationPayload,
) -> AllocationRequestResponse:
    """Approve (crediting the ledger with approved_amount) or reject a submitted request."""
    action = WorkflowAction.APPROVE if payload.decision == "approve" else WorkflowAction.REJECT
    request = await workflow.transition(
        session,
        auth,
        RequestKind.ALLOCATION,
        request_id,
        action,
        TransitionPayload(
            version=payload.version,
            notes=payload.notes,
            approved_amount=payload.approved_amount,
        ),
    )
    return _build_allocation_response(request)  # type: ignore[arg-type]


async def discard_allocation_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    version: int,
) -> None:
    """Delete a draft allocation request."""
    await workflow.discard(session, auth, RequestKind.ALLOCATION, request_id, version)


async def get_allocation_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> AllocationRequestResponse:
    """Get a single allocation request."""
    request = await request_store.load(session, RequestKind.ALLOCATION, auth, request_id)
    return _build_allocation_response(request)  # type: ignore[arg-type]


async def list_allocation_requests(
    session: AsyncSession,
    organization_id: uuid.UUID,
    *,
    fiscal_year_id: uuid.UUID | None = None,
    ministry_id: uuid.UUID | None = None,
    status_filter: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AllocationRequestListResponse:
    """List allocation requests with optional filters, newest first."""
    items, total = await request_store.list_requests(
        session,
        RequestKind.ALLOCATION,
        organization_id,
        fiscal_year_id=fiscal_year_id,
        ministry_id=ministry_id,
        status_filter=status_filter,
        offset=offset,
        limit=limit,
    )
    return AllocationRequestListResponse(
        items=[_build_allocation_response(r) for r in items],
        total=total,
    )
