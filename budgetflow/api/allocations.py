# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from budgetflow.api.deps import AuthDep, validate_organization_scope
from budgetflow.db import SessionDep
from budgetflow.models.enums import AllocationStatus
from budgetflow.schemas.allocation import (
    AllocationRequestListResponse,
    AllocationRequestResponse,
    CreateAllocationPayload,
    ReviewAllocationPayload,
    UpdateAllocationPayload,
)
from budgetflow.schemas.common import VersionedPayload
from budgetflow.services import allocation as allocation_service

allocations_router = APIRouter(
    prefix="/organizations/{organization_id}/allocation-requests",
    tags=["allocation-requests"],
    dependencies=[Depends(validate_organization_scope)],
)


@allocations_router.post("", response_model=AllocationRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_allocation_request(
    organization_id: uuid.UUID,
    payload: CreateAllocationPayload,
    session: SessionDep,
    auth: AuthDep,
) -> AllocationRequestResponse:
    """Draft a new allocation request."""
    return await allocation_service.create_allocation_request(session, auth, organization_id, payload)


@allocations_router.get("", response_model=AllocationRequestListResponse)
async def list_allocation_requests(
    organization_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    fiscal_year_id: uuid.UUID | None = Query(default=None),
    ministry_id: uuid.UUID | None = Query(default=None),
    status_filter: AllocationStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> AllocationRequestListResponse:
    """List allocation requests with optional filters."""
    return await allocation_service.list_allocation_requests(
        session,
        organization_id,
        fiscal_year_id=fiscal_year_id,
        ministry_id=ministry_id,
        status_filter=status_filter.value if status_filter else None,
        offset=offset,
        limit=limit,
    )


@allocations_router.get("/{request_id}", response_model=AllocationRequestResponse)
async def get_allocation_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> AllocationRequestResponse:
    """Get a single allocation request."""
    return await allocation_service.get_allocation_request(session, auth, request_id)


@allocations_router.patch("/{request_id}", response_model=AllocationRequestResponse)
async def update_allocation_request(
    request_id: uuid.UUID,
    payload: UpdateAllocationPayload,
    session: SessionDep,
    auth: AuthDep,
) -> AllocationRequestResponse:
    """Edit a draft allocation request."""
    return await allocation_service.update_allocation_request(session, auth, request_id, payload)


@allocations_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_allocation_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    version: int = Query(ge=1),
) -> None:
    """Discard a draft allocation request."""
    await allocation_service.discard_allocation_request(session, auth, request_id, version)


@allocations_router.post("/{request_id}/submit", response_model=AllocationRequestResponse)
async def submit_allocation_request(
    request_id: uuid.UUID,
    payload: VersionedPayload,
    session: SessionDep,
    auth: AuthDep,
) -> AllocationRequestResponse:
    """Submit a draft for review."""
    return await allocation_service.submit_allocation_request(session, auth, request_id, payload)


@allocations_router.post("/{request_id}/review", response_model=AllocationRequestResponse)
async def review_allocation_request(
    request_id: uuid.UUID,
    payload: ReviewAllocationPayload,
    session: SessionDep,
    auth: AuthDep,
) -> AllocationRequestResponse:
    """Approve or reject a submitted allocation request."""
    return await allocation_service.review_allocation_request(session, auth, request_id, payload)
