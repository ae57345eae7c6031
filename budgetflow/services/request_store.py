"""Durable storage for allocation and expense requests.

Writes are compare-and-set on ``version``: an update only lands when the
stored version still equals the one the caller read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select, update
from sqlmodel import col

from budgetflow.exceptions import ConflictError, NotFoundError
from budgetflow.models.enums import RequestKind
from budgetflow.models.request import AllocationRequest, ExpenseRequest

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from budgetflow.schemas.auth import AuthContext

BudgetRequest = AllocationRequest | ExpenseRequest

MODELS: dict[RequestKind, type[AllocationRequest] | type[ExpenseRequest]] = {
    RequestKind.ALLOCATION: AllocationRequest,
    RequestKind.EXPENSE: ExpenseRequest,
}


async def load(
    session: AsyncSession,
    kind: RequestKind,
    actor: AuthContext,
    request_id: uuid.UUID,
) -> BudgetRequest:
    """Fetch a request the actor's organizations own. Raises 404 otherwise.

    A request that exists in another organization is reported exactly like
    one that does not exist.
    """
    model = MODELS[kind]
    result = await session.execute(select(model).where(col(model.id) == request_id))
    request = result.scalar_one_or_none()
    if request is None or not actor.belongs_to(request.organization_id):
        raise NotFoundError()
    return request


async def insert(session: AsyncSession, request: BudgetRequest) -> BudgetRequest:
    """Stage a new request in the caller's transaction."""
    session.add(request)
    await session.flush()
    return request


async def compare_and_set(
    session: AsyncSession,
    kind: RequestKind,
    request_id: uuid.UUID,
    expected_version: int,
    values: dict[str, Any],
) -> None:
    """Write ``values`` and bump the version if nobody else has since."""
    model = MODELS[kind]
    result = await session.execute(
        update(model)
        .where(col(model.id) == request_id, col(model.version) == expected_version)
        .values(**values, version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError()


async def delete_draft(
    session: AsyncSession,
    kind: RequestKind,
    request_id: uuid.UUID,
    expected_version: int,
    draft_status: str,
) -> None:
    """Remove a draft, failing if it moved on or changed since it was read."""
    model = MODELS[kind]
    result = await session.execute(
        delete(model)
        .where(
            col(model.id) == request_id,
            col(model.version) == expected_version,
            col(model.status) == draft_status,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError()


async def list_requests(
    session: AsyncSession,
    kind: RequestKind,
    organization_id: uuid.UUID,
    *,
    fiscal_year_id: uuid.UUID | None = None,
    ministry_id: uuid.UUID | None = None,
    status_filter: str | None = None,
    requester_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Any], int]:
    """Page through an organization's requests, newest first."""
    model = MODELS[kind]
    filters = [col(model.organization_id) == organization_id]
    if fiscal_year_id is not None:
        filters.append(col(model.fiscal_year_id) == fiscal_year_id)
    if ministry_id is not None:
        filters.append(col(model.ministry_id) == ministry_id)
    if status_filter is not None:
        filters.append(col(model.status) == status_filter)
    if requester_id is not None:
        filters.append(col(model.requester_id) == requester_id)

    count_result = await session.execute(select(func.count()).select_from(model).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(model).where(*filters).order_by(col(model.created_at).desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total
