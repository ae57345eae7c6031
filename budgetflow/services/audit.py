from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from budgetflow.exceptions import NotFoundError
from budgetflow.models.audit import AuditEntry
from budgetflow.models.enums import RequestKind
from budgetflow.schemas.audit import AuditEntryResponse, AuditHistoryResponse

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from budgetflow.models.enums import AuditAction
    from budgetflow.schemas.auth import AuthContext


def _build_entry_response(entry: AuditEntry) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=entry.id,
        request_id=entry.request_id,
        request_type=RequestKind(entry.request_type),
        sequence=entry.sequence,
        actor_id=entry.actor_id,
        actor_role=entry.actor_role,
        action=entry.action,
        prior_status=entry.prior_status,
        new_status=entry.new_status,
        notes=entry.notes,
        created_at=entry.created_at,
    )


async def append_entry(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    request_id: uuid.UUID,
    request_type: RequestKind,
    actor: AuthContext,
    action: AuditAction,
    prior_status: str | None,
    new_status: str | None,
    notes: str | None = None,
) -> AuditEntry:
    """Append an entry within the caller's transaction.

    Entries are numbered per request; the unique (request_id, sequence)
    constraint makes a second writer with the same number fail instead of
    overwriting.
    """
    result = await session.execute(
        select(func.coalesce(func.max(col(AuditEntry.sequence)), 0)).where(col(AuditEntry.request_id) == request_id)
    )
    sequence = int(result.scalar_one()) + 1

    entry = AuditEntry(
        organization_id=organization_id,
        request_id=request_id,
        request_type=request_type.value,
        sequence=sequence,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
        action=action.value,
        prior_status=prior_status,
        new_status=new_status,
        notes=notes,
    )
    session.add(entry)
    await session.flush()
    return entry


async def get_history(
    session: AsyncSession,
    organization_id: uuid.UUID,
    request_id: uuid.UUID,
) -> AuditHistoryResponse:
    """Return a request's entries in the order they were written."""
    result = await session.execute(
        select(AuditEntry)
        .where(
            col(AuditEntry.organization_id) == organization_id,
            col(AuditEntry.request_id) == request_id,
        )
        .order_by(col(AuditEntry.sequence))
    )
    entries = list(result.scalars().all())
    if not entries:
        raise NotFoundError()

    return AuditHistoryResponse(
        request_id=request_id,
        items=[_build_entry_response(e) for e in entries],
        total=len(entries),
    )
