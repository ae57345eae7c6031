# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field

from budgetflow.models.base import UUIDBase


def _now_utc() -> datetime:
    return datetime.now(UTC)


class AuditEntry(UUIDBase, table=True):
    """Immutable record of one step in a request's lifecycle."""

    __tablename__ = "audit_entry"
    __table_args__ = (sa.UniqueConstraint("request_id", "sequence", name="uq_audit_request_sequence"),)

    organization_id: uuid.UUID = Field(index=True)
    request_id: uuid.UUID = Field(index=True)
    request_type: str = Field(max_length=20)
    sequence: int
    actor_id: uuid.UUID
    actor_role: str = Field(max_length=50)
    action: str = Field(max_length=50)
    prior_status: str | None = Field(default=None, max_length=50)
    new_status: str | None = Field(default=None, max_length=50)
    notes: str | None = None
    created_at: datetime = Field(
        default_factory=_now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
