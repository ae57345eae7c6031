# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from budgetflow.models.enums import RequestKind


class AuditEntryResponse(BaseModel):
    """Response schema for a single audit entry."""

    id: uuid.UUID
    request_id: uuid.UUID
    request_type: RequestKind
    sequence: int
    actor_id: uuid.UUID
    actor_role: str
    action: str
    prior_status: str | None
    new_status: str | None
    notes: str | None
    created_at: datetime


class AuditHistoryResponse(BaseModel):
    """Ordered lifecycle of one request."""

    request_id: uuid.UUID
    items: list[AuditEntryResponse]
    total: int
