# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from budgetflow.models.enums import ActorRole


class AuthContext(BaseModel):
    """Actor identity as supplied by the upstream identity provider."""

    user_id: uuid.UUID
    role: ActorRole = ActorRole.REQUESTER
    organization_ids: frozenset[uuid.UUID] = Field(default_factory=frozenset)
    # Ministries a ministry_leader leads; ignored for other roles.
    ministry_ids: frozenset[uuid.UUID] = Field(default_factory=frozenset)

    def belongs_to(self, organization_id: uuid.UUID) -> bool:
        return organization_id in self.organization_ids
