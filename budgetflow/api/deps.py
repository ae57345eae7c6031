# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Path

from budgetflow.exceptions import NotFoundError, ValidationError
from budgetflow.models.enums import ActorRole
from budgetflow.schemas.auth import AuthContext


def _parse_id_list(raw: str, header: str) -> frozenset[uuid.UUID]:
    ids: set[uuid.UUID] = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(uuid.UUID(part))
        except ValueError:
            raise ValidationError(f"{header} contains an invalid id: {part!r}") from None
    return frozenset(ids)


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default=ActorRole.REQUESTER.value),
    x_organization_ids: str = Header(default=""),
    x_ministry_ids: str = Header(default=""),
) -> AuthContext:
    """Build the actor from identity-provider headers. Values are trusted as given."""
    try:
        role = ActorRole(x_role.strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown role: {x_role!r}") from None
    return AuthContext(
        user_id=x_user_id,
        role=role,
        organization_ids=_parse_id_list(x_organization_ids, "X-Organization-Ids"),
        ministry_ids=_parse_id_list(x_ministry_ids, "X-Ministry-Ids"),
    )


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def validate_organization_scope(
    organization_id: uuid.UUID = Path(),
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Hide organizations the actor is not a member of."""
    if not auth.belongs_to(organization_id):
        raise NotFoundError("Organization not found")
    return auth
