"""Role capability table for request workflows.

Pure functions only. The workflow engine decides which stage an action
targets and asks this module whether the actor may act there.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from budgetflow.models.enums import ActorRole, AllocationStatus, ExpenseStatus, RequestKind, WorkflowAction

if TYPE_CHECKING:
    import uuid

    from budgetflow.schemas.auth import AuthContext


class Scope(enum.StrEnum):
    """Which requests within an organization a role may touch."""

    OWN = "OWN"
    MINISTRY = "MINISTRY"
    ORGANIZATION = "ORGANIZATION"


_A = AllocationStatus
_E = ExpenseStatus

# (role, kind, action) -> stages the role may act on. Admin is not listed: it may act anywhere.
CAPABILITIES: dict[tuple[ActorRole, RequestKind, WorkflowAction], frozenset[str]] = {
    (ActorRole.REQUESTER, RequestKind.ALLOCATION, WorkflowAction.EDIT): frozenset({_A.DRAFT}),
    (ActorRole.REQUESTER, RequestKind.ALLOCATION, WorkflowAction.SUBMIT): frozenset({_A.DRAFT}),
    (ActorRole.REQUESTER, RequestKind.EXPENSE, WorkflowAction.EDIT): frozenset({_E.DRAFT}),
    (ActorRole.REQUESTER, RequestKind.EXPENSE, WorkflowAction.SUBMIT): frozenset({_E.DRAFT}),
    (ActorRole.MINISTRY_LEADER, RequestKind.ALLOCATION, WorkflowAction.EDIT): frozenset({_A.DRAFT}),
    (ActorRole.MINISTRY_LEADER, RequestKind.ALLOCATION, WorkflowAction.SUBMIT): frozenset({_A.DRAFT}),
    (ActorRole.MINISTRY_LEADER, RequestKind.EXPENSE, WorkflowAction.EDIT): frozenset({_E.DRAFT}),
    (ActorRole.MINISTRY_LEADER, RequestKind.EXPENSE, WorkflowAction.SUBMIT): frozenset({_E.DRAFT}),
    (ActorRole.MINISTRY_LEADER, RequestKind.EXPENSE, WorkflowAction.APPROVE): frozenset({_E.PENDING_LEADER}),
    (ActorRole.MINISTRY_LEADER, RequestKind.EXPENSE, WorkflowAction.DENY): frozenset({_E.PENDING_LEADER}),
    (ActorRole.TREASURY_OFFICER, RequestKind.EXPENSE, WorkflowAction.APPROVE): frozenset({_E.PENDING_TREASURY}),
    (ActorRole.TREASURY_OFFICER, RequestKind.EXPENSE, WorkflowAction.DENY): frozenset({_E.PENDING_TREASURY}),
    (ActorRole.FINANCE_OFFICER, RequestKind.ALLOCATION, WorkflowAction.APPROVE): frozenset({_A.SUBMITTED}),
    (ActorRole.FINANCE_OFFICER, RequestKind.ALLOCATION, WorkflowAction.REJECT): frozenset({_A.SUBMITTED}),
    (ActorRole.FINANCE_OFFICER, RequestKind.EXPENSE, WorkflowAction.APPROVE): frozenset({_E.PENDING_FINANCE}),
}

ROLE_SCOPES: dict[ActorRole, Scope] = {
    ActorRole.REQUESTER: Scope.OWN,
    ActorRole.MINISTRY_LEADER: Scope.MINISTRY,
    ActorRole.TREASURY_OFFICER: Scope.ORGANIZATION,
    ActorRole.FINANCE_OFFICER: Scope.ORGANIZATION,
    ActorRole.ADMIN: Scope.ORGANIZATION,
}


def allowed_stages(role: ActorRole, kind: RequestKind, action: WorkflowAction) -> frozenset[str]:
    """Stages at which ``role`` holds ``action``. Empty when it never does."""
    return CAPABILITIES.get((role, kind, action), frozenset())


def is_permitted(
    actor: AuthContext,
    kind: RequestKind,
    action: WorkflowAction,
    stage: str | None,
    *,
    ministry_id: uuid.UUID,
    requester_id: uuid.UUID,
) -> bool:
    """Return whether ``actor`` may take ``action`` on a request.

    ``stage`` is the status the action would leave. Pass None when the action
    is not an edge out of the current status; only the bare capability and the
    scope are checked then, and the engine reports the illegal edge itself.
    """
    if actor.role == ActorRole.ADMIN:
        return True

    stages = allowed_stages(actor.role, kind, action)
    if not stages:
        return False
    if stage is not None and stage not in stages:
        return False

    scope = ROLE_SCOPES[actor.role]
    if scope == Scope.OWN:
        return requester_id == actor.user_id
    if scope == Scope.MINISTRY:
        return ministry_id in actor.ministry_ids
    return True
