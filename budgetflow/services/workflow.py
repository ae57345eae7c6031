"""Workflow engine for allocation and expense requests.

Every mutation runs as one unit of work: the request's compare-and-set
update, the ledger delta and the audit entry commit together or not at all.

Checks run in a fixed order so callers can rely on which error wins:

1. request exists in one of the actor's organizations  -> NotFoundError
2. supplied version matches the stored one              -> ConflictError
3. the actor's role may act at this stage               -> PermissionDeniedError
4. the action is an edge out of the current status      -> InvalidTransitionError
5. the payload satisfies the action's constraints       -> ValidationError
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from budgetflow.config import get_settings
from budgetflow.exceptions import (
    AppError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from budgetflow.models.enums import (
    AllocationStatus,
    AuditAction,
    ExpenseStatus,
    LedgerEffect,
    PeriodType,
    RequestKind,
    WorkflowAction,
)
from budgetflow.schemas.common import BreakdownItem, period_error
from budgetflow.services import access_policy, audit, ledger, request_store
from budgetflow.services.ledger import LedgerDelta, LedgerKey

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from budgetflow.config import Settings
    from budgetflow.schemas.auth import AuthContext
    from budgetflow.services.request_store import BudgetRequest

logger = logging.getLogger(__name__)

_A = AllocationStatus
_E = ExpenseStatus


# ---------------------------------------------------------------------------
# State graphs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transition:
    """One legal edge of a request state machine."""

    from_state: str
    action: WorkflowAction
    to_state: str
    ledger_effect: LedgerEffect = LedgerEffect.NONE
    # Name of a predicate in _GUARDS; the first edge whose guard passes wins.
    guard: str | None = None


ALLOCATION_TRANSITIONS: tuple[Transition, ...] = (
    Transition(_A.DRAFT, WorkflowAction.EDIT, _A.DRAFT),
    Transition(_A.DRAFT, WorkflowAction.SUBMIT, _A.SUBMITTED),
    Transition(_A.SUBMITTED, WorkflowAction.APPROVE, _A.APPROVED, LedgerEffect.ALLOCATE),
    Transition(_A.SUBMITTED, WorkflowAction.REJECT, _A.REJECTED),
)

EXPENSE_TRANSITIONS: tuple[Transition, ...] = (
    Transition(_E.DRAFT, WorkflowAction.EDIT, _E.DRAFT),
    Transition(_E.DRAFT, WorkflowAction.SUBMIT, _E.PENDING_LEADER, LedgerEffect.HOLD),
    Transition(
        _E.PENDING_LEADER,
        WorkflowAction.APPROVE,
        _E.LEADER_APPROVED,
        LedgerEffect.SETTLE,
        guard="within_leader_limit",
    ),
    Transition(_E.PENDING_LEADER, WorkflowAction.APPROVE, _E.PENDING_TREASURY),
    Transition(_E.PENDING_LEADER, WorkflowAction.DENY, _E.LEADER_DENIED, LedgerEffect.RELEASE),
    Transition(_E.PENDING_TREASURY, WorkflowAction.APPROVE, _E.PENDING_FINANCE),
    Transition(_E.PENDING_TREASURY, WorkflowAction.DENY, _E.TREASURY_DENIED, LedgerEffect.RELEASE),
    Transition(_E.PENDING_FINANCE, WorkflowAction.APPROVE, _E.TREASURY_APPROVED, LedgerEffect.SETTLE),
)

GRAPHS: dict[RequestKind, tuple[Transition, ...]] = {
    RequestKind.ALLOCATION: ALLOCATION_TRANSITIONS,
    RequestKind.EXPENSE: EXPENSE_TRANSITIONS,
}

DRAFT_STATUS: dict[RequestKind, str] = {
    RequestKind.ALLOCATION: _A.DRAFT,
    RequestKind.EXPENSE: _E.DRAFT,
}

# Which approver-trail columns an expense decision fills, by the stage it leaves.
_EXPENSE_TRAIL_PREFIX: dict[str, str] = {
    _E.PENDING_LEADER: "leader",
    _E.PENDING_TREASURY: "treasury",
    _E.PENDING_FINANCE: "finance",
}


def _within_leader_limit(request: BudgetRequest, settings: Settings) -> bool:
    limit = settings.leader_final_approval_limit
    amount = getattr(request, "amount", None)
    return limit is not None and amount is not None and amount <= limit


_GUARDS: dict[str, Callable[[BudgetRequest, Settings], bool]] = {
    "within_leader_limit": _within_leader_limit,
}


def edges_from(kind: RequestKind, status: str, action: WorkflowAction) -> list[Transition]:
    """Candidate edges for ``action`` out of ``status``, guarded edges first."""
    edges = [t for t in GRAPHS[kind] if t.from_state == status and t.action == action]
    return sorted(edges, key=lambda t: t.guard is None)


def terminal_statuses(kind: RequestKind) -> frozenset[str]:
    """Statuses with no outgoing edge."""
    graph = GRAPHS[kind]
    sources = {t.from_state for t in graph}
    targets = {t.to_state for t in graph}
    return frozenset(targets - sources)


def _resolve(edges: list[Transition], request: BudgetRequest, settings: Settings) -> Transition:
    for edge in edges:
        if edge.guard is None or _GUARDS[edge.guard](request, settings):
            return edge
    # Every graph ends each (status, action) group with an unguarded edge.
    msg = f"No edge applies for {request.status}"
    raise InvalidTransitionError(msg)


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


@dataclass
class TransitionPayload:
    """What the caller supplies alongside an action."""

    version: int
    notes: str | None = None
    approved_amount: Decimal | None = None
    # Field edits, only meaningful for the EDIT action.
    changes: dict[str, Any] = field(default_factory=dict)


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


def _require_notes(notes: str | None, action: WorkflowAction) -> str:
    cleaned = _clean_notes(notes)
    if cleaned is None:
        msg = f"notes are required to {action.value} a request"
        raise ValidationError(msg)
    return cleaned


def _validated_period(request: BudgetRequest, changes: dict[str, Any]) -> dict[str, Any]:
    period_type = PeriodType(changes.get("period_type", request.period_type))
    if "period_type" in changes and "period_number" not in changes:
        # Switching period type without a number only works for annual.
        period_number = None
    else:
        period_number = changes.get("period_number", request.period_number)
    error = period_error(period_type, period_number)
    if error is not None:
        raise ValidationError(error)
    return {"period_type": period_type.value, "period_number": period_number}


def _allocation_edit_values(request: BudgetRequest, changes: dict[str, Any]) -> dict[str, Any]:
    values = _validated_period(request, changes)
    if changes.get("requested_amount") is not None:
        amount = Decimal(changes["requested_amount"])
        if amount <= 0:
            msg = "requested_amount must be greater than 0"
            raise ValidationError(msg)
        values["requested_amount"] = amount
    if "justification" in changes and changes["justification"] is not None:
        justification = str(changes["justification"]).strip()
        if not justification:
            msg = "justification must not be empty"
            raise ValidationError(msg)
        values["justification"] = justification
    if changes.get("budget_breakdown") is not None:
        items = [BreakdownItem.model_validate(item) for item in changes["budget_breakdown"]]
        values["budget_breakdown"] = [item.model_dump(mode="json") for item in items]
    return values


def _expense_edit_values(request: BudgetRequest, changes: dict[str, Any]) -> dict[str, Any]:
    values = _validated_period(request, changes)
    if changes.get("amount") is not None:
        amount = Decimal(changes["amount"])
        if amount <= 0:
            msg = "amount must be greater than 0"
            raise ValidationError(msg)
        values["amount"] = amount
    if changes.get("category") is not None:
        category = str(changes["category"]).strip()
        if not category:
            msg = "category must not be empty"
            raise ValidationError(msg)
        values["category"] = category
    if "description" in changes:
        values["description"] = changes["description"]
    return values


def _build_values(
    kind: RequestKind,
    edge: Transition,
    request: BudgetRequest,
    actor: AuthContext,
    payload: TransitionPayload,
    now: datetime,
) -> dict[str, Any]:
    """Validate the payload for ``edge`` and return the columns to write."""
    values: dict[str, Any] = {"status": edge.to_state}
    action = edge.action

    if action == WorkflowAction.EDIT:
        if kind == RequestKind.ALLOCATION:
            values.update(_allocation_edit_values(request, payload.changes))
        else:
            values.update(_expense_edit_values(request, payload.changes))
        return values

    if action == WorkflowAction.SUBMIT:
        values["submitted_at"] = now
        return values

    if kind == RequestKind.ALLOCATION:
        if action == WorkflowAction.APPROVE:
            approved = payload.approved_amount
            if approved is None:
                msg = "approved_amount is required to approve an allocation"
                raise ValidationError(msg)
            if approved <= 0:
                msg = "approved_amount must be greater than 0"
                raise ValidationError(msg)
            if approved > request.requested_amount:
                msg = f"approved_amount {approved} exceeds requested_amount {request.requested_amount}"
                raise ValidationError(msg)
            values["approved_amount"] = approved
            notes = _clean_notes(payload.notes)
        else:
            notes = _require_notes(payload.notes, action)
        values["reviewed_at"] = now
        values["reviewed_by"] = actor.user_id
        values["review_notes"] = notes
        return values

    notes = _require_notes(payload.notes, action) if action == WorkflowAction.DENY else _clean_notes(payload.notes)
    prefix = _EXPENSE_TRAIL_PREFIX[edge.from_state]
    values[f"{prefix}_decided_by"] = actor.user_id
    values[f"{prefix}_decided_at"] = now
    values[f"{prefix}_notes"] = notes
    return values


def ledger_delta(edge: Transition, request: BudgetRequest, values: dict[str, Any]) -> LedgerDelta:
    """The ledger movement an edge causes for this request."""
    effect = edge.ledger_effect
    if effect == LedgerEffect.NONE:
        return LedgerDelta()
    if effect == LedgerEffect.ALLOCATE:
        return LedgerDelta(allocated=values["approved_amount"])

    amount: Decimal = request.amount  # type: ignore[union-attr]
    if effect == LedgerEffect.HOLD:
        return LedgerDelta(pending=amount)
    if effect == LedgerEffect.SETTLE:
        return LedgerDelta(pending=-amount, spent=amount)
    return LedgerDelta(pending=-amount)


def _ledger_key(request: BudgetRequest) -> LedgerKey:
    return LedgerKey.for_request(
        request.organization_id,
        request.fiscal_year_id,
        request.ministry_id,
        request.period_type,
        request.period_number,
    )


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------


@asynccontextmanager
async def unit_of_work(session: AsyncSession, description: str) -> AsyncIterator[None]:
    """Commit on success; roll back and translate storage errors otherwise."""
    try:
        yield
        await session.commit()
    except AppError as exc:
        await session.rollback()
        logger.info("%s rejected: %s %s", description, type(exc).__name__, exc.message)
        raise
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("%s lost a write race: %s", description, exc.orig)
        raise ConflictError() from exc
    except (SQLAlchemyError, TimeoutError) as exc:
        await session.rollback()
        logger.exception("%s failed in storage", description)
        raise PersistenceError() from exc


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _check_version(request: BudgetRequest, version: int) -> None:
    if request.version != version:
        msg = f"Request is at version {request.version}, not {version}; reload and retry"
        raise ConflictError(msg)


async def apply_transition(
    session: AsyncSession,
    actor: AuthContext,
    kind: RequestKind,
    request: BudgetRequest,
    action: WorkflowAction,
    payload: TransitionPayload,
) -> None:
    """Run checks 2-5 and stage all writes in the current transaction."""
    _check_version(request, payload.version)

    edges = edges_from(kind, request.status, action)
    stage = request.status if edges else None
    if not access_policy.is_permitted(
        actor,
        kind,
        action,
        stage,
        ministry_id=request.ministry_id,
        requester_id=request.requester_id,
    ):
        raise PermissionDeniedError()

    if not edges:
        msg = f"Cannot {action.value} a {kind.value} request in status {request.status}"
        raise InvalidTransitionError(msg)

    edge = _resolve(edges, request, get_settings())
    now = datetime.now(UTC)
    values = _build_values(kind, edge, request, actor, payload, now)
    delta = ledger_delta(edge, request, values)

    prior_status = request.status
    await request_store.compare_and_set(session, kind, request.id, payload.version, values)
    if not delta.is_zero:
        await ledger.adjust(session, _ledger_key(request), delta)
    await audit.append_entry(
        session,
        organization_id=request.organization_id,
        request_id=request.id,
        request_type=kind,
        actor=actor,
        action=AuditAction(action.value),
        prior_status=prior_status,
        new_status=edge.to_state,
        notes=_clean_notes(payload.notes),
    )


async def transition(
    session: AsyncSession,
    actor: AuthContext,
    kind: RequestKind,
    request_id: uuid.UUID,
    action: WorkflowAction,
    payload: TransitionPayload,
) -> BudgetRequest:
    """Move a request along one edge of its state machine."""
    async with unit_of_work(session, f"{action.value} {kind.value} {request_id}"):
        request = await request_store.load(session, kind, actor, request_id)
        await apply_transition(session, actor, kind, request, action, payload)
        await session.refresh(request)
    return request


async def create(
    session: AsyncSession,
    actor: AuthContext,
    kind: RequestKind,
    request: BudgetRequest,
    *,
    submit: bool = False,
) -> BudgetRequest:
    """Store a new draft, optionally submitting it in the same unit of work."""
    async with unit_of_work(session, f"create {kind.value}"):
        if not actor.belongs_to(request.organization_id):
            raise NotFoundError("Organization not found")
        await request_store.insert(session, request)
        await audit.append_entry(
            session,
            organization_id=request.organization_id,
            request_id=request.id,
            request_type=kind,
            actor=actor,
            action=AuditAction.CREATE,
            prior_status=None,
            new_status=request.status,
        )
        if submit:
            await apply_transition(
                session, actor, kind, request, WorkflowAction.SUBMIT, TransitionPayload(version=request.version)
            )
        await session.refresh(request)
    return request


async def discard(
    session: AsyncSession,
    actor: AuthContext,
    kind: RequestKind,
    request_id: uuid.UUID,
    version: int,
) -> None:
    """Delete a draft. Drafts never touched the ledger, so nothing is reversed."""
    async with unit_of_work(session, f"discard {kind.value} {request_id}"):
        request = await request_store.load(session, kind, actor, request_id)
        _check_version(request, version)

        draft = DRAFT_STATUS[kind]
        stage = draft if request.status == draft else None
        if not access_policy.is_permitted(
            actor,
            kind,
            WorkflowAction.EDIT,
            stage,
            ministry_id=request.ministry_id,
            requester_id=request.requester_id,
        ):
            raise PermissionDeniedError()
        if request.status != draft:
            msg = f"Only draft requests can be discarded; this one is {request.status}"
            raise InvalidTransitionError(msg)

        await request_store.delete_draft(session, kind, request.id, version, draft)
        await audit.append_entry(
            session,
            organization_id=request.organization_id,
            request_id=request.id,
            request_type=kind,
            actor=actor,
            action=AuditAction.DISCARD,
            prior_status=draft,
            new_status=None,
        )
