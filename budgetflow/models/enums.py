from __future__ import annotations

import enum


class PeriodType(enum.StrEnum):
    """Sub-division of a fiscal year that a budget line is booked against."""

    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"


class RequestKind(enum.StrEnum):
    """Which workflow a request follows."""

    ALLOCATION = "allocation"
    EXPENSE = "expense"


class AllocationStatus(enum.StrEnum):
    """State machine for allocation requests."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpenseStatus(enum.StrEnum):
    """State machine for expense requests."""

    DRAFT = "draft"
    PENDING_LEADER = "pending_leader"
    PENDING_TREASURY = "pending_treasury"
    PENDING_FINANCE = "pending_finance"
    LEADER_APPROVED = "leader_approved"
    TREASURY_APPROVED = "treasury_approved"
    LEADER_DENIED = "leader_denied"
    TREASURY_DENIED = "treasury_denied"


PENDING_EXPENSE_STATUSES = frozenset(
    {ExpenseStatus.PENDING_LEADER, ExpenseStatus.PENDING_TREASURY, ExpenseStatus.PENDING_FINANCE}
)
COMPLETED_EXPENSE_STATUSES = frozenset({ExpenseStatus.LEADER_APPROVED, ExpenseStatus.TREASURY_APPROVED})
DENIED_EXPENSE_STATUSES = frozenset({ExpenseStatus.LEADER_DENIED, ExpenseStatus.TREASURY_DENIED})


class ActorRole(enum.StrEnum):
    """Roles supplied by the identity provider."""

    REQUESTER = "requester"
    MINISTRY_LEADER = "ministry_leader"
    TREASURY_OFFICER = "treasury_officer"
    FINANCE_OFFICER = "finance_officer"
    ADMIN = "admin"


class WorkflowAction(enum.StrEnum):
    """Actions an actor can take on a request."""

    EDIT = "edit"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    DENY = "deny"


class LedgerEffect(enum.StrEnum):
    """How a transition moves the budget ledger."""

    NONE = "none"
    ALLOCATE = "allocate"
    HOLD = "hold"
    SETTLE = "settle"
    RELEASE = "release"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "create"
    EDIT = "edit"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    DENY = "deny"
    DISCARD = "discard"


class BudgetHealth(enum.StrEnum):
    """Traffic-light reading of spent versus allocated."""

    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    OVER = "over"
