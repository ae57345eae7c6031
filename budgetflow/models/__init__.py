from sqlmodel import SQLModel

from budgetflow.models.audit import AuditEntry
from budgetflow.models.base import OrganizationScopedMixin, TimestampMixin, UUIDBase
from budgetflow.models.enums import (
    ActorRole,
    AllocationStatus,
    AuditAction,
    BudgetHealth,
    ExpenseStatus,
    LedgerEffect,
    PeriodType,
    RequestKind,
    WorkflowAction,
)
from budgetflow.models.ledger import BudgetLedgerEntry
from budgetflow.models.request import AllocationRequest, ExpenseRequest

__all__ = [
    "ActorRole",
    "AllocationRequest",
    "AllocationStatus",
    "AuditAction",
    "AuditEntry",
    "BudgetHealth",
    "BudgetLedgerEntry",
    "ExpenseRequest",
    "ExpenseStatus",
    "LedgerEffect",
    "OrganizationScopedMixin",
    "PeriodType",
    "RequestKind",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "WorkflowAction",
]
