"""Budget ledger: per-key allocated/spent/pending counters.

``adjust`` is the only write path. It is one guarded ``UPDATE ... SET
col = col + :delta`` statement, so concurrent adjustments of the same key
serialize on the row inside the database rather than in the caller.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import col

from budgetflow.exceptions import LedgerInvariantError, PersistenceError
from budgetflow.models.enums import BudgetHealth, PeriodType
from budgetflow.models.ledger import BudgetLedgerEntry
from budgetflow.schemas.ledger import LedgerSummary, LedgerTotals, MinistryBudget, PeriodBudget

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
_RATIO_QUANTUM = Decimal("0.0001")


@dataclass(frozen=True)
class LedgerKey:
    """(organization, fiscal year, ministry, period) identifying one ledger row."""

    organization_id: uuid.UUID
    fiscal_year_id: uuid.UUID
    ministry_id: uuid.UUID
    period_type: PeriodType
    period_number: int = 0

    @classmethod
    def for_request(
        cls,
        organization_id: uuid.UUID,
        fiscal_year_id: uuid.UUID,
        ministry_id: uuid.UUID,
        period_type: str,
        period_number: int | None,
    ) -> LedgerKey:
        return cls(
            organization_id=organization_id,
            fiscal_year_id=fiscal_year_id,
            ministry_id=ministry_id,
            period_type=PeriodType(period_type),
            period_number=period_number or 0,
        )


@dataclass(frozen=True)
class LedgerDelta:
    """Signed change to apply to each counter."""

    allocated: Decimal = ZERO
    pending: Decimal = ZERO
    spent: Decimal = ZERO

    @property
    def is_zero(self) -> bool:
        return self.allocated == 0 and self.pending == 0 and self.spent == 0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _key_filter(key: LedgerKey) -> list:
    return [
        col(BudgetLedgerEntry.organization_id) == key.organization_id,
        col(BudgetLedgerEntry.fiscal_year_id) == key.fiscal_year_id,
        col(BudgetLedgerEntry.ministry_id) == key.ministry_id,
        col(BudgetLedgerEntry.period_type) == key.period_type.value,
        col(BudgetLedgerEntry.period_number) == key.period_number,
    ]


async def _ensure_entry(session: AsyncSession, key: LedgerKey) -> None:
    """Create the row for ``key`` unless it already exists.

    Uses the dialect's ``INSERT ... ON CONFLICT DO NOTHING`` so two
    transactions touching a fresh key both proceed to the increment.
    """
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        insert = postgresql.insert
    elif dialect_name == "sqlite":
        insert = sqlite.insert
    else:
        raise PersistenceError(f"Unsupported database dialect for ledger writes: {dialect_name}")

    stmt = (
        insert(BudgetLedgerEntry)
        .values(
            organization_id=key.organization_id,
            fiscal_year_id=key.fiscal_year_id,
            ministry_id=key.ministry_id,
            period_type=key.period_type.value,
            period_number=key.period_number,
            allocated=ZERO,
            spent=ZERO,
            pending=ZERO,
            version=1,
            updated_at=datetime.now(UTC),
        )
        .on_conflict_do_nothing(
            index_elements=["organization_id", "fiscal_year_id", "ministry_id", "period_type", "period_number"]
        )
    )
    await session.execute(stmt)


def utilization_of(spent: Decimal, allocated: Decimal) -> Decimal:
    """Spent over allocated as a ratio; zero when nothing is allocated."""
    if allocated <= 0:
        return ZERO.quantize(_RATIO_QUANTUM)
    return (spent / allocated).quantize(_RATIO_QUANTUM)


def health_of(utilization: Decimal) -> BudgetHealth:
    if utilization > Decimal("1"):
        return BudgetHealth.OVER
    if utilization > Decimal("0.90"):
        return BudgetHealth.WARNING
    if utilization > Decimal("0.75"):
        return BudgetHealth.GOOD
    return BudgetHealth.EXCELLENT


def _totals(rows: Iterable[BudgetLedgerEntry]) -> tuple[Decimal, Decimal, Decimal]:
    allocated = spent = pending = ZERO
    for row in rows:
        allocated += row.allocated
        spent += row.spent
        pending += row.pending
    return allocated, spent, pending


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def adjust(session: AsyncSession, key: LedgerKey, delta: LedgerDelta) -> LedgerTotals:
    """Apply ``delta`` to the row for ``key`` within the caller's transaction.

    Raises LedgerInvariantError when any counter would drop below zero. That
    only happens when the workflow computed a wrong delta, so it is logged as
    a defect and never clamped.
    """
    await _ensure_entry(session, key)

    stmt = (
        update(BudgetLedgerEntry)
        .where(
            *_key_filter(key),
            col(BudgetLedgerEntry.allocated) + delta.allocated >= 0,
            col(BudgetLedgerEntry.pending) + delta.pending >= 0,
            col(BudgetLedgerEntry.spent) + delta.spent >= 0,
        )
        .values(
            allocated=col(BudgetLedgerEntry.allocated) + delta.allocated,
            pending=col(BudgetLedgerEntry.pending) + delta.pending,
            spent=col(BudgetLedgerEntry.spent) + delta.spent,
            version=col(BudgetLedgerEntry.version) + 1,
            updated_at=datetime.now(UTC),
        )
        .returning(
            col(BudgetLedgerEntry.allocated),
            col(BudgetLedgerEntry.spent),
            col(BudgetLedgerEntry.pending),
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    row = result.one_or_none()

    if row is None:
        logger.critical(
            "Ledger invariant violation: key=%s delta=(allocated=%s pending=%s spent=%s) would go negative",
            key,
            delta.allocated,
            delta.pending,
            delta.spent,
        )
        raise LedgerInvariantError("Ledger adjustment would drive a counter below zero")

    allocated, spent, pending = Decimal(row.allocated), Decimal(row.spent), Decimal(row.pending)
    return LedgerTotals(
        allocated=allocated,
        spent=spent,
        pending=pending,
        remaining=allocated - spent - pending,
    )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_totals(session: AsyncSession, key: LedgerKey) -> LedgerTotals:
    """Current counters for one key. A key never touched reads as all zeros."""
    result = await session.execute(select(BudgetLedgerEntry).where(*_key_filter(key)))
    entry = result.scalar_one_or_none()
    if entry is None:
        return LedgerTotals(allocated=ZERO, spent=ZERO, pending=ZERO, remaining=ZERO)
    return LedgerTotals(
        allocated=entry.allocated,
        spent=entry.spent,
        pending=entry.pending,
        remaining=entry.remaining,
    )


async def get_summary(
    session: AsyncSession,
    organization_id: uuid.UUID,
    fiscal_year_id: uuid.UUID,
) -> LedgerSummary:
    """Aggregate every ledger row of a fiscal year per ministry and overall."""
    result = await session.execute(
        select(BudgetLedgerEntry)
        .where(
            col(BudgetLedgerEntry.organization_id) == organization_id,
            col(BudgetLedgerEntry.fiscal_year_id) == fiscal_year_id,
        )
        .order_by(
            col(BudgetLedgerEntry.ministry_id),
            col(BudgetLedgerEntry.period_type),
            col(BudgetLedgerEntry.period_number),
        )
    )
    entries = list(result.scalars().all())

    by_ministry: dict[uuid.UUID, list[BudgetLedgerEntry]] = defaultdict(list)
    for entry in entries:
        by_ministry[entry.ministry_id].append(entry)

    ministries: list[MinistryBudget] = []
    for ministry_id, rows in by_ministry.items():
        allocated, spent, pending = _totals(rows)
        utilization = utilization_of(spent, allocated)
        ministries.append(
            MinistryBudget(
                ministry_id=ministry_id,
                allocated=allocated,
                spent=spent,
                pending=pending,
                remaining=allocated - spent - pending,
                utilization=utilization,
                health=health_of(utilization),
                periods=[
                    PeriodBudget(
                        period_type=PeriodType(row.period_type),
                        period_number=row.period_number or None,
                        allocated=row.allocated,
                        spent=row.spent,
                        pending=row.pending,
                        remaining=row.remaining,
                    )
                    for row in rows
                ],
            )
        )

    allocated, spent, pending = _totals(entries)
    utilization = utilization_of(spent, allocated)
    return LedgerSummary(
        organization_id=organization_id,
        fiscal_year_id=fiscal_year_id,
        allocated=allocated,
        spent=spent,
        pending=pending,
        remaining=allocated - spent - pending,
        utilization=utilization,
        health=health_of(utilization),
        ministries=ministries,
    )
