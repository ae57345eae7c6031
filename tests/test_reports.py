"""Budget summary endpoint: ledger totals, health and expense metrics."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from httpx import AsyncClient

ORG_ID = uuid.uuid4()
FISCAL_YEAR_ID = uuid.uuid4()
MINISTRY_ID = uuid.uuid4()

EXPENSES_URL = f"/organizations/{ORG_ID}/expense-requests"
ALLOCATIONS_URL = f"/organizations/{ORG_ID}/allocation-requests"
SUMMARY_URL = f"/organizations/{ORG_ID}/fiscal-years/{FISCAL_YEAR_ID}/budget-summary"

ADMIN_HEADERS = {
    "X-User-Id": str(uuid.uuid4()),
    "X-Role": "admin",
    "X-Organization-Ids": str(ORG_ID),
}


async def _expense(client: AsyncClient, amount: str, *, submit: bool = True) -> dict[str, Any]:
    resp = await client.post(
        EXPENSES_URL,
        json={
            "fiscal_year_id": str(FISCAL_YEAR_ID),
            "ministry_id": str(MINISTRY_ID),
            "amount": amount,
            "category": "Outreach",
            "submit": submit,
        },
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201
    result: dict[str, Any] = resp.json()
    return result


async def _advance(client: AsyncClient, expense: dict[str, Any], action: str) -> dict[str, Any]:
    resp = await client.post(
        f"{EXPENSES_URL}/{expense['id']}/advance",
        json={"version": expense["version"], "action": action, "notes": "reviewed"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    result: dict[str, Any] = resp.json()
    return result


async def test_empty_year_summary(async_client: AsyncClient) -> None:
    resp = await async_client.get(SUMMARY_URL, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["organization_id"] == str(ORG_ID)
    assert data["fiscal_year_id"] == str(FISCAL_YEAR_ID)
    assert data["ministries"] == []
    assert data["health"] == "excellent"
    assert data["expense_metrics"]["total"] == 0
    assert Decimal(data["expense_metrics"]["approval_rate"]) == Decimal("0")
    assert Decimal(data["expense_metrics"]["average_expense"]) == Decimal("0")


async def test_expense_metrics_and_health(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        ALLOCATIONS_URL,
        json={
            "fiscal_year_id": str(FISCAL_YEAR_ID),
            "ministry_id": str(MINISTRY_ID),
            "requested_amount": "1000",
            "justification": "Outreach",
        },
        headers=ADMIN_HEADERS,
    )
    allocation = resp.json()
    allocation = (
        await async_client.post(
            f"{ALLOCATIONS_URL}/{allocation['id']}/submit", json={"version": 1}, headers=ADMIN_HEADERS
        )
    ).json()
    resp = await async_client.post(
        f"{ALLOCATIONS_URL}/{allocation['id']}/review",
        json={"version": allocation["version"], "decision": "approve", "approved_amount": "1000"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200

    # Settled: 800 through the full chain.
    settled = await _expense(async_client, "800")
    for _ in range(3):
        settled = await _advance(async_client, settled, "approve")
    assert settled["status"] == "treasury_approved"

    denied = await _expense(async_client, "50")
    await _advance(async_client, denied, "deny")

    await _expense(async_client, "100")
    await _expense(async_client, "999", submit=False)

    data = (await async_client.get(SUMMARY_URL, headers=ADMIN_HEADERS)).json()
    metrics = data["expense_metrics"]
    assert metrics["total"] == 3
    assert metrics["pending_approvals"] == 1
    assert metrics["completed"] == 1
    assert metrics["denied"] == 1
    assert Decimal(metrics["completion_rate"]) == Decimal("0.3333")
    assert Decimal(metrics["approval_rate"]) == Decimal("0.5")
    assert Decimal(metrics["average_expense"]) == Decimal("800")

    assert Decimal(data["spent"]) == Decimal("800")
    assert Decimal(data["pending"]) == Decimal("100")
    assert Decimal(data["remaining"]) == Decimal("100")
    assert Decimal(data["utilization"]) == Decimal("0.8")
    assert data["health"] == "good"
    assert data["ministries"][0]["health"] == "good"


async def test_summary_of_other_organization_is_not_found(async_client: AsyncClient) -> None:
    other = uuid.uuid4()
    resp = await async_client.get(
        f"/organizations/{other}/fiscal-years/{FISCAL_YEAR_ID}/budget-summary", headers=ADMIN_HEADERS
    )
    assert resp.status_code == 404
