"""Allocation request workflow over HTTP: draft, edit, submit, review, discard."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest

from budgetflow.models.enums import AllocationStatus

if TYPE_CHECKING:
    from httpx import AsyncClient

ORG_ID = uuid.uuid4()
OTHER_ORG_ID = uuid.uuid4()
FISCAL_YEAR_ID = uuid.uuid4()
YOUTH_MINISTRY_ID = uuid.uuid4()
REQUESTER_ID = uuid.uuid4()
FINANCE_ID = uuid.uuid4()

ALLOCATIONS_URL = f"/organizations/{ORG_ID}/allocation-requests"
SUMMARY_URL = f"/organizations/{ORG_ID}/fiscal-years/{FISCAL_YEAR_ID}/budget-summary"


def _headers(user_id: uuid.UUID, role: str, *, ministries: list[uuid.UUID] | None = None) -> dict[str, str]:
    return {
        "X-User-Id": str(user_id),
        "X-Role": role,
        "X-Organization-Ids": str(ORG_ID),
        "X-Ministry-Ids": ",".join(str(m) for m in ministries or []),
    }


REQUESTER_HEADERS = _headers(REQUESTER_ID, "requester")
FINANCE_HEADERS = _headers(FINANCE_ID, "finance_officer")
LEADER_HEADERS = _headers(uuid.uuid4(), "ministry_leader", ministries=[YOUTH_MINISTRY_ID])
ADMIN_HEADERS = _headers(uuid.uuid4(), "admin")


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


async def _create(client: AsyncClient, amount: str = "10000.00", **overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "fiscal_year_id": str(FISCAL_YEAR_ID),
        "ministry_id": str(YOUTH_MINISTRY_ID),
        "requested_amount": amount,
        "justification": "Youth ministry summer programme",
    }
    body.update(overrides)
    resp = await client.post(ALLOCATIONS_URL, json=body, headers=REQUESTER_HEADERS)
    assert resp.status_code == 201, resp.text
    result: dict[str, Any] = resp.json()
    return result


async def _submit(client: AsyncClient, request: dict[str, Any]) -> dict[str, Any]:
    resp = await client.post(
        f"{ALLOCATIONS_URL}/{request['id']}/submit",
        json={"version": request["version"]},
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    result: dict[str, Any] = resp.json()
    return result


async def _review(
    client: AsyncClient,
    request: dict[str, Any],
    decision: str,
    headers: dict[str, str] = FINANCE_HEADERS,
    **extra: Any,
) -> Any:
    return await client.post(
        f"{ALLOCATIONS_URL}/{request['id']}/review",
        json={"version": request["version"], "decision": decision, **extra},
        headers=headers,
    )


async def _allocated(client: AsyncClient) -> Decimal:
    resp = await client.get(SUMMARY_URL, headers=FINANCE_HEADERS)
    assert resp.status_code == 200
    return Decimal(resp.json()["allocated"])


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------


async def test_create_allocation_is_draft(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    assert created["status"] == "draft"
    assert created["version"] == 1
    assert created["requester_id"] == str(REQUESTER_ID)
    assert created["approved_amount"] is None
    assert Decimal(created["requested_amount"]) == Decimal("10000")


async def test_create_in_foreign_organization_is_not_found(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        f"/organizations/{OTHER_ORG_ID}/allocation-requests",
        json={
            "fiscal_year_id": str(FISCAL_YEAR_ID),
            "ministry_id": str(YOUTH_MINISTRY_ID),
            "requested_amount": "10",
            "justification": "x",
        },
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 404


async def test_create_rejects_blank_justification(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        ALLOCATIONS_URL,
        json={
            "fiscal_year_id": str(FISCAL_YEAR_ID),
            "ministry_id": str(YOUTH_MINISTRY_ID),
            "requested_amount": "10",
            "justification": "   ",
        },
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "ValidationError"


async def test_breakdown_mismatch_is_advisory(async_client: AsyncClient) -> None:
    created = await _create(
        async_client,
        amount="1000",
        budget_breakdown=[
            {"category": "Food", "amount": "600"},
            {"category": "Transport", "description": "Bus hire", "amount": "300"},
        ],
    )
    assert Decimal(created["breakdown_total"]) == Decimal("900")
    assert created["breakdown_mismatch"] is True
    assert Decimal(created["requested_amount"]) == Decimal("1000")


async def test_get_and_list_allocations(async_client: AsyncClient) -> None:
    first = await _create(async_client, amount="100")
    await _create(async_client, amount="200")
    await _submit(async_client, first)

    resp = await async_client.get(f"{ALLOCATIONS_URL}/{first['id']}", headers=FINANCE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["status"] == "submitted"

    resp = await async_client.get(ALLOCATIONS_URL, headers=FINANCE_HEADERS)
    assert resp.json()["total"] == 2

    resp = await async_client.get(ALLOCATIONS_URL, params={"status": "submitted"}, headers=FINANCE_HEADERS)
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == first["id"]


async def test_get_from_other_organization_is_not_found(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    outsider = {
        "X-User-Id": str(uuid.uuid4()),
        "X-Role": "admin",
        "X-Organization-Ids": str(OTHER_ORG_ID),
    }
    resp = await async_client.get(f"/organizations/{OTHER_ORG_ID}/allocation-requests/{created['id']}", headers=outsider)
    assert resp.status_code == 404
    resp = await async_client.get(f"{ALLOCATIONS_URL}/{created['id']}", headers=outsider)
    assert resp.status_code == 404


async def test_invalid_role_header_is_rejected(async_client: AsyncClient) -> None:
    resp = await async_client.get(ALLOCATIONS_URL, headers={**REQUESTER_HEADERS, "X-Role": "bishop"})
    assert resp.status_code == 422


async def test_malformed_organization_header_is_rejected(async_client: AsyncClient) -> None:
    resp = await async_client.get(ALLOCATIONS_URL, headers={**REQUESTER_HEADERS, "X-Organization-Ids": "nope"})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Edit / discard
# ---------------------------------------------------------------------------


async def test_edit_draft_bumps_version(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    resp = await async_client.patch(
        f"{ALLOCATIONS_URL}/{created['id']}",
        json={"version": 1, "requested_amount": "12000", "period_type": "quarterly", "period_number": 2},
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["version"] == 2
    assert Decimal(data["requested_amount"]) == Decimal("12000")
    assert data["period_type"] == "quarterly"
    assert data["period_number"] == 2


async def test_edit_with_bad_period_is_rejected(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    resp = await async_client.patch(
        f"{ALLOCATIONS_URL}/{created['id']}",
        json={"version": 1, "period_type": "monthly"},
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 422


async def test_edit_with_stale_version_conflicts(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    await _submit(async_client, created)
    resp = await async_client.patch(
        f"{ALLOCATIONS_URL}/{created['id']}",
        json={"version": 1, "justification": "late edit"},
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 409


async def test_edit_after_submit_is_invalid_transition(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    submitted = await _submit(async_client, created)
    resp = await async_client.patch(
        f"{ALLOCATIONS_URL}/{created['id']}",
        json={"version": submitted["version"], "justification": "late edit"},
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidTransitionError"


async def test_other_requester_cannot_edit(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    resp = await async_client.patch(
        f"{ALLOCATIONS_URL}/{created['id']}",
        json={"version": 1, "justification": "hijack"},
        headers=_headers(uuid.uuid4(), "requester"),
    )
    assert resp.status_code == 403


async def test_leader_of_ministry_can_edit_draft(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    resp = await async_client.patch(
        f"{ALLOCATIONS_URL}/{created['id']}",
        json={"version": 1, "justification": "Tightened scope"},
        headers=LEADER_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["justification"] == "Tightened scope"


async def test_discard_draft(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    resp = await async_client.delete(
        f"{ALLOCATIONS_URL}/{created['id']}", params={"version": 1}, headers=REQUESTER_HEADERS
    )
    assert resp.status_code == 204
    resp = await async_client.get(f"{ALLOCATIONS_URL}/{created['id']}", headers=REQUESTER_HEADERS)
    assert resp.status_code == 404


async def test_discard_submitted_is_invalid_transition(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    submitted = await _submit(async_client, created)
    resp = await async_client.delete(
        f"{ALLOCATIONS_URL}/{created['id']}",
        params={"version": submitted["version"]},
        headers=REQUESTER_HEADERS,
    )
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


async def test_youth_allocation_partially_approved(async_client: AsyncClient) -> None:
    """Youth asks for 10,000 and finance approves 9,000; the ledger credits 9,000."""
    created = await _create(async_client, amount="10000")
    submitted = await _submit(async_client, created)
    assert submitted["status"] == "submitted"
    assert await _allocated(async_client) == Decimal("0")

    resp = await _review(async_client, submitted, "approve", approved_amount="9000", notes="Trim transport")
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["status"] == "approved"
    assert Decimal(data["approved_amount"]) == Decimal("9000")
    assert data["reviewed_by"] == str(FINANCE_ID)
    assert data["review_notes"] == "Trim transport"

    resp = await async_client.get(SUMMARY_URL, headers=FINANCE_HEADERS)
    summary = resp.json()
    assert Decimal(summary["allocated"]) == Decimal("9000")
    assert Decimal(summary["remaining"]) == Decimal("9000")
    assert summary["ministries"][0]["ministry_id"] == str(YOUTH_MINISTRY_ID)


async def test_approve_more_than_requested_fails_before_mutation(async_client: AsyncClient) -> None:
    submitted = await _submit(async_client, await _create(async_client, amount="1000"))
    resp = await _review(async_client, submitted, "approve", approved_amount="1000.01")
    assert resp.status_code == 422

    resp = await async_client.get(f"{ALLOCATIONS_URL}/{submitted['id']}", headers=FINANCE_HEADERS)
    assert resp.json()["status"] == "submitted"
    assert resp.json()["version"] == submitted["version"]
    assert await _allocated(async_client) == Decimal("0")


async def test_approve_requires_amount(async_client: AsyncClient) -> None:
    submitted = await _submit(async_client, await _create(async_client))
    resp = await _review(async_client, submitted, "approve")
    assert resp.status_code == 422


async def test_reject_requires_notes(async_client: AsyncClient) -> None:
    submitted = await _submit(async_client, await _create(async_client))
    resp = await _review(async_client, submitted, "reject", notes="  ")
    assert resp.status_code == 422

    resp = await _review(async_client, submitted, "reject", notes="Over budget this year")
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert await _allocated(async_client) == Decimal("0")


async def test_requester_cannot_review(async_client: AsyncClient) -> None:
    submitted = await _submit(async_client, await _create(async_client))
    resp = await _review(async_client, submitted, "approve", headers=REQUESTER_HEADERS, approved_amount="1")
    assert resp.status_code == 403


async def test_leader_cannot_review(async_client: AsyncClient) -> None:
    submitted = await _submit(async_client, await _create(async_client))
    resp = await _review(async_client, submitted, "approve", headers=LEADER_HEADERS, approved_amount="1")
    assert resp.status_code == 403


async def test_admin_can_review(async_client: AsyncClient) -> None:
    submitted = await _submit(async_client, await _create(async_client))
    resp = await _review(async_client, submitted, "approve", headers=ADMIN_HEADERS, approved_amount="10000")
    assert resp.status_code == 200
    assert await _allocated(async_client) == Decimal("10000")


async def test_review_of_draft_is_invalid_transition(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    resp = await _review(async_client, created, "approve", approved_amount="1")
    assert resp.status_code == 400


@pytest.mark.parametrize("final", ["approve", "reject"])
async def test_decided_allocation_accepts_no_further_actions(async_client: AsyncClient, final: str) -> None:
    """Only legal edges move a request; terminal statuses reject every action."""
    submitted = await _submit(async_client, await _create(async_client))
    resp = await _review(async_client, submitted, final, approved_amount="5000", notes="decided")
    assert resp.status_code == 200
    decided = resp.json()
    assert decided["status"] in {AllocationStatus.APPROVED, AllocationStatus.REJECTED}

    attempts = [
        _review(async_client, decided, "approve", headers=ADMIN_HEADERS, approved_amount="1"),
        _review(async_client, decided, "reject", headers=ADMIN_HEADERS, notes="again"),
        async_client.post(
            f"{ALLOCATIONS_URL}/{decided['id']}/submit", json={"version": decided["version"]}, headers=ADMIN_HEADERS
        ),
        async_client.patch(
            f"{ALLOCATIONS_URL}/{decided['id']}",
            json={"version": decided["version"], "justification": "x"},
            headers=ADMIN_HEADERS,
        ),
    ]
    for attempt in attempts:
        resp = await attempt
        assert resp.status_code == 400

    expected = Decimal("5000") if final == "approve" else Decimal("0")
    assert await _allocated(async_client) == expected
