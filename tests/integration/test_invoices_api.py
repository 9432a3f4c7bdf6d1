"""
Invoice lifecycle through the API.

Covers creation with server-side totals, the status machine, payment,
deletion rules, the derived overdue filter and role checks.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest


def _invoice_payload(**overrides):
    payload = {
        "vendor": "Office Supplies Ltd",
        "issue_date": "2024-01-01",
        "due_date": "2099-01-31",
        "vat_rate": "0.15",
        "line_items": [
            {"description": "Paper", "quantity": 10, "unit_price_cents": 1250},
            {"description": "Pens", "quantity": 20, "unit_price_cents": 275},
        ],
    }
    payload.update(overrides)
    return payload


async def _create(client, headers, **overrides):
    resp = await client.post("/api/v1/invoices", json=_invoice_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_invoice_computes_totals(client, auth_headers):
    inv = await _create(client, auth_headers)

    assert inv["status"] == "pending"
    assert inv["subtotal_cents"] == 18000
    assert inv["vat_cents"] == 2700
    assert inv["total_cents"] == 20700
    assert Decimal(inv["vat_rate"]) == Decimal("0.15")
    assert inv["invoice_number"].startswith("INV-")
    assert [li["line_total_cents"] for li in inv["line_items"]] == [12500, 5500]
    assert inv["is_overdue"] is False


@pytest.mark.asyncio
async def test_create_invoice_rejects_mismatched_totals(client, auth_headers):
    resp = await client.post(
        "/api/v1/invoices",
        json=_invoice_payload(total_cents=20000),
        headers=auth_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_create_invoice_requires_line_items(client, auth_headers):
    resp = await client.post(
        "/api/v1/invoices", json=_invoice_payload(line_items=[]), headers=auth_headers
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_due_date_before_issue_date(client, auth_headers):
    resp = await client.post(
        "/api/v1/invoices",
        json=_invoice_payload(issue_date="2024-02-01", due_date="2024-01-01"),
        headers=auth_headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_status_machine(client, auth_headers):
    inv = await _create(client, auth_headers)
    url = f"/api/v1/invoices/{inv['id']}"

    resp = await client.patch(f"{url}/status", json={"status": "approved"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"

    resp = await client.patch(
        f"{url}/pay", json={"payment_method": "bank_transfer"}, headers=auth_headers
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "paid"
    assert resp.json()["paid_date"] is not None

    # Paid is terminal.
    resp = await client.patch(f"{url}/status", json={"status": "approved"}, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    resp = await client.get(url, headers=auth_headers)
    assert resp.json()["status"] == "paid"


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(client, auth_headers):
    inv = await _create(client, auth_headers)
    resp = await client.patch(
        f"/api/v1/invoices/{inv['id']}/status", json={"status": "overdue"}, headers=auth_headers
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_replaces_line_items(client, auth_headers):
    inv = await _create(client, auth_headers)
    resp = await client.put(
        f"/api/v1/invoices/{inv['id']}",
        json=_invoice_payload(
            line_items=[{"description": "Toner", "quantity": 2, "unit_price_cents": 4000}]
        ),
        headers=auth_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["line_items"]) == 1
    assert body["subtotal_cents"] == 8000
    assert body["vat_cents"] == 1200
    assert body["total_cents"] == 9200


@pytest.mark.asyncio
async def test_paid_invoice_cannot_be_edited_or_deleted(client, auth_headers):
    inv = await _create(client, auth_headers)
    url = f"/api/v1/invoices/{inv['id']}"
    await client.patch(f"{url}/pay", json={}, headers=auth_headers)

    resp = await client.put(url, json=_invoice_payload(), headers=auth_headers)
    assert resp.status_code == 409

    resp = await client.delete(url, headers=auth_headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_delete_pending_invoice(client, auth_headers):
    inv = await _create(client, auth_headers)
    url = f"/api/v1/invoices/{inv['id']}"

    resp = await client.delete(url, headers=auth_headers)
    assert resp.status_code == 204

    resp = await client.get(url, headers=auth_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_overdue_is_derived(client, auth_headers):
    past_due = (date.today() - timedelta(days=3)).isoformat()
    overdue = await _create(client, auth_headers, issue_date="2024-01-01", due_date=past_due)
    await _create(client, auth_headers)

    assert overdue["is_overdue"] is True
    assert overdue["status"] == "pending"

    resp = await client.get("/api/v1/invoices", params={"status": "overdue"}, headers=auth_headers)
    assert resp.status_code == 200
    ids = [i["id"] for i in resp.json()["data"]]
    assert ids == [overdue["id"]]


@pytest.mark.asyncio
async def test_list_rejects_unknown_status(client, auth_headers):
    resp = await client.get("/api/v1/invoices", params={"status": "lost"}, headers=auth_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_staff_cannot_create_invoice(client, staff_headers):
    resp = await client.post("/api/v1/invoices", json=_invoice_payload(), headers=staff_headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


@pytest.mark.asyncio
async def test_coordinator_cannot_delete(client, auth_headers, coordinator_headers):
    inv = await _create(client, auth_headers)
    resp = await client.delete(f"/api/v1/invoices/{inv['id']}", headers=coordinator_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_list_returns_each_invoice_with_its_own_lines(client, auth_headers):
    two_lines = await _create(client, auth_headers)
    one_line = await _create(
        client,
        auth_headers,
        vendor="Print Shop",
        line_items=[{"description": "Flyers", "quantity": 100, "unit_price_cents": 15}],
    )

    resp = await client.get("/api/v1/invoices", headers=auth_headers)
    assert resp.status_code == 200
    by_id = {inv["id"]: inv for inv in resp.json()["data"]}
    assert [li["description"] for li in by_id[two_lines["id"]]["line_items"]] == ["Paper", "Pens"]
    assert [li["description"] for li in by_id[one_line["id"]]["line_items"]] == ["Flyers"]
