"""Receipt submission, taxable-line totals and one-way decisions."""

import pytest


def _receipt_payload(**overrides):
    payload = {
        "vendor": "Corner Cafe",
        "receipt_date": "2024-03-01",
        "category": "meals",
        "tax_rate": "0.15",
        "line_items": [
            {"description": "Lunch", "quantity": 4, "unit_price_cents": 2250, "taxable": True},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_any_user_can_submit_receipt(client, staff_headers):
    resp = await client.post("/api/v1/receipts", json=_receipt_payload(), headers=staff_headers)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["subtotal_cents"] == 9000
    assert body["tax_cents"] == 1350
    assert body["total_cents"] == 10350
    assert body["status"] == "pending"
    assert body["uploaded_by"] is not None


@pytest.mark.asyncio
async def test_non_taxable_lines_are_not_taxed(client, staff_headers):
    payload = _receipt_payload(
        line_items=[
            {"description": "Lunch", "quantity": 4, "unit_price_cents": 2250, "taxable": True},
            {"description": "Bus fare", "quantity": 1, "unit_price_cents": 1000, "taxable": False},
        ]
    )
    resp = await client.post("/api/v1/receipts", json=payload, headers=staff_headers)
    body = resp.json()
    assert body["subtotal_cents"] == 10000
    assert body["tax_cents"] == 1350
    assert body["total_cents"] == 11350


@pytest.mark.asyncio
async def test_decision_is_final(client, staff_headers, coordinator_headers):
    created = (
        await client.post("/api/v1/receipts", json=_receipt_payload(), headers=staff_headers)
    ).json()
    url = f"/api/v1/receipts/{created['id']}/status"

    # Submitters cannot approve their own receipts.
    resp = await client.patch(url, json={"status": "approved"}, headers=staff_headers)
    assert resp.status_code == 403

    resp = await client.patch(url, json={"status": "approved"}, headers=coordinator_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert resp.json()["decided_by"] is not None

    resp = await client.patch(url, json={"status": "rejected"}, headers=coordinator_headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_filter_by_status(client, staff_headers, coordinator_headers):
    first = (
        await client.post("/api/v1/receipts", json=_receipt_payload(), headers=staff_headers)
    ).json()
    await client.post("/api/v1/receipts", json=_receipt_payload(), headers=staff_headers)
    await client.patch(
        f"/api/v1/receipts/{first['id']}/status",
        json={"status": "rejected"},
        headers=coordinator_headers,
    )

    resp = await client.get(
        "/api/v1/receipts", params={"status": "pending"}, headers=staff_headers
    )
    assert resp.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_list_returns_each_receipt_with_its_own_lines(client, staff_headers):
    lunch = (
        await client.post("/api/v1/receipts", json=_receipt_payload(), headers=staff_headers)
    ).json()
    taxi = (
        await client.post(
            "/api/v1/receipts",
            json=_receipt_payload(
                vendor="City Cabs",
                category="travel",
                line_items=[
                    {"description": "Outbound", "quantity": 1, "unit_price_cents": 1800},
                    {"description": "Return", "quantity": 1, "unit_price_cents": 1900},
                ],
            ),
            headers=staff_headers,
        )
    ).json()

    resp = await client.get("/api/v1/receipts", headers=staff_headers)
    assert resp.status_code == 200
    by_id = {r["id"]: r for r in resp.json()["data"]}
    assert [li["description"] for li in by_id[lunch["id"]]["line_items"]] == ["Lunch"]
    assert [li["description"] for li in by_id[taxi["id"]]["line_items"]] == ["Outbound", "Return"]
