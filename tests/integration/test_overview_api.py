"""Dashboard, global search and the audit trail."""

import pytest


async def _seed(client, headers):
    await client.post(
        "/api/v1/mentees",
        json={
            "first_name": "Jordan",
            "last_name": "Reyes",
            "email": "jordan@casehub.org",
            "program_start_date": "2024-01-15",
        },
        headers=headers,
    )
    await client.post(
        "/api/v1/invoices",
        json={
            "vendor": "Jordan Printing",
            "issue_date": "2024-01-01",
            "due_date": "2024-01-31",
            "vat_rate": "0.15",
            "line_items": [{"description": "Flyers", "quantity": 1, "unit_price_cents": 10000}],
        },
        headers=headers,
    )
    await client.post(
        "/api/v1/inventory",
        json={"item_name": "Notebooks", "category": "supplies", "quantity": 2, "min_stock": 5},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_dashboard_stats(client, auth_headers):
    await _seed(client, auth_headers)

    resp = await client.get("/api/v1/dashboard/stats", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    stats = body["stats"]
    assert stats["total_mentees"] == 1
    assert stats["active_mentees"] == 1
    assert stats["pending_invoices"] == 1
    assert stats["overdue_invoices"] == 1
    assert stats["outstanding_invoice_cents"] == 11500
    assert stats["low_stock_items"] == 1

    recent = body["recent_activity"]
    assert [m["title"] for m in recent["new_mentees"]] == ["Jordan Reyes"]
    assert [i["title"] for i in recent["pending_invoices"]] == ["Jordan Printing"]


@pytest.mark.asyncio
async def test_search_across_entities(client, auth_headers):
    await _seed(client, auth_headers)

    resp = await client.get("/api/v1/search", params={"q": "JORDAN"}, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["results"]["mentees"]) == 1
    assert len(body["results"]["invoices"]) == 1
    assert body["results"]["inventory"] == []
    assert body["total"] == 2


@pytest.mark.asyncio
async def test_search_requires_query(client, auth_headers):
    resp = await client.get("/api/v1/search", headers=auth_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_mutations_are_audited(client, auth_headers, admin_user):
    await _seed(client, auth_headers)

    resp = await client.get(
        "/api/v1/audit-logs", params={"resource": "invoice"}, headers=auth_headers
    )
    assert resp.status_code == 200
    logs = resp.json()["data"]
    assert len(logs) == 1
    assert logs[0]["action"] == "create"
    assert logs[0]["actor_id"] == str(admin_user.id)
    assert logs[0]["details"]["method"] == "POST"
    assert logs[0]["request_id"]


@pytest.mark.asyncio
async def test_audit_redacts_passwords(client, auth_headers):
    staff = (
        await client.post(
            "/api/v1/staff",
            json={"first_name": "A", "last_name": "B", "email": "ab@casehub.org", "role": "mentor"},
            headers=auth_headers,
        )
    ).json()
    await client.put(
        f"/api/v1/staff/{staff['id']}/set-password",
        json={"password": "Chosen123!"},
        headers=auth_headers,
    )

    resp = await client.get(
        "/api/v1/audit-logs", params={"action": "set_password"}, headers=auth_headers
    )
    logs = resp.json()["data"]
    assert logs[0]["details"]["body"] == {"password": "***"}


@pytest.mark.asyncio
async def test_failed_requests_are_not_audited(client, auth_headers):
    await client.patch(
        "/api/v1/invoices/00000000-0000-0000-0000-000000000001/status",
        json={"status": "approved"},
        headers=auth_headers,
    )
    resp = await client.get("/api/v1/audit-logs", headers=auth_headers)
    assert resp.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_audit_logs_admin_only_and_export(client, auth_headers, coordinator_headers):
    await _seed(client, auth_headers)

    resp = await client.get("/api/v1/audit-logs", headers=coordinator_headers)
    assert resp.status_code == 403

    resp = await client.get("/api/v1/audit-logs/export", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert len(lines) == 4
