"""Staff accounts, mentees and therapy notes."""

import pytest


async def _create_staff(client, headers, **overrides):
    payload = {
        "first_name": "Maya",
        "last_name": "Okafor",
        "email": "maya@casehub.org",
        "role": "mentor",
        "skills": ["art therapy"],
    }
    payload.update(overrides)
    resp = await client.post("/api/v1/staff", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _create_mentee(client, headers, **overrides):
    payload = {
        "first_name": "Jordan",
        "last_name": "Reyes",
        "email": "jordan@casehub.org",
        "program_start_date": "2024-01-15",
    }
    payload.update(overrides)
    resp = await client.post("/api/v1/mentees", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_staff_returns_working_temporary_password(client, auth_headers):
    staff = await _create_staff(client, auth_headers)
    assert staff["temporary_password"]
    assert staff["user_id"]

    login = await client.post(
        "/auth/login",
        json={"email": "maya@casehub.org", "password": staff["temporary_password"]},
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_duplicate_staff_email(client, auth_headers):
    await _create_staff(client, auth_headers)
    resp = await client.post(
        "/api/v1/staff",
        json={"first_name": "A", "last_name": "B", "email": "MAYA@casehub.org", "role": "mentor"},
        headers=auth_headers,
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_invalid_staff_role(client, auth_headers):
    resp = await client.post(
        "/api/v1/staff",
        json={"first_name": "A", "last_name": "B", "email": "ab@casehub.org", "role": "owner"},
        headers=auth_headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_only_admin_manages_staff(client, coordinator_headers):
    resp = await client.post(
        "/api/v1/staff",
        json={"first_name": "A", "last_name": "B", "email": "ab@casehub.org", "role": "mentor"},
        headers=coordinator_headers,
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_deactivated_staff_cannot_log_in(client, auth_headers):
    staff = await _create_staff(client, auth_headers)

    resp = await client.delete(f"/api/v1/staff/{staff['id']}", headers=auth_headers)
    assert resp.status_code == 204

    login = await client.post(
        "/auth/login",
        json={"email": "maya@casehub.org", "password": staff["temporary_password"]},
    )
    assert login.status_code == 401

    listed = await client.get("/api/v1/staff", headers=auth_headers)
    assert staff["id"] not in [s["id"] for s in listed.json()["data"]]


@pytest.mark.asyncio
async def test_admin_sets_staff_password(client, auth_headers):
    staff = await _create_staff(client, auth_headers)
    resp = await client.put(
        f"/api/v1/staff/{staff['id']}/set-password",
        json={"password": "Chosen123!"},
        headers=auth_headers,
    )
    assert resp.status_code == 200

    login = await client.post(
        "/auth/login", json={"email": "maya@casehub.org", "password": "Chosen123!"}
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_staff_update_rejects_null_required_fields(client, auth_headers):
    staff = await _create_staff(client, auth_headers)
    url = f"/api/v1/staff/{staff['id']}"

    for field in ("first_name", "role", "skills", "is_active"):
        resp = await client.put(url, json={field: None}, headers=auth_headers)
        assert resp.status_code == 422, field

    resp = await client.put(url, json={"department": None, "bio": None}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "mentor"


# ---------------------------------------------------------------------------
# Mentees
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_mentee_crud(client, auth_headers, coordinator_headers):
    mentor = await _create_staff(client, auth_headers)
    mentee = await _create_mentee(client, coordinator_headers, mentor_id=mentor["id"])
    assert mentee["mentor_name"] == "Maya Okafor"
    assert mentee["status"] == "active"

    url = f"/api/v1/mentees/{mentee['id']}"
    resp = await client.put(url, json={"status": "on-hold"}, headers=coordinator_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "on-hold"

    # Only admins delete.
    resp = await client.delete(url, headers=coordinator_headers)
    assert resp.status_code == 403
    resp = await client.delete(url, headers=auth_headers)
    assert resp.status_code == 204
    resp = await client.get(url, headers=auth_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field", ["first_name", "last_name", "email", "program_start_date", "status", "goals"]
)
async def test_mentee_update_rejects_null_required_field(client, auth_headers, field):
    mentee = await _create_mentee(client, auth_headers)
    url = f"/api/v1/mentees/{mentee['id']}"

    resp = await client.put(url, json={field: None}, headers=auth_headers)
    assert resp.status_code == 422

    current = await client.get(url, headers=auth_headers)
    assert current.json()[field] == mentee[field]


@pytest.mark.asyncio
async def test_mentee_validation(client, auth_headers):
    resp = await client.post(
        "/api/v1/mentees",
        json={
            "first_name": "Jordan",
            "last_name": "Reyes",
            "email": "jordan@casehub.org",
            "program_start_date": "2024-06-01",
            "program_end_date": "2024-01-01",
        },
        headers=auth_headers,
    )
    assert resp.status_code == 422

    await _create_mentee(client, auth_headers)
    resp = await client.post(
        "/api/v1/mentees",
        json={
            "first_name": "J",
            "last_name": "R",
            "email": "Jordan@casehub.org",
            "program_start_date": "2024-01-15",
        },
        headers=auth_headers,
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_unknown_mentor_rejected(client, auth_headers):
    resp = await client.post(
        "/api/v1/mentees",
        json={
            "first_name": "J",
            "last_name": "R",
            "email": "jr@casehub.org",
            "program_start_date": "2024-01-15",
            "mentor_id": "00000000-0000-0000-0000-000000000001",
        },
        headers=auth_headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_mentee_search_and_filter(client, auth_headers):
    await _create_mentee(client, auth_headers)
    await _create_mentee(
        client, auth_headers, first_name="Sam", email="sam@casehub.org", status="completed"
    )

    resp = await client.get("/api/v1/mentees", params={"search": "jor"}, headers=auth_headers)
    assert [m["first_name"] for m in resp.json()["data"]] == ["Jordan"]

    resp = await client.get("/api/v1/mentees", params={"status": "completed"}, headers=auth_headers)
    assert [m["first_name"] for m in resp.json()["data"]] == ["Sam"]


# ---------------------------------------------------------------------------
# Therapy notes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_therapy_notes(client, auth_headers, staff_headers):
    mentee = await _create_mentee(client, auth_headers)
    note = {
        "mentee_id": mentee["id"],
        "session_date": "2024-02-01",
        "session_type": "individual",
        "duration_minutes": 50,
        "therapist_name": "Dr. Lee",
        "session_notes": "Discussed school transition.",
        "risk_level": "medium",
        "mood_rating": 4,
    }

    resp = await client.post("/api/v1/therapy-notes", json=note, headers=staff_headers)
    assert resp.status_code == 403

    resp = await client.post("/api/v1/therapy-notes", json=note, headers=auth_headers)
    assert resp.status_code == 201

    resp = await client.get(
        "/api/v1/therapy-notes", params={"mentee_id": mentee["id"]}, headers=auth_headers
    )
    assert len(resp.json()) == 1
    assert resp.json()[0]["risk_level"] == "medium"

    resp = await client.post(
        "/api/v1/therapy-notes", json={**note, "mood_rating": 9}, headers=auth_headers
    )
    assert resp.status_code == 422
