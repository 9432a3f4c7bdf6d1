"""Document uploads and attachment URLs, with object storage stubbed out."""

from unittest.mock import MagicMock

import pytest

from casehub.services.storage import storage


@pytest.fixture
def fake_storage(monkeypatch):
    upload = MagicMock(side_effect=lambda data, key, content_type=None: key)
    presign = MagicMock(side_effect=lambda key, expires_in=3600: f"https://files.example/{key}?sig=1")
    remove = MagicMock()
    monkeypatch.setattr(storage, "upload", upload)
    monkeypatch.setattr(storage, "get_presigned_url", presign)
    monkeypatch.setattr(storage, "delete", remove)
    return {"upload": upload, "presign": presign, "delete": remove}


async def _upload(client, headers, **form):
    data = {"title": "Weekly plan", "category": "weekly-plan", "tags": "plans, week 1"}
    data.update(form)
    return await client.post(
        "/api/v1/documents",
        data=data,
        files={"file": ("plan.pdf", b"%PDF-1.4 test", "application/pdf")},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_upload_document(client, staff_headers, fake_storage):
    resp = await _upload(client, staff_headers)
    assert resp.status_code == 201, resp.text
    doc = resp.json()
    assert doc["file_key"].startswith("documents/")
    assert doc["file_key"].endswith(".pdf")
    assert doc["tags"] == ["plans", "week 1"]
    assert doc["size_bytes"] == len(b"%PDF-1.4 test")
    fake_storage["upload"].assert_called_once()


@pytest.mark.asyncio
async def test_rejects_unknown_category_and_extension(client, staff_headers, fake_storage):
    resp = await _upload(client, staff_headers, category="secrets")
    assert resp.status_code == 422

    resp = await client.post(
        "/api/v1/documents",
        data={"title": "Script"},
        files={"file": ("run.exe", b"MZ", "application/octet-stream")},
        headers=staff_headers,
    )
    assert resp.status_code == 422
    fake_storage["upload"].assert_not_called()


@pytest.mark.asyncio
async def test_private_document_download_is_restricted(
    client, auth_headers, staff_headers, coordinator_headers, fake_storage
):
    doc = (await _upload(client, auth_headers)).json()
    url = f"/api/v1/documents/{doc['id']}/download"

    resp = await client.get(url, headers=staff_headers)
    assert resp.status_code == 403

    resp = await client.get(url, headers=coordinator_headers)
    assert resp.status_code == 200
    assert resp.json()["url"].startswith("https://files.example/documents/")
    assert resp.json()["expires_in"] == 3600


@pytest.mark.asyncio
async def test_public_document_download(client, auth_headers, staff_headers, fake_storage):
    doc = (await _upload(client, auth_headers, is_public="true")).json()
    resp = await client.get(f"/api/v1/documents/{doc['id']}/download", headers=staff_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_delete_document_removes_object(client, auth_headers, staff_headers, fake_storage):
    doc = (await _upload(client, staff_headers)).json()

    resp = await client.delete(f"/api/v1/documents/{doc['id']}", headers=staff_headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/documents/{doc['id']}", headers=auth_headers)
    assert resp.status_code == 204
    fake_storage["delete"].assert_called_once_with(doc["file_key"])


@pytest.mark.asyncio
async def test_attachment_upload_and_url(client, staff_headers, fake_storage):
    resp = await client.post(
        "/api/v1/files/upload",
        files={"file": ("scan.png", b"\x89PNG", "image/png")},
        headers=staff_headers,
    )
    assert resp.status_code == 201
    key = resp.json()["file_key"]
    assert key.startswith("attachments/")

    resp = await client.get(f"/api/v1/files/{key}", headers=staff_headers)
    assert resp.status_code == 200

    resp = await client.get("/api/v1/files/documents/other.pdf", headers=staff_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_update_rejects_null_required_fields(client, staff_headers, fake_storage):
    doc = (await _upload(client, staff_headers)).json()
    url = f"/api/v1/documents/{doc['id']}"

    for field in ("title", "category", "is_public", "tags"):
        resp = await client.put(url, json={field: None}, headers=staff_headers)
        assert resp.status_code == 422, field

    resp = await client.put(url, json={"description": None, "title": "Week 2"}, headers=staff_headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Week 2"
    assert resp.json()["category"] == "weekly-plan"
