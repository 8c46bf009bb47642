"""File status, listing and deletion: owner isolation, download URLs only for CLEAN files."""
from uuid import uuid4

import pytest
from httpx import AsyncClient

from scanvault.services.storage import StorageArea, StorageGateway
from scanvault.services.storage.memory import InMemoryStorage


class DeleteFailingStorage(InMemoryStorage):
    def delete(self, area, storage_key):
        raise ConnectionError("object store unreachable")


async def _create(client: AsyncClient, headers, filename="cat.png") -> dict:
    r = await client.post(
        "/api/files/upload-intent",
        json={"filename": filename, "content_type": "image/png", "size_bytes": 10},
        headers=headers,
    )
    assert r.status_code == 200
    return r.json()


async def _verdict(client: AsyncClient, scan_headers, storage_key: str, verdict: str) -> None:
    r = await client.post(
        "/api/webhooks/scan-result",
        json={"storage_key": storage_key, "verdict": verdict},
        headers=scan_headers,
    )
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_scanning_file_has_no_download_url(client: AsyncClient, owner_headers):
    intent = await _create(client, owner_headers)
    r = await client.get(f"/api/files/{intent['file_id']}", headers=owner_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "SCANNING"
    assert body["download_url"] is None
    assert body["filename"] == "cat.png"


@pytest.mark.asyncio
async def test_clean_file_gets_read_capability(client: AsyncClient, owner_headers, scan_headers, memory_storage):
    intent = await _create(client, owner_headers)
    memory_storage.put(StorageArea.PERMANENT, intent["storage_key"], b"img")
    await _verdict(client, scan_headers, intent["storage_key"], "CLEAN")

    r = await client.get(f"/api/files/{intent['file_id']}", headers=owner_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "CLEAN"
    assert body["download_url"].startswith("memory://permanent/")
    assert body["expires_in_minutes"] == 15
    assert ("get", StorageArea.PERMANENT, intent["storage_key"], 15 * 60) in memory_storage.minted


@pytest.mark.asyncio
async def test_threat_file_never_gets_download_url(client: AsyncClient, owner_headers, scan_headers, memory_storage):
    intent = await _create(client, owner_headers)
    await _verdict(client, scan_headers, intent["storage_key"], "THREAT_DETECTED")
    r = await client.get(f"/api/files/{intent['file_id']}", headers=owner_headers)
    assert r.json()["status"] == "THREAT_DETECTED"
    assert r.json()["download_url"] is None
    assert not [m for m in memory_storage.minted if m[0] == "get"]


@pytest.mark.asyncio
async def test_other_owner_is_forbidden(client: AsyncClient, owner_headers, other_headers):
    intent = await _create(client, owner_headers)
    r = await client.get(f"/api/files/{intent['file_id']}", headers=other_headers)
    assert r.status_code == 403
    r = await client.delete(f"/api/files/{intent['file_id']}", headers=other_headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_missing_file_indistinguishable_from_foreign(client: AsyncClient, owner_headers):
    r = await client.get(f"/api/files/{uuid4()}", headers=owner_headers)
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_list_only_own_files(client: AsyncClient, owner_headers, other_headers):
    await _create(client, owner_headers, "a.png")
    await _create(client, owner_headers, "b.png")
    await _create(client, other_headers, "c.png")

    r = await client.get("/api/files", headers=owner_headers)
    assert r.status_code == 200
    assert sorted(f["filename"] for f in r.json()) == ["a.png", "b.png"]

    r = await client.get("/api/files", params={"limit": 1}, headers=owner_headers)
    assert len(r.json()) == 1


@pytest.mark.asyncio
async def test_delete_removes_record_and_object(client: AsyncClient, owner_headers, memory_storage):
    intent = await _create(client, owner_headers)
    memory_storage.put(StorageArea.QUARANTINE, intent["storage_key"], b"img")

    r = await client.delete(f"/api/files/{intent['file_id']}", headers=owner_headers)
    assert r.status_code == 204
    assert not memory_storage.exists(StorageArea.QUARANTINE, intent["storage_key"])
    r = await client.get(f"/api/files/{intent['file_id']}", headers=owner_headers)
    assert r.status_code == 403

    # The filename is free again
    await _create(client, owner_headers)


@pytest.mark.asyncio
async def test_delete_keeps_record_when_storage_fails(client: AsyncClient, owner_headers):
    from scanvault.main import app

    intent = await _create(client, owner_headers)
    app.state.storage = StorageGateway(DeleteFailingStorage(), timeout_seconds=5)
    r = await client.delete(f"/api/files/{intent['file_id']}", headers=owner_headers)
    assert r.status_code == 503
    r = await client.get(f"/api/files/{intent['file_id']}", headers=owner_headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_files_require_bearer_token(client: AsyncClient):
    r = await client.get("/api/files")
    assert r.status_code == 401
    r = await client.get("/api/files", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_and_logout_revokes_token(client: AsyncClient, owner_headers):
    r = await client.get("/api/auth/me", headers=owner_headers)
    assert r.status_code == 200
    assert r.json() == {"id": "owner-a"}

    r = await client.post("/api/auth/logout", headers=owner_headers)
    assert r.status_code == 204
    r = await client.get("/api/files", headers=owner_headers)
    assert r.status_code == 401
    assert r.json()["detail"] == "Token revoked"
