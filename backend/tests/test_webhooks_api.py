"""Scanner webhooks: shared-secret auth, verdict application, GuardDuty events."""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from scanvault.db.models import FileRecord


async def _intent(client: AsyncClient, headers) -> dict:
    r = await client.post(
        "/api/files/upload-intent",
        json={"filename": "cat.png", "content_type": "image/png", "size_bytes": 10},
        headers=headers,
    )
    assert r.status_code == 200
    return r.json()


async def _status(session_factory, storage_key: str) -> str:
    async with session_factory() as session:
        result = await session.execute(select(FileRecord.status).where(FileRecord.storage_key == storage_key))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_scan_result_requires_secret(client: AsyncClient, owner_headers, session_factory):
    intent = await _intent(client, owner_headers)
    payload = {"storage_key": intent["storage_key"], "verdict": "CLEAN"}

    r = await client.post("/api/webhooks/scan-result", json=payload)
    assert r.status_code == 401
    assert r.json()["code"] == "unauthenticated"
    r = await client.post("/api/webhooks/scan-result", json=payload, headers={"X-Scan-Secret": "wrong"})
    assert r.status_code == 401
    assert await _status(session_factory, intent["storage_key"]) == "SCANNING"


@pytest.mark.asyncio
async def test_unset_secret_rejects_everything(client: AsyncClient, test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "scan_webhook_secret", None)
    r = await client.post(
        "/api/webhooks/scan-result",
        json={"storage_key": "owner-a/1_0123456789abcdef.png", "verdict": "CLEAN"},
        headers={"X-Scan-Secret": ""},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_scan_result_applies_verdict(client: AsyncClient, owner_headers, scan_headers, session_factory):
    intent = await _intent(client, owner_headers)
    r = await client.post(
        "/api/webhooks/scan-result",
        json={"storageKey": intent["storage_key"], "verdict": "clean"},
        headers=scan_headers,
    )
    assert r.status_code == 204
    assert await _status(session_factory, intent["storage_key"]) == "CLEAN"

    # Re-delivery and a late conflicting verdict are acknowledged without effect
    for verdict in ("CLEAN", "THREAT_DETECTED"):
        r = await client.post(
            "/api/webhooks/scan-result",
            json={"storage_key": intent["storage_key"], "verdict": verdict},
            headers=scan_headers,
        )
        assert r.status_code == 204
    assert await _status(session_factory, intent["storage_key"]) == "CLEAN"


@pytest.mark.asyncio
async def test_scan_result_unknown_key(client: AsyncClient, scan_headers):
    r = await client.post(
        "/api/webhooks/scan-result",
        json={"storage_key": "owner-a/1700000000000_0123456789abcdef.png", "verdict": "CLEAN"},
        headers=scan_headers,
    )
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"storage_key": "../../etc/passwd", "verdict": "CLEAN"},
        {"storage_key": "owner-a/1_0123456789abcdef.png", "verdict": "SCANNING"},
        {"storage_key": "owner-a/1_0123456789abcdef.png"},
        {"verdict": "CLEAN"},
    ],
)
async def test_scan_result_invalid_input(client: AsyncClient, scan_headers, payload):
    r = await client.post("/api/webhooks/scan-result", json=payload, headers=scan_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_input"


@pytest.mark.asyncio
async def test_guardduty_event(client: AsyncClient, owner_headers, scan_headers, session_factory):
    intent = await _intent(client, owner_headers)
    event = {
        "detail-type": "GuardDuty Malware Protection Object Scan Result",
        "detail": {
            "s3ObjectDetails": {"objectKey": intent["storage_key"]},
            "scanResultDetails": {"scanResultStatus": "THREATS_FOUND"},
        },
    }
    r = await client.post("/api/webhooks/guardduty", json=event, headers=scan_headers)
    assert r.status_code == 204
    assert await _status(session_factory, intent["storage_key"]) == "THREAT_DETECTED"


@pytest.mark.asyncio
async def test_guardduty_indecisive_event_left_to_sweep(client: AsyncClient, owner_headers, scan_headers, session_factory):
    intent = await _intent(client, owner_headers)
    event = {
        "detail": {
            "s3ObjectDetails": {"objectKey": intent["storage_key"]},
            "scanResultDetails": {"scanResultStatus": "UNSUPPORTED"},
        },
    }
    r = await client.post("/api/webhooks/guardduty", json=event, headers=scan_headers)
    assert r.status_code == 204
    assert await _status(session_factory, intent["storage_key"]) == "SCANNING"
