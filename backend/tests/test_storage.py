"""Storage backends: local behaviour, in-memory double, S3 path with mocks (no real AWS), gateway error mapping."""
import time
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from scanvault.core.config import get_settings
from scanvault.core.errors import BackendUnavailable
from scanvault.core.security import verify_capability_token
from scanvault.services.storage import StorageArea, StorageGateway, get_storage
from scanvault.services.storage.local import LocalStorage
from scanvault.services.storage.memory import InMemoryStorage

KEY = "owner-a/1700000000000_0123456789abcdef.png"


def test_get_storage_selects_backend(test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "storage_backend", "local")
    assert isinstance(get_storage(), LocalStorage)
    monkeypatch.setattr(test_settings, "storage_backend", "memory")
    assert isinstance(get_storage(), InMemoryStorage)


def test_local_write_capability_url(tmp_path):
    backend = LocalStorage(root=tmp_path, base_url="http://test/")
    url = backend.mint_write_capability(StorageArea.QUARANTINE, KEY, 300, "image/png")
    parsed = urlparse(url)
    assert url.startswith(f"http://test/api/storage/quarantine/{KEY}?")
    query = parse_qs(parsed.query)
    token, expires = query["token"][0], int(query["expires"][0])
    assert verify_capability_token(token, "put", "quarantine", KEY, expires)
    # Bound to verb and area
    assert not verify_capability_token(token, "get", "quarantine", KEY, expires)
    assert not verify_capability_token(token, "put", "permanent", KEY, expires)


def test_local_capability_expires(tmp_path):
    backend = LocalStorage(root=tmp_path, base_url="http://test")
    url = backend.mint_read_capability(StorageArea.PERMANENT, KEY, -1)
    query = parse_qs(urlparse(url).query)
    assert not verify_capability_token(query["token"][0], "get", "permanent", KEY, int(query["expires"][0]))


def test_local_write_move_head_delete(tmp_path):
    backend = LocalStorage(root=tmp_path)
    backend.write(StorageArea.QUARANTINE, KEY, b"x" * 42)
    assert backend.exists(StorageArea.QUARANTINE, KEY)
    assert backend.head(StorageArea.QUARANTINE, KEY) == {"content_length": 42, "content_type": None}

    backend.move(StorageArea.QUARANTINE, KEY, StorageArea.PERMANENT)
    assert not backend.exists(StorageArea.QUARANTINE, KEY)
    assert backend.exists(StorageArea.PERMANENT, KEY)

    backend.delete(StorageArea.PERMANENT, KEY)
    backend.delete(StorageArea.PERMANENT, KEY)
    assert not backend.exists(StorageArea.PERMANENT, KEY)


def test_local_missing_object(tmp_path):
    backend = LocalStorage(root=tmp_path)
    with pytest.raises(FileNotFoundError, match="not found"):
        backend.head(StorageArea.QUARANTINE, KEY)
    with pytest.raises(FileNotFoundError):
        backend.move(StorageArea.QUARANTINE, KEY, StorageArea.PERMANENT)


@pytest.mark.parametrize("key", ["../escape.png", "owner-a/../../escape.png", "/etc/passwd"])
def test_local_rejects_keys_escaping_area(tmp_path, key):
    backend = LocalStorage(root=tmp_path)
    with pytest.raises(ValueError):
        backend.path_for(StorageArea.QUARANTINE, key)


def test_memory_storage_contract():
    backend = InMemoryStorage()
    backend.put(StorageArea.QUARANTINE, KEY, b"abc", "image/png")
    assert backend.head(StorageArea.QUARANTINE, KEY) == {"content_length": 3, "content_type": "image/png"}
    backend.move(StorageArea.QUARANTINE, KEY, StorageArea.PERMANENT)
    assert backend.exists(StorageArea.PERMANENT, KEY)
    assert not backend.exists(StorageArea.QUARANTINE, KEY)
    with pytest.raises(FileNotFoundError):
        backend.move(StorageArea.QUARANTINE, KEY, StorageArea.PERMANENT)
    backend.delete(StorageArea.QUARANTINE, KEY)


@pytest.mark.asyncio
async def test_gateway_maps_timeouts_to_backend_unavailable():
    class SlowStorage(InMemoryStorage):
        def exists(self, area, storage_key):
            time.sleep(0.5)
            return True

    gateway = StorageGateway(SlowStorage(), timeout_seconds=0.05)
    with pytest.raises(BackendUnavailable):
        await gateway.exists(StorageArea.PERMANENT, KEY)


@pytest.mark.asyncio
async def test_gateway_passes_missing_object_through():
    gateway = StorageGateway(InMemoryStorage(), timeout_seconds=5)
    with pytest.raises(FileNotFoundError):
        await gateway.head(StorageArea.QUARANTINE, KEY)


def _s3_storage(client):
    with patch("scanvault.services.storage.s3._get_client") as m_get_client:
        m_get_client.return_value = client
        with patch("scanvault.services.storage.s3.settings") as m_settings:
            m_settings.s3_quarantine_bucket = "quarantine-bucket"
            m_settings.s3_permanent_bucket = "permanent-bucket"
            m_settings.aws_region = "us-east-1"
            from scanvault.services.storage.s3 import S3Storage
            return S3Storage()


def test_s3_storage_requires_buckets():
    with patch("scanvault.services.storage.s3.settings") as m_settings:
        m_settings.s3_quarantine_bucket = None
        m_settings.s3_permanent_bucket = "permanent-bucket"
        from scanvault.services.storage.s3 import S3Storage
        with pytest.raises(ValueError, match="s3_quarantine_bucket"):
            S3Storage()


def test_s3_presigned_put_get_mocked():
    """S3 path: presigned put/get via boto3 stub (no real AWS)."""
    client = MagicMock()

    def _presigned(op, **kw):
        params = kw.get("Params", {})
        return f"https://mock-s3/{params.get('Bucket')}/{params.get('Key', '')}?op={op}&X-Amz-Signature=abc"

    client.generate_presigned_url.side_effect = _presigned
    storage = _s3_storage(client)

    put_url = storage.mint_write_capability(StorageArea.QUARANTINE, KEY, 900, "image/png")
    assert put_url.startswith("https://mock-s3/quarantine-bucket/")
    _, kwargs = client.generate_presigned_url.call_args
    assert kwargs["Params"]["ContentType"] == "image/png"
    assert kwargs["ExpiresIn"] == 900

    get_url = storage.mint_read_capability(StorageArea.PERMANENT, KEY, 60, filename="my cat.png")
    assert get_url.startswith("https://mock-s3/permanent-bucket/")
    _, kwargs = client.generate_presigned_url.call_args
    assert kwargs["Params"]["ResponseContentDisposition"] == "attachment; filename*=UTF-8''my%20cat.png"


class Fake404(Exception):
    response = {"Error": {"Code": "404"}}


class FakeThrottle(Exception):
    response = {"Error": {"Code": "SlowDown"}}


def test_s3_exists_and_head_mocked():
    client = MagicMock()
    client.head_object.side_effect = Fake404()
    storage = _s3_storage(client)
    assert storage.exists(StorageArea.PERMANENT, KEY) is False
    with pytest.raises(FileNotFoundError, match="not found"):
        storage.head(StorageArea.PERMANENT, KEY)

    client.head_object.side_effect = None
    client.head_object.return_value = {"ContentLength": 7, "ContentType": "image/png"}
    assert storage.exists(StorageArea.PERMANENT, KEY) is True
    assert storage.head(StorageArea.PERMANENT, KEY) == {"content_length": 7, "content_type": "image/png"}


def test_s3_transport_errors_are_backend_unavailable():
    client = MagicMock()
    client.head_object.side_effect = FakeThrottle()
    client.delete_object.side_effect = FakeThrottle()
    storage = _s3_storage(client)
    with pytest.raises(BackendUnavailable):
        storage.exists(StorageArea.QUARANTINE, KEY)
    with pytest.raises(BackendUnavailable):
        storage.delete(StorageArea.QUARANTINE, KEY)


def test_s3_move_copies_then_deletes():
    client = MagicMock()
    storage = _s3_storage(client)
    storage.move(StorageArea.QUARANTINE, KEY, StorageArea.PERMANENT)
    client.copy_object.assert_called_once_with(
        CopySource={"Bucket": "quarantine-bucket", "Key": KEY},
        Bucket="permanent-bucket",
        Key=KEY,
    )
    client.delete_object.assert_called_once_with(Bucket="quarantine-bucket", Key=KEY)


def test_settings_defaults():
    settings = get_settings()
    assert settings.sweep_grace_period_minutes == 5
    assert settings.sweep_scan_timeout_minutes == 15
    assert settings.scan_webhook_header == "X-Scan-Secret"
