"""In-memory storage: same contract as the real backends, objects held in process. For tests and demos."""
import secrets
import threading
import time
from urllib.parse import quote

from scanvault.services.storage.base import StorageArea, StorageBackend


class InMemoryStorage(StorageBackend):
    def __init__(self) -> None:
        self._objects: dict[StorageArea, dict[str, tuple[bytes, str | None]]] = {
            StorageArea.QUARANTINE: {},
            StorageArea.PERMANENT: {},
        }
        self._lock = threading.Lock()
        self.minted: list[tuple[str, StorageArea, str, int]] = []

    def _capability_url(self, verb: str, area: StorageArea, storage_key: str, ttl_seconds: int) -> str:
        area = StorageArea(area)
        with self._lock:
            self.minted.append((verb, area, storage_key, ttl_seconds))
        expires_at = int(time.time()) + ttl_seconds
        return f"memory://{area.value}/{quote(storage_key)}?verb={verb}&expires={expires_at}&token={secrets.token_hex(16)}"

    def mint_write_capability(
        self,
        area: StorageArea,
        storage_key: str,
        ttl_seconds: int,
        content_type: str,
    ) -> str:
        return self._capability_url("put", area, storage_key, ttl_seconds)

    def mint_read_capability(
        self,
        area: StorageArea,
        storage_key: str,
        ttl_seconds: int,
        filename: str | None = None,
    ) -> str:
        return self._capability_url("get", area, storage_key, ttl_seconds)

    def put(self, area: StorageArea, storage_key: str, content: bytes = b"", content_type: str | None = None) -> None:
        with self._lock:
            self._objects[StorageArea(area)][storage_key] = (content, content_type)

    def exists(self, area: StorageArea, storage_key: str) -> bool:
        with self._lock:
            return storage_key in self._objects[StorageArea(area)]

    def head(self, area: StorageArea, storage_key: str) -> dict:
        with self._lock:
            entry = self._objects[StorageArea(area)].get(storage_key)
        if entry is None:
            raise FileNotFoundError(f"Object not found: {storage_key}")
        content, content_type = entry
        return {"content_length": len(content), "content_type": content_type}

    def move(self, from_area: StorageArea, storage_key: str, to_area: StorageArea) -> None:
        with self._lock:
            entry = self._objects[StorageArea(from_area)].pop(storage_key, None)
            if entry is None:
                raise FileNotFoundError(f"Object not found: {storage_key}")
            self._objects[StorageArea(to_area)][storage_key] = entry

    def delete(self, area: StorageArea, storage_key: str) -> None:
        with self._lock:
            self._objects[StorageArea(area)].pop(storage_key, None)
