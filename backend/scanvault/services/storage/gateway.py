"""Async, time-bounded access to a blocking StorageBackend."""
import asyncio
import logging

from scanvault.core.errors import BackendUnavailable
from scanvault.services.storage.base import StorageArea, StorageBackend

logger = logging.getLogger(__name__)


class StorageGateway:
    """Runs each backend call in a worker thread under a timeout.

    Timeouts and transport failures become BackendUnavailable; FileNotFoundError
    from head/move passes through unchanged.
    """

    def __init__(self, backend: StorageBackend, timeout_seconds: float = 10.0) -> None:
        self._backend = backend
        self._timeout = timeout_seconds

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    async def _call(self, op: str, fn, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self._timeout)
        except (FileNotFoundError, BackendUnavailable):
            raise
        except asyncio.TimeoutError as e:
            raise BackendUnavailable(f"Storage {op} timed out after {self._timeout}s") from e
        except OSError as e:
            raise BackendUnavailable(f"Storage {op} failed: {e.__class__.__name__}") from e

    async def mint_write_capability(self, area: StorageArea, storage_key: str, ttl_seconds: int, content_type: str) -> str:
        return await self._call("mint_write_capability", self._backend.mint_write_capability, area, storage_key, ttl_seconds, content_type)

    async def mint_read_capability(self, area: StorageArea, storage_key: str, ttl_seconds: int, filename: str | None = None) -> str:
        return await self._call("mint_read_capability", self._backend.mint_read_capability, area, storage_key, ttl_seconds, filename)

    async def exists(self, area: StorageArea, storage_key: str) -> bool:
        return await self._call("exists", self._backend.exists, area, storage_key)

    async def head(self, area: StorageArea, storage_key: str) -> dict:
        return await self._call("head", self._backend.head, area, storage_key)

    async def move(self, from_area: StorageArea, storage_key: str, to_area: StorageArea) -> None:
        await self._call("move", self._backend.move, from_area, storage_key, to_area)

    async def delete(self, area: StorageArea, storage_key: str) -> None:
        await self._call("delete", self._backend.delete, area, storage_key)
