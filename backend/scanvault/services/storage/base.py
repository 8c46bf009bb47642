"""Storage backend interface: two areas (quarantine, permanent), scoped capabilities, existence checks, move/delete.

Implementations: local (dev disk), S3 (two buckets) and in-memory (tests)."""
from abc import ABC, abstractmethod
from enum import Enum


class StorageArea(str, Enum):
    QUARANTINE = "quarantine"  # unverified uploads; write-only for clients
    PERMANENT = "permanent"  # verified clean; read-only for clients


class StorageBackend(ABC):
    """Abstract object store. Methods are blocking; wrap with StorageGateway for bounded async calls."""

    @abstractmethod
    def mint_write_capability(
        self,
        area: StorageArea,
        storage_key: str,
        ttl_seconds: int,
        content_type: str,
    ) -> str:
        """Return a URL that allows a single PUT of storage_key into area until it expires."""
        ...

    @abstractmethod
    def mint_read_capability(
        self,
        area: StorageArea,
        storage_key: str,
        ttl_seconds: int,
        filename: str | None = None,
    ) -> str:
        """Return a URL that allows GET of storage_key from area until it expires."""
        ...

    @abstractmethod
    def exists(self, area: StorageArea, storage_key: str) -> bool:
        ...

    @abstractmethod
    def head(self, area: StorageArea, storage_key: str) -> dict:
        """Return metadata: content_length (int), content_type (str | None). Raise FileNotFoundError if missing."""
        ...

    @abstractmethod
    def move(self, from_area: StorageArea, storage_key: str, to_area: StorageArea) -> None:
        """Copy to to_area then delete from from_area. Raise FileNotFoundError if the source is missing."""
        ...

    @abstractmethod
    def delete(self, area: StorageArea, storage_key: str) -> None:
        """Delete the object; deleting a missing object is not an error."""
        ...
