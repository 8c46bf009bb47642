"""Storage backend factory: local (dev disk), S3 or in-memory. S3 backend is loaded only when STORAGE_BACKEND=s3 (no boto3 in local)."""
from scanvault.core.config import get_settings
from scanvault.services.storage.base import StorageArea, StorageBackend
from scanvault.services.storage.gateway import StorageGateway
from scanvault.services.storage.local import LocalStorage

__all__ = ["StorageArea", "StorageBackend", "StorageGateway", "get_storage", "get_storage_gateway"]


def get_storage() -> StorageBackend:
    """Return the configured storage backend. Avoids importing boto3 when backend is local."""
    settings = get_settings()
    if settings.storage_backend == "s3":
        from scanvault.services.storage.s3 import S3Storage
        return S3Storage()
    if settings.storage_backend == "memory":
        from scanvault.services.storage.memory import InMemoryStorage
        return InMemoryStorage()
    return LocalStorage()


def get_storage_gateway() -> StorageGateway:
    return StorageGateway(get_storage(), timeout_seconds=get_settings().storage_timeout_seconds)
