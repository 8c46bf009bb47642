"""Local (dev disk) storage: capability URLs point back at this API with HMAC tokens; areas are sibling directories."""
import shutil
from pathlib import Path
from urllib.parse import quote

from scanvault.core.config import get_settings
from scanvault.core.security import create_capability_token
from scanvault.services.storage.base import StorageArea, StorageBackend

settings = get_settings()


class LocalStorage(StorageBackend):
    """Dev disk storage: <dev_assets_dir>/quarantine/<key> and <dev_assets_dir>/permanent/<key>."""

    def __init__(self, root: str | Path | None = None, base_url: str | None = None) -> None:
        self._root = Path(root if root is not None else settings.dev_assets_dir)
        self._base_url = (base_url or settings.public_base_url).rstrip("/")

    def path_for(self, area: StorageArea, storage_key: str) -> Path:
        area_root = (self._root / StorageArea(area).value).resolve()
        path = (area_root / storage_key).resolve()
        if not path.is_relative_to(area_root):
            raise ValueError(f"Storage key escapes storage area: {storage_key}")
        return path

    def _capability_url(self, verb: str, area: StorageArea, storage_key: str, ttl_seconds: int) -> str:
        area = StorageArea(area)
        token, expires_at = create_capability_token(verb, area.value, storage_key, ttl_seconds)
        return f"{self._base_url}/api/storage/{area.value}/{quote(storage_key)}?expires={expires_at}&token={token}"

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

    def write(self, area: StorageArea, storage_key: str, content: bytes) -> None:
        path = self.path_for(area, storage_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def exists(self, area: StorageArea, storage_key: str) -> bool:
        return self.path_for(area, storage_key).is_file()

    def head(self, area: StorageArea, storage_key: str) -> dict:
        path = self.path_for(area, storage_key)
        if not path.is_file():
            raise FileNotFoundError(f"Object not found: {storage_key}")
        # Local files don't store content_type; caller can compare with FileRecord.content_type
        return {"content_length": path.stat().st_size, "content_type": None}

    def move(self, from_area: StorageArea, storage_key: str, to_area: StorageArea) -> None:
        src = self.path_for(from_area, storage_key)
        if not src.is_file():
            raise FileNotFoundError(f"Object not found: {storage_key}")
        dst = self.path_for(to_area, storage_key)
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), str(dst))

    def delete(self, area: StorageArea, storage_key: str) -> None:
        self.path_for(area, storage_key).unlink(missing_ok=True)
