"""S3 storage backend: quarantine and permanent buckets, presigned PUT/GET, HeadObject, copy+delete moves.
Imported only when STORAGE_BACKEND=s3 (avoids boto3 in local mode)."""
from __future__ import annotations

from urllib.parse import quote

from scanvault.core.config import get_settings
from scanvault.core.errors import BackendUnavailable
from scanvault.services.storage.base import StorageArea, StorageBackend

settings = get_settings()

_MISSING_CODES = ("404", "NoSuchKey", "NotFound")


def _get_client():
    import boto3
    from botocore.config import Config

    timeout = settings.storage_timeout_seconds
    config = Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"max_attempts": 2, "mode": "standard"},
    )
    return boto3.client("s3", region_name=settings.aws_region, config=config)


def _error_code(exc: Exception) -> str | None:
    resp = getattr(exc, "response", None)
    return resp.get("Error", {}).get("Code") if isinstance(resp, dict) else None


class S3Storage(StorageBackend):
    """S3 backend: one bucket per area; presigned URLs via boto3, never exposing root credentials."""

    def __init__(self) -> None:
        if not settings.s3_quarantine_bucket or not settings.s3_permanent_bucket:
            raise ValueError("S3 storage requires s3_quarantine_bucket and s3_permanent_bucket to be set")
        self._buckets = {
            StorageArea.QUARANTINE: settings.s3_quarantine_bucket,
            StorageArea.PERMANENT: settings.s3_permanent_bucket,
        }
        self._client = _get_client()

    def bucket_for(self, area: StorageArea) -> str:
        return self._buckets[StorageArea(area)]

    def mint_write_capability(
        self,
        area: StorageArea,
        storage_key: str,
        ttl_seconds: int,
        content_type: str,
    ) -> str:
        try:
            return self._client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket_for(area),
                    "Key": storage_key,
                    "ContentType": content_type,
                },
                ExpiresIn=ttl_seconds,
            )
        except Exception as e:
            raise BackendUnavailable("Failed to generate upload URL") from e

    def mint_read_capability(
        self,
        area: StorageArea,
        storage_key: str,
        ttl_seconds: int,
        filename: str | None = None,
    ) -> str:
        params = {"Bucket": self.bucket_for(area), "Key": storage_key}
        if filename:
            # RFC 5987 style for filename with special chars
            params["ResponseContentDisposition"] = f"attachment; filename*=UTF-8''{quote(filename)}"
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params=params,
                ExpiresIn=ttl_seconds,
            )
        except Exception as e:
            raise BackendUnavailable("Failed to generate download URL") from e

    def exists(self, area: StorageArea, storage_key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket_for(area), Key=storage_key)
        except Exception as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise BackendUnavailable(f"Error checking existence of {storage_key} in {StorageArea(area).value}") from e
        return True

    def head(self, area: StorageArea, storage_key: str) -> dict:
        try:
            resp = self._client.head_object(Bucket=self.bucket_for(area), Key=storage_key)
        except Exception as e:
            if _error_code(e) in _MISSING_CODES:
                raise FileNotFoundError(f"Object not found: {storage_key}") from e
            raise BackendUnavailable(f"Failed to read metadata of {storage_key}") from e
        return {
            "content_length": resp.get("ContentLength") or 0,
            "content_type": resp.get("ContentType"),
        }

    def move(self, from_area: StorageArea, storage_key: str, to_area: StorageArea) -> None:
        source_bucket = self.bucket_for(from_area)
        try:
            self._client.copy_object(
                CopySource={"Bucket": source_bucket, "Key": storage_key},
                Bucket=self.bucket_for(to_area),
                Key=storage_key,
            )
            self._client.delete_object(Bucket=source_bucket, Key=storage_key)
        except Exception as e:
            if _error_code(e) in _MISSING_CODES:
                raise FileNotFoundError(f"Object not found: {storage_key}") from e
            raise BackendUnavailable(f"Failed to move {storage_key}") from e

    def delete(self, area: StorageArea, storage_key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket_for(area), Key=storage_key)
        except Exception as e:
            raise BackendUnavailable(f"Failed to delete {storage_key}") from e
