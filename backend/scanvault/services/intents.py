"""Upload Intent Issuer: validate, create a SCANNING record, mint a write-only capability into quarantine."""
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from scanvault.core.config import get_settings
from scanvault.core.errors import BackendUnavailable, DuplicateName, QuotaExceeded
from scanvault.core.metrics import record_upload_intent
from scanvault.services.records import RecordStore
from scanvault.services.storage import StorageArea, StorageGateway
from scanvault.services.upload_validation import build_storage_key, validate_upload_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadIntent:
    file_id: UUID
    upload_url: str
    storage_key: str
    expires_in_minutes: int


def resolve_upload_ttl_minutes(requested: int | None) -> int:
    """Requested TTL clamped to the configured maximum; default when not requested."""
    settings = get_settings()
    ttl = requested if requested is not None else settings.upload_url_ttl_minutes
    return max(1, min(ttl, settings.upload_url_max_ttl_minutes))


async def create_upload_intent(
    records: RecordStore,
    storage: StorageGateway,
    owner_id: str,
    filename: str,
    content_type: str,
    size_bytes: int,
    expires_in_minutes: int | None = None,
) -> UploadIntent:
    """Create the record and the capability as a unit: if minting fails the record is rolled back."""
    settings = get_settings()
    extension = validate_upload_request(filename, content_type, size_bytes)
    content_type = content_type.strip().lower()

    # Pre-checks before minting so no unusable capability leaks
    if await records.owner_has_filename(owner_id, filename):
        record_upload_intent("rejected")
        logger.info("Duplicate filename rejected owner=%s filename=%s", owner_id, filename)
        raise DuplicateName(f"File already exists: {filename}")
    if await records.count_for_owner(owner_id) >= settings.max_files_per_owner:
        record_upload_intent("rejected")
        raise QuotaExceeded(f"File quota of {settings.max_files_per_owner} reached")

    storage_key = build_storage_key(owner_id, extension)
    try:
        record = await records.create(
            owner_id=owner_id,
            storage_key=storage_key,
            filename=filename,
            content_type=content_type,
            size_bytes=size_bytes,
        )
    except IntegrityError as e:
        # Concurrent request for the same (owner, filename) won the unique index
        await records.rollback()
        record_upload_intent("rejected")
        raise DuplicateName(f"File already exists: {filename}") from e

    ttl_minutes = resolve_upload_ttl_minutes(expires_in_minutes)
    try:
        upload_url = await storage.mint_write_capability(
            StorageArea.QUARANTINE,
            storage_key,
            ttl_minutes * 60,
            content_type,
        )
    except BackendUnavailable:
        await records.rollback()
        record_upload_intent("backend_error")
        logger.error("Failed to mint upload capability owner=%s key=%s; record discarded", owner_id, storage_key)
        raise

    record_upload_intent("created")
    logger.info("Upload intent created id=%s key=%s ttl=%smin", record.id, storage_key, ttl_minutes)
    return UploadIntent(
        file_id=record.id,
        upload_url=upload_url,
        storage_key=storage_key,
        expires_in_minutes=ttl_minutes,
    )
