"""Download Credential Issuer: metadata for an owned file plus a read capability once it is CLEAN."""
import logging
from dataclasses import dataclass
from uuid import UUID

from scanvault.core.config import get_settings
from scanvault.core.metrics import record_download_url_mint
from scanvault.db.models import FileRecord
from scanvault.services.files import require_owned_record
from scanvault.services.lifecycle import FileStatus
from scanvault.services.records import RecordStore
from scanvault.services.storage import StorageArea, StorageGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileStatusView:
    record: FileRecord
    download_url: str | None = None
    expires_in_minutes: int | None = None


async def get_file_status(
    records: RecordStore,
    storage: StorageGateway,
    record_id: UUID,
    requester_id: str,
) -> FileStatusView:
    """SCANNING and THREAT_DETECTED files come back without a download path; that is not an error."""
    record = await require_owned_record(records, record_id, requester_id)
    if record.status != FileStatus.CLEAN.value:
        return FileStatusView(record=record)

    ttl_minutes = get_settings().download_url_ttl_minutes
    url = await storage.mint_read_capability(
        StorageArea.PERMANENT,
        record.storage_key,
        ttl_minutes * 60,
        record.filename,
    )
    record_download_url_mint()
    logger.info("Download URL minted for file %s", record.id)
    return FileStatusView(record=record, download_url=url, expires_in_minutes=ttl_minutes)
