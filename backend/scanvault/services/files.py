"""Owner-facing file operations: ownership-checked lookup, listing, deletion with its backing object."""
import logging
from uuid import UUID

from scanvault.core.errors import Forbidden, NotFound
from scanvault.db.models import FileRecord
from scanvault.services.lifecycle import FileStatus
from scanvault.services.records import RecordStore
from scanvault.services.storage import StorageArea, StorageGateway

logger = logging.getLogger(__name__)

# Areas that may hold the object for each status
_AREAS_BY_STATUS = {
    FileStatus.SCANNING: (StorageArea.QUARANTINE, StorageArea.PERMANENT),
    FileStatus.CLEAN: (StorageArea.PERMANENT,),
    FileStatus.THREAT_DETECTED: (StorageArea.QUARANTINE,),
}


async def require_owned_record(records: RecordStore, record_id: UUID, requester_id: str) -> FileRecord:
    """Ownership first: a record that is missing and a record owned by someone else both raise Forbidden.

    NotFound is only possible if the record disappears between the two lookups.
    """
    if await records.get_owned(record_id, requester_id) is None:
        logger.warning("Access denied: requester=%s file=%s", requester_id, record_id)
        raise Forbidden("You don't have permission to access this file")
    record = await records.get(record_id)
    if record is None:
        raise NotFound("File not found")
    return record


async def list_files(records: RecordStore, owner_id: str, limit: int = 100, offset: int = 0) -> list[FileRecord]:
    return await records.list_for_owner(owner_id, limit=limit, offset=offset)


async def delete_file(records: RecordStore, storage: StorageGateway, record_id: UUID, requester_id: str) -> FileRecord:
    """Remove the backing object from every area that can hold it, then the record.

    A storage failure raises BackendUnavailable and leaves the record in place so the
    deletion can be retried.
    """
    record = await require_owned_record(records, record_id, requester_id)
    for area in _AREAS_BY_STATUS[FileStatus(record.status)]:
        await storage.delete(area, record.storage_key)
    await records.delete(record.id)
    logger.info("Deleted file %s key=%s status=%s", record.id, record.storage_key, record.status)
    return record
