"""Record store: file-record lookups, filtered scans and compare-and-set status updates over an AsyncSession.

Every statement is bounded by DB_TIMEOUT_SECONDS; timeouts and driver errors become BackendUnavailable.
No status is cached between calls: each read goes to the database.
"""
import asyncio
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scanvault.core.config import get_settings
from scanvault.core.errors import BackendUnavailable
from scanvault.db.models import FileRecord, utcnow
from scanvault.services.lifecycle import FileStatus


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; all stored timestamps are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RecordStore:
    def __init__(self, db: AsyncSession, timeout_seconds: float | None = None) -> None:
        self._db = db
        self._timeout = timeout_seconds if timeout_seconds is not None else get_settings().db_timeout_seconds

    @property
    def session(self) -> AsyncSession:
        return self._db

    async def _run(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except IntegrityError:
            raise
        except asyncio.TimeoutError as e:
            raise BackendUnavailable(f"Record store timed out after {self._timeout}s") from e
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"Record store failure: {e.__class__.__name__}") from e

    async def get(self, record_id: uuid.UUID) -> FileRecord | None:
        result = await self._run(self._db.execute(
            select(FileRecord).where(FileRecord.id == record_id).execution_options(populate_existing=True)
        ))
        return result.scalar_one_or_none()

    async def get_owned(self, record_id: uuid.UUID, owner_id: str) -> FileRecord | None:
        result = await self._run(self._db.execute(
            select(FileRecord)
            .where(FileRecord.id == record_id, FileRecord.owner_id == owner_id)
            .execution_options(populate_existing=True)
        ))
        return result.scalar_one_or_none()

    async def get_by_storage_key(self, storage_key: str) -> FileRecord | None:
        result = await self._run(self._db.execute(
            select(FileRecord).where(FileRecord.storage_key == storage_key).execution_options(populate_existing=True)
        ))
        return result.scalar_one_or_none()

    async def owner_has_filename(self, owner_id: str, filename: str) -> bool:
        result = await self._run(self._db.execute(
            select(FileRecord.id).where(FileRecord.owner_id == owner_id, FileRecord.filename == filename).limit(1)
        ))
        return result.scalar_one_or_none() is not None

    async def count_for_owner(self, owner_id: str) -> int:
        result = await self._run(self._db.execute(
            select(func.count()).select_from(FileRecord).where(FileRecord.owner_id == owner_id)
        ))
        return int(result.scalar_one())

    async def list_for_owner(self, owner_id: str, limit: int = 100, offset: int = 0) -> list[FileRecord]:
        result = await self._run(self._db.execute(
            select(FileRecord)
            .where(FileRecord.owner_id == owner_id)
            .order_by(FileRecord.created_at.desc())
            .limit(limit)
            .offset(offset)
        ))
        return list(result.scalars().all())

    async def list_stale_scanning(self, created_before: datetime, limit: int) -> list[FileRecord]:
        """SCANNING records created before the cutoff, oldest first (served by ix_file_records_status_created)."""
        result = await self._run(self._db.execute(
            select(FileRecord)
            .where(
                FileRecord.status == FileStatus.SCANNING.value,
                FileRecord.created_at < created_before,
            )
            .order_by(FileRecord.created_at)
            .limit(limit)
        ))
        return list(result.scalars().all())

    async def create(
        self,
        owner_id: str,
        storage_key: str,
        filename: str,
        content_type: str,
        size_bytes: int,
        created_at: datetime | None = None,
    ) -> FileRecord:
        """Insert a SCANNING record and flush; IntegrityError propagates for unique-index conflicts."""
        record = FileRecord(
            owner_id=owner_id,
            storage_key=storage_key,
            filename=filename,
            content_type=content_type,
            size_bytes=size_bytes,
            status=FileStatus.SCANNING.value,
            created_at=created_at or utcnow(),
        )
        self._db.add(record)
        await self._run(self._db.flush())
        return record

    async def compare_and_set_status(
        self,
        record_id: uuid.UUID,
        expected: FileStatus,
        new: FileStatus,
    ) -> bool:
        """Set status only if it is still `expected`. Returns False when another writer got there first."""
        result = await self._run(self._db.execute(
            update(FileRecord)
            .where(FileRecord.id == record_id, FileRecord.status == expected.value)
            .values(status=new.value, status_changed_at=utcnow())
            .execution_options(synchronize_session=False)
        ))
        return result.rowcount == 1

    async def delete(self, record_id: uuid.UUID) -> None:
        await self._run(self._db.execute(
            delete(FileRecord).where(FileRecord.id == record_id).execution_options(synchronize_session=False)
        ))

    async def commit(self) -> None:
        await self._run(self._db.commit())

    async def rollback(self) -> None:
        await self._db.rollback()
