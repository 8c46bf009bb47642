"""Reconciliation Sweeper: repair SCANNING records whose verdict was lost, delayed or never sent.

For each SCANNING record older than the upload grace period, object-store membership
decides the outcome:

* present in the permanent area  -> CLEAN (the scanner moved it; the webhook never arrived)
* present in quarantine          -> scan pending; flagged as stuck after the scan deadline, never failed
* absent from both               -> not uploaded yet, or deleted as a threat; THREAT_DETECTED
                                    only once the scan deadline has passed

The scan deadline is created_at + grace period + scan timeout. Elapsed time is the only
signal that tells "not uploaded yet", "scan in progress" and "verdict lost" apart.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scanvault.core.config import get_settings
from scanvault.core.errors import BackendUnavailable
from scanvault.core.metrics import record_sweep_outcome, record_sweep_run
from scanvault.db.models import utcnow
from scanvault.services.lifecycle import FileStatus, ScanEvent, transition
from scanvault.services.records import RecordStore, as_utc
from scanvault.services.storage import StorageArea, StorageGateway

logger = logging.getLogger("scanvault.sweeper")

_OUTCOMES = ("marked_clean", "marked_threat", "pending", "stuck", "not_uploaded", "raced", "failed")


@dataclass
class SweepReport:
    started_at: datetime
    checked: int = 0
    marked_clean: int = 0
    marked_threat: int = 0
    pending: int = 0
    stuck: int = 0
    not_uploaded: int = 0
    raced: int = 0
    failed: int = 0
    stuck_keys: list[str] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)

    def count(self, outcome: str, storage_key: str) -> None:
        setattr(self, outcome, getattr(self, outcome) + 1)
        if outcome == "stuck":
            self.stuck_keys.append(storage_key)
        elif outcome == "failed":
            self.failed_keys.append(storage_key)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        return data


@dataclass(frozen=True)
class _Candidate:
    id: uuid.UUID
    storage_key: str
    created_at: datetime


class ReconciliationSweeper:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        storage: StorageGateway,
        grace_period: timedelta = timedelta(minutes=5),
        scan_timeout: timedelta = timedelta(minutes=15),
        batch_size: int = 500,
        db_timeout_seconds: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._storage = storage
        self.grace_period = grace_period
        self.scan_timeout = scan_timeout
        self._batch_size = batch_size
        self._db_timeout = db_timeout_seconds

    @classmethod
    def from_settings(cls, session_factory: async_sessionmaker[AsyncSession], storage: StorageGateway) -> "ReconciliationSweeper":
        settings = get_settings()
        return cls(
            session_factory,
            storage,
            grace_period=timedelta(minutes=settings.sweep_grace_period_minutes),
            scan_timeout=timedelta(minutes=settings.sweep_scan_timeout_minutes),
            batch_size=settings.sweep_batch_size,
            db_timeout_seconds=settings.db_timeout_seconds,
        )

    @property
    def scan_deadline(self) -> timedelta:
        """Age after which an unresolved record is considered past its scan window."""
        return self.grace_period + self.scan_timeout

    async def run_once(self, now: datetime | None = None) -> SweepReport:
        """One pass over eligible records. Per-record backend failures are logged and counted, never raised."""
        now = as_utc(now) if now is not None else utcnow()
        report = SweepReport(started_at=now)
        async with self._session_factory() as session:
            records = RecordStore(session, self._db_timeout)
            rows = await records.list_stale_scanning(now - self.grace_period, self._batch_size)
            # Plain snapshots: a rollback after a failed record must not expire what we iterate over
            candidates = [_Candidate(r.id, r.storage_key, as_utc(r.created_at)) for r in rows]
            if not candidates:
                logger.debug("No SCANNING records older than %s", self.grace_period)
                return report
            logger.info("Sweep found %d SCANNING record(s) older than %s", len(candidates), self.grace_period)
            for candidate in candidates:
                report.checked += 1
                try:
                    outcome = await self._reconcile(records, candidate, now)
                except BackendUnavailable as e:
                    await records.rollback()
                    outcome = "failed"
                    logger.error("Sweep failed for key=%s: %s", candidate.storage_key, e)
                report.count(outcome, candidate.storage_key)
        for outcome in _OUTCOMES:
            record_sweep_outcome(outcome, getattr(report, outcome))
        logger.info(
            "Sweep completed: checked=%d clean=%d threat=%d pending=%d stuck=%d not_uploaded=%d raced=%d failed=%d",
            report.checked, report.marked_clean, report.marked_threat, report.pending,
            report.stuck, report.not_uploaded, report.raced, report.failed,
        )
        return report

    async def _reconcile(self, records: RecordStore, candidate: _Candidate, now: datetime) -> str:
        key = candidate.storage_key
        age = now - candidate.created_at
        past_deadline = age > self.scan_deadline

        if await self._storage.exists(StorageArea.PERMANENT, key):
            return await self._resolve(records, candidate, ScanEvent.FOUND_IN_PERMANENT, "marked_clean")

        if await self._storage.exists(StorageArea.QUARANTINE, key):
            if past_deadline:
                logger.warning("File stuck in SCANNING for %s: key=%s", age, key)
                return "stuck"
            logger.debug("Scan pending: key=%s (age %s)", key, age)
            return "pending"

        if past_deadline:
            return await self._resolve(records, candidate, ScanEvent.MISSING_AFTER_TIMEOUT, "marked_threat")
        logger.debug("Not uploaded yet: key=%s (age %s)", key, age)
        return "not_uploaded"

    async def _resolve(self, records: RecordStore, candidate: _Candidate, event: ScanEvent, outcome: str) -> str:
        new_status = transition(FileStatus.SCANNING, event)
        applied = await records.compare_and_set_status(candidate.id, FileStatus.SCANNING, new_status)
        await records.commit()
        if not applied:
            logger.info("Record already resolved before sweep write: key=%s", candidate.storage_key)
            return "raced"
        if new_status is FileStatus.THREAT_DETECTED:
            logger.warning("File %s marked THREAT_DETECTED (absent from both areas): key=%s", candidate.id, candidate.storage_key)
        else:
            logger.info("File %s marked %s by sweep: key=%s", candidate.id, new_status.value, candidate.storage_key)
        return outcome


class SweepScheduler:
    """Runs the sweep on a fixed interval with single-flight semantics.

    ``trigger`` can also be called directly (admin endpoint, scripts, tests); a
    trigger that arrives while a run is in progress is skipped and returns None.
    """

    def __init__(self, sweeper: ReconciliationSweeper, interval_seconds: float = 30.0) -> None:
        self._sweeper = sweeper
        self._interval = interval_seconds
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def sweeper(self) -> ReconciliationSweeper:
        return self._sweeper

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def trigger(self, now: datetime | None = None) -> SweepReport | None:
        if self._lock.locked():
            logger.info("Sweep still running; skipping this tick")
            record_sweep_run("skipped")
            return None
        async with self._lock:
            start = time.perf_counter()
            try:
                report = await self._sweeper.run_once(now)
            except Exception:
                record_sweep_run("failed", time.perf_counter() - start)
                raise
            record_sweep_run("completed", time.perf_counter() - start)
            return report

    async def _loop(self) -> None:
        logger.info("Starting reconciliation sweep every %ss", self._interval)
        while True:
            start = time.monotonic()
            try:
                await self.trigger()
            except Exception:
                logger.exception("Reconciliation sweep failed")
            elapsed = time.monotonic() - start
            await asyncio.sleep(max(0.0, self._interval - elapsed))

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(), name="reconciliation-sweep")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reconciliation sweep stopped")
