"""Verdict Handler: apply a scanner verdict to the record that owns a storage key.

The scanner (or its mover) has already moved the object to the permanent area
on CLEAN, or deleted it on THREAT_DETECTED; this handler only records the outcome.
"""
import logging
from enum import Enum

from scanvault.core.errors import InvalidInput, NotFound
from scanvault.core.metrics import record_verdict
from scanvault.services.lifecycle import FileStatus, parse_verdict, transition, verdict_event
from scanvault.services.records import RecordStore
from scanvault.services.upload_validation import validate_storage_key

logger = logging.getLogger(__name__)

# GuardDuty Malware Protection for S3 scanResultStatus values
GUARDDUTY_VERDICTS = {
    "NO_THREATS_FOUND": FileStatus.CLEAN,
    "THREATS_FOUND": FileStatus.THREAT_DETECTED,
}


class VerdictOutcome(str, Enum):
    APPLIED = "applied"
    ALREADY_TERMINAL = "already_terminal"


async def apply_verdict(records: RecordStore, storage_key: str | None, verdict: str | None) -> VerdictOutcome:
    """Validate, look up and transition. Re-delivery, conflicting late verdicts and lost races are no-ops."""
    validate_storage_key(storage_key)
    parsed = parse_verdict(verdict)
    if parsed is None:
        raise InvalidInput("verdict must be CLEAN or THREAT_DETECTED")

    record = await records.get_by_storage_key(storage_key)
    if record is None:
        raise NotFound("No file record for storage_key")

    new_status = transition(record.status, verdict_event(parsed))
    if new_status is None:
        logger.info(
            "Verdict %s ignored for key=%s: already %s",
            parsed.value, storage_key, record.status,
        )
        record_verdict(parsed.value, VerdictOutcome.ALREADY_TERMINAL.value)
        return VerdictOutcome.ALREADY_TERMINAL

    applied = await records.compare_and_set_status(record.id, FileStatus.SCANNING, new_status)
    if not applied:
        # The sweep or a concurrent delivery resolved it between our read and write
        logger.info("Verdict %s lost race for key=%s", parsed.value, storage_key)
        record_verdict(parsed.value, VerdictOutcome.ALREADY_TERMINAL.value)
        return VerdictOutcome.ALREADY_TERMINAL

    await records.commit()
    logger.info("File %s marked %s by scanner verdict key=%s", record.id, new_status.value, storage_key)
    record_verdict(parsed.value, VerdictOutcome.APPLIED.value)
    return VerdictOutcome.APPLIED


def guardduty_verdict(event: dict) -> tuple[str | None, str | None]:
    """Extract (object key, verdict) from a GuardDuty S3 malware scan EventBridge event.

    Returns a None verdict for statuses that carry no decision (UNSUPPORTED, ACCESS_DENIED, FAILED).
    """
    detail = event.get("detail") or {}
    object_details = detail.get("s3ObjectDetails") or {}
    scan_details = detail.get("scanResultDetails") or {}
    key = object_details.get("objectKey")
    status = (scan_details.get("scanResultStatus") or "").upper()
    verdict = GUARDDUTY_VERDICTS.get(status)
    return key, verdict.value if verdict else None
