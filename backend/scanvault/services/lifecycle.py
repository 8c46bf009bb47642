"""File status state machine.

A record starts in SCANNING and moves exactly once, to CLEAN or THREAT_DETECTED.
Two independent writers drive it: the scanner webhook (verdict events) and the
reconciliation sweep (storage-observation events). ``transition`` is the only
place that decides whether an event changes a status; persistence pairs it with
a compare-and-set on ``status = 'SCANNING'`` so a late writer never overwrites
a terminal state.
"""
from __future__ import annotations

from enum import Enum


class FileStatus(str, Enum):
    SCANNING = "SCANNING"
    CLEAN = "CLEAN"
    THREAT_DETECTED = "THREAT_DETECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not FileStatus.SCANNING


class ScanEvent(str, Enum):
    VERDICT_CLEAN = "verdict_clean"
    VERDICT_THREAT = "verdict_threat"
    # Sweep observations
    FOUND_IN_PERMANENT = "found_in_permanent"
    MISSING_AFTER_TIMEOUT = "missing_after_timeout"


_TRANSITIONS: dict[tuple[FileStatus, ScanEvent], FileStatus] = {
    (FileStatus.SCANNING, ScanEvent.VERDICT_CLEAN): FileStatus.CLEAN,
    (FileStatus.SCANNING, ScanEvent.VERDICT_THREAT): FileStatus.THREAT_DETECTED,
    (FileStatus.SCANNING, ScanEvent.FOUND_IN_PERMANENT): FileStatus.CLEAN,
    (FileStatus.SCANNING, ScanEvent.MISSING_AFTER_TIMEOUT): FileStatus.THREAT_DETECTED,
}


def transition(current: FileStatus | str, event: ScanEvent) -> FileStatus | None:
    """Return the new status, or None when the event changes nothing (terminal states never move)."""
    return _TRANSITIONS.get((FileStatus(current), event))


def verdict_event(verdict: FileStatus) -> ScanEvent:
    if verdict is FileStatus.CLEAN:
        return ScanEvent.VERDICT_CLEAN
    if verdict is FileStatus.THREAT_DETECTED:
        return ScanEvent.VERDICT_THREAT
    raise ValueError(f"Not a verdict: {verdict.value}")


def parse_verdict(raw: str | None) -> FileStatus | None:
    """Case-insensitive CLEAN / THREAT_DETECTED; anything else (including SCANNING) is None."""
    if raw is None:
        return None
    normalized = raw.strip().upper()
    if normalized == FileStatus.CLEAN.value:
        return FileStatus.CLEAN
    if normalized == FileStatus.THREAT_DETECTED.value:
        return FileStatus.THREAT_DETECTED
    return None
