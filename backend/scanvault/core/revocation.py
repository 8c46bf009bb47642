"""Revoked bearer tokens: a bounded key set where each entry expires with the token it revokes."""
import threading
import time


class RevocationSet:
    """Thread-safe set of token ids with a per-entry time-to-live.

    Entries are purged lazily on access. When the set is full the entry closest
    to expiry is dropped first, which is the one whose token stops working soonest.
    """

    def __init__(self, max_entries: int = 10000, clock=time.monotonic) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()

    def add(self, key: str, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            now = self._clock()
            self._purge(now)
            self._entries[key] = now + ttl_seconds
            while len(self._entries) > self._max_entries:
                soonest = min(self._entries, key=self._entries.__getitem__)
                del self._entries[soonest]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            expires_at = self._entries.get(key)  # type: ignore[arg-type]
            if expires_at is None:
                return False
            if expires_at <= self._clock():
                del self._entries[key]  # type: ignore[arg-type]
                return False
            return True

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._entries)

    def _purge(self, now: float) -> None:
        expired = [k for k, exp in self._entries.items() if exp <= now]
        for k in expired:
            del self._entries[k]
