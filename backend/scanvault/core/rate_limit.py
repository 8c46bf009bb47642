"""Simple in-memory rate limit for upload intents. Dev-friendly; use WAF/API Gateway in prod for scale."""
import time
from collections import defaultdict

from scanvault.core.config import get_settings

settings = get_settings()
_buckets: dict[str, list[float]] = defaultdict(list)
_window = 60.0


def _check_limit(identifier: str, limit_per_minute: int) -> bool:
    now = time.monotonic()
    bucket = _buckets[identifier]
    bucket[:] = [t for t in bucket if now - t < _window]
    if len(bucket) >= limit_per_minute:
        return True
    bucket.append(now)
    return False


def is_intent_rate_limited(identifier: str) -> bool:
    """Per-owner limit on upload-intent creation (each intent mints a write capability)."""
    return _check_limit(identifier, settings.intent_rate_limit_per_minute)


def reset_rate_limits() -> None:
    _buckets.clear()
