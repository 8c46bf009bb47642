"""Bearer JWT verification, shared-secret checks, HMAC capability tokens for the local storage backend."""
import hashlib
import hmac
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta

from jose import JWTError, jwt
from scanvault.core.config import get_settings

settings = get_settings()


@dataclass(frozen=True)
class Principal:
    """Authenticated caller: subject is the owner id used on file records."""

    id: str
    token_id: str | None = None
    expires_at: float | None = None


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    """Mint a bearer token. Production tokens come from the identity service; used by tests and dev tooling."""
    now = datetime.now(timezone.utc)
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": subject,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def verify_shared_secret(expected: str | None, presented: str | None) -> bool:
    """Constant-time comparison; an unset expected secret never matches."""
    if not expected or not presented:
        return False
    return hmac.compare_digest(expected.encode(), presented.encode())


def _capability_signature(verb: str, area: str, storage_key: str, expires_at: int) -> str:
    message = f"{verb}:{area}:{storage_key}:{expires_at}"
    return hmac.new(
        settings.secret_key.encode(),
        message.encode(),
        hashlib.sha256,
    ).hexdigest()


def create_capability_token(verb: str, area: str, storage_key: str, ttl_seconds: int) -> tuple[str, int]:
    """HMAC-signed token for one verb on one object in one area (local backend). Returns (token, expires_at)."""
    expires_at = int(time.time()) + ttl_seconds
    return _capability_signature(verb, area, storage_key, expires_at), expires_at


def verify_capability_token(token: str, verb: str, area: str, storage_key: str, expires_at: int) -> bool:
    """Verify signature binding (verb, area, key, expiry) and that expiry has not passed."""
    try:
        expected = _capability_signature(verb, area, storage_key, int(expires_at))
    except (ValueError, TypeError):
        return False
    if not hmac.compare_digest(token, expected):
        return False
    return time.time() <= int(expires_at)
