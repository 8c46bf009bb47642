"""Upload validation: content-type allowlist, extension matching, size limit, storage-key derivation and checks."""
import hashlib
import re
import secrets
import time

from scanvault.core.config import get_settings
from scanvault.core.errors import InvalidInput

# Extensions accepted for each media type; the configured allowlist selects which types are enabled
EXTENSIONS_BY_CONTENT_TYPE: dict[str, frozenset[str]] = {
    "image/jpeg": frozenset({".jpg", ".jpeg"}),
    "image/png": frozenset({".png"}),
    "image/gif": frozenset({".gif"}),
    "image/webp": frozenset({".webp"}),
    "image/bmp": frozenset({".bmp"}),
}

_SEGMENT = r"[A-Za-z0-9._-]"
# <owner-scope>/<object-segment>, restricted alphabet, no traversal segments
STORAGE_KEY_PATTERN = re.compile(rf"^(?P<scope>{_SEGMENT}{{1,64}})/(?P<name>{_SEGMENT}{{1,255}})$")
_OWNER_SCOPE_PATTERN = re.compile(rf"^{_SEGMENT}{{1,64}}$")
_MB = 1024 * 1024


def allowed_content_types() -> set[str]:
    settings = get_settings()
    configured = {s.strip().lower() for s in settings.content_type_allowlist.split(",") if s.strip()}
    return configured & set(EXTENSIONS_BY_CONTENT_TYPE)


def extract_extension(filename: str) -> str:
    base = filename.strip().split("/")[-1].split("\\")[-1]
    if "." not in base or base.endswith("."):
        raise InvalidInput("Invalid filename: no extension found")
    return base[base.rindex("."):].lower()


def validate_upload_request(filename: str, content_type: str, size_bytes: int) -> str:
    """Raise InvalidInput if the request is not acceptable; return the normalized extension."""
    if not filename or not filename.strip() or len(filename) > 255:
        raise InvalidInput("filename must be 1..255 characters")
    if any(ord(c) < 32 for c in filename):
        raise InvalidInput("filename contains control characters")
    normalized_type = (content_type or "").strip().lower()
    if normalized_type not in allowed_content_types():
        raise InvalidInput(f"Content type not allowed: {content_type}")
    extension = extract_extension(filename)
    if extension not in EXTENSIONS_BY_CONTENT_TYPE[normalized_type]:
        raise InvalidInput(f"Extension {extension} does not match content type {normalized_type}")
    limit = get_settings().max_upload_size_mb * _MB
    if size_bytes <= 0 or size_bytes > limit:
        raise InvalidInput(f"size_bytes must be 1..{limit}")
    return extension


def owner_scope(owner_id: str) -> str:
    """Key prefix for an owner: the id itself when it fits the key alphabet, else a stable digest."""
    if _OWNER_SCOPE_PATTERN.match(owner_id) and owner_id not in (".", ".."):
        return owner_id
    return hashlib.sha256(owner_id.encode()).hexdigest()[:32]


def build_storage_key(owner_id: str, extension: str) -> str:
    """<owner-scope>/<epoch-millis>_<16 hex chars><ext>: unguessable and unique across owners and retries."""
    millis = time.time_ns() // 1_000_000
    return f"{owner_scope(owner_id)}/{millis}_{secrets.token_hex(8)}{extension}"


def validate_storage_key(storage_key: str | None) -> str:
    """Raise InvalidInput unless storage_key matches the key space; reject '.' and '..' segments."""
    if not storage_key:
        raise InvalidInput("storage_key is required")
    match = STORAGE_KEY_PATTERN.match(storage_key)
    if not match:
        raise InvalidInput("Malformed storage_key")
    if match.group("scope") in (".", "..") or match.group("name") in (".", ".."):
        raise InvalidInput("Malformed storage_key")
    return storage_key
