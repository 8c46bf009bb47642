from .models import (
    Base,
    FileRecord,
    AuditEvent,
)
from .session import get_db, async_session_factory, engine, init_db

__all__ = [
    "Base",
    "FileRecord",
    "AuditEvent",
    "get_db",
    "async_session_factory",
    "engine",
    "init_db",
]
