"""Audit trail for owner actions: upload_intent_created, download_url_minted, file_deleted.

Event data goes through redact_for_log first; capability URLs and tokens never reach the table.
"""
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from scanvault.core.logging_redaction import redact_for_log
from scanvault.db.models import AuditEvent

_MAX_USER_AGENT = 512


async def log_audit(
    db: AsyncSession,
    owner_id: str,
    event_type: str,
    event_data: dict | None = None,
    request: Request | None = None,
) -> AuditEvent:
    """Stage an audit row in the caller's transaction; it commits or rolls back with the action."""
    ip = user_agent = None
    if request is not None:
        ip = request.client.host if request.client else None
        user_agent = (request.headers.get("user-agent") or "")[:_MAX_USER_AGENT] or None
    event = AuditEvent(
        owner_id=owner_id,
        event_type=event_type,
        event_data=redact_for_log(event_data) if event_data else None,
        ip=ip,
        user_agent=user_agent,
    )
    db.add(event)
    await db.flush()
    return event
