"""FastAPI dependencies: DB/record store, storage, current principal, shared-secret guards."""
import time

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from scanvault.core.config import get_settings
from scanvault.core.errors import Unauthenticated
from scanvault.core.revocation import RevocationSet
from scanvault.core.security import Principal, decode_access_token, verify_shared_secret
from scanvault.db import get_db
from scanvault.services.records import RecordStore
from scanvault.services.storage import StorageGateway
from scanvault.services.sweeper import SweepScheduler

settings = get_settings()

_bearer = HTTPBearer(auto_error=False)


def get_records(db: AsyncSession = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_storage_gateway(request: Request) -> StorageGateway:
    return request.app.state.storage


def get_revocations(request: Request) -> RevocationSet:
    return request.app.state.revocations


def get_sweep_scheduler(request: Request) -> SweepScheduler:
    return request.app.state.sweep_scheduler


async def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    revocations: RevocationSet = Depends(get_revocations),
) -> Principal:
    """Require a valid, unrevoked bearer JWT; 401 otherwise."""
    payload = decode_access_token(credentials.credentials) if credentials else None
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token_id = payload.get("jti")
    if token_id and token_id in revocations:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )
    principal = Principal(id=str(payload["sub"]), token_id=token_id, expires_at=payload.get("exp"))
    request.state.owner_id = principal.id
    return principal


def token_ttl_seconds(principal: Principal) -> float:
    if principal.expires_at is None:
        return settings.access_token_expire_minutes * 60
    return max(0.0, float(principal.expires_at) - time.time())


def require_scan_secret(request: Request) -> None:
    """Scanner webhooks and internal triggers: pre-shared secret header. 401 before any lookup."""
    s = get_settings()
    presented = request.headers.get(s.scan_webhook_header)
    if not verify_shared_secret(s.scan_webhook_secret, presented):
        raise Unauthenticated("Invalid or missing scan secret")


def require_metrics_access(
    x_metrics_secret: str | None = Header(None, alias="X-Metrics-Secret"),
) -> None:
    """Allow /metrics with a valid X-Metrics-Secret, or without a guard when no secret is configured (local)."""
    s = get_settings()
    if s.metrics_secret and not verify_shared_secret(s.metrics_secret, x_metrics_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Metrics-Secret",
        )
