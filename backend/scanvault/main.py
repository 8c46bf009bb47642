"""FastAPI app: lifespan (storage, revocations, sweep), CORS, security headers, routers."""
import os

# Optional: overlay env from AWS Secrets Manager (prod). Only when ARN set; never log secrets.
_aws_secrets_arn = os.environ.get("AWS_SECRETS_ARN")
if _aws_secrets_arn:
    import json
    import logging

    import boto3
    from botocore.exceptions import BotoCoreError, ClientError

    try:
        _sm = boto3.client("secretsmanager")
        _r = _sm.get_secret_value(SecretId=_aws_secrets_arn)
        _data = json.loads(_r["SecretString"]) if _r.get("SecretString") else {}
        for _k, _v in (_data or {}).items():
            if isinstance(_v, str):
                os.environ[_k] = _v
    except (BotoCoreError, ClientError, ValueError):
        # Log exception type only, never secret content
        logging.getLogger(__name__).exception("Failed to load AWS Secrets Manager secret")

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from scanvault.core.config import get_settings
from scanvault.core.deps import require_metrics_access
from scanvault.core.errors import ScanVaultError, scanvault_error_handler, validation_error_handler
from scanvault.core.metrics import get_metrics
from scanvault.core.request_logging import RequestLoggingMiddleware
from scanvault.core.revocation import RevocationSet
from scanvault.db import async_session_factory, engine, init_db
from scanvault.services.storage import get_storage_gateway
from scanvault.services.sweeper import ReconciliationSweeper, SweepScheduler
from scanvault.api.auth import router as auth_router
from scanvault.api.admin import router as admin_router
from scanvault.api.files import router as files_router
from scanvault.api.webhooks import router as webhooks_router
from scanvault.api.storage_local import router as storage_router

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper())
if settings.log_json:
    for h in logging.getLogger("scanvault.request").handlers[:]:
        logging.getLogger("scanvault.request").removeHandler(h)
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger("scanvault.request").addHandler(h)
    logging.getLogger("scanvault.request").setLevel(logging.INFO)
    logging.getLogger("scanvault.request").propagate = False

logger = logging.getLogger("scanvault")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.debug:
        # Dev convenience; deployed environments run the Alembic migrations
        await init_db()
    storage = get_storage_gateway()
    app.state.storage = storage
    app.state.revocations = RevocationSet(max_entries=settings.revocation_max_entries)
    app.state.sweep_scheduler = SweepScheduler(
        ReconciliationSweeper.from_settings(async_session_factory, storage),
        interval_seconds=settings.sweep_interval_seconds,
    )
    logger.info("Storage backend: %s", settings.storage_backend)
    if settings.scan_webhook_secret is None:
        logger.warning("SCAN_WEBHOOK_SECRET is not set; scanner webhooks will be rejected")
    if settings.sweep_enabled:
        app.state.sweep_scheduler.start()
    try:
        yield
    finally:
        await app.state.sweep_scheduler.stop()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_exception_handler(ScanVaultError, scanvault_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
    response.headers["Permissions-Policy"] = "accelerometer=(), camera=(), geolocation=(), microphone=(), payment=(), usb=()"
    return response

app.include_router(auth_router, prefix="/api")
app.include_router(files_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(storage_router, prefix="/api")


@app.get("/healthz")
async def healthz():
    """Liveness: no auth, no DB. Used by ALB/ECS."""
    return {"status": "ok"}


@app.get("/readyz")
async def readyz():
    """Readiness: light DB check. Used by ALB/ECS to avoid routing to unhealthy tasks."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "detail": "database unreachable"},
        )
    return {"status": "ok"}


@app.get("/metrics", response_class=Response)
async def metrics(_: None = Depends(require_metrics_access)):
    """Prometheus metrics. In prod set METRICS_SECRET and send it in the X-Metrics-Secret header."""
    body, content_type = get_metrics()
    return Response(content=body, media_type=content_type)
