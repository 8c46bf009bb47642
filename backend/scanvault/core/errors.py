"""Error taxonomy for the upload lifecycle. Each error carries its HTTP status and a stable code."""
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ScanVaultError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail or self.code


class InvalidInput(ScanVaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"


class Unauthenticated(ScanVaultError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class Forbidden(ScanVaultError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(ScanVaultError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(ScanVaultError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class DuplicateName(Conflict):
    code = "duplicate_name"


class QuotaExceeded(ScanVaultError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "quota_exceeded"


class BackendUnavailable(ScanVaultError):
    """Object-store or record-store failure (timeout, transport, throttling). Retryable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "backend_unavailable"


async def scanvault_error_handler(request: Request, exc: ScanVaultError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are user-correctable: 400 with the field errors."""
    errors = [
        {"path": ".".join(str(x) for x in e.get("loc", ())), "message": e.get("msg", "")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": errors, "code": InvalidInput.code},
    )
