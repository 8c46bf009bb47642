"""Local storage capability endpoints (STORAGE_BACKEND=local): PUT into quarantine, GET from permanent.

The HMAC token in the query string is the only credential, like a presigned S3 URL."""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse

from scanvault.core.config import get_settings
from scanvault.core.deps import get_storage_gateway
from scanvault.core.security import verify_capability_token
from scanvault.services.storage import StorageArea, StorageGateway
from scanvault.services.storage.local import LocalStorage

router = APIRouter(prefix="/storage", tags=["storage"])
settings = get_settings()


def _local_backend(storage: StorageGateway) -> LocalStorage:
    backend = storage.backend
    if not isinstance(backend, LocalStorage):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return backend


@router.put("/quarantine/{storage_key:path}", status_code=204)
async def upload_object(
    storage_key: str,
    token: str,
    expires: int,
    request: Request,
    storage: StorageGateway = Depends(get_storage_gateway),
):
    backend = _local_backend(storage)
    if not verify_capability_token(token, "put", StorageArea.QUARANTINE.value, storage_key, expires):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
    content = await request.body()
    limit = settings.max_upload_size_mb * 1024 * 1024
    if not content or len(content) > limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Body must be 1..{limit} bytes",
        )
    try:
        backend.write(StorageArea.QUARANTINE, storage_key, content)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid storage key")
    return None


@router.get("/permanent/{storage_key:path}")
async def download_object(
    storage_key: str,
    token: str,
    expires: int,
    storage: StorageGateway = Depends(get_storage_gateway),
):
    backend = _local_backend(storage)
    if not verify_capability_token(token, "get", StorageArea.PERMANENT.value, storage_key, expires):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
    try:
        file_path = backend.path_for(StorageArea.PERMANENT, storage_key)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid storage key")
    if not file_path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(
        file_path,
        headers={
            "Cache-Control": "private, no-store",
            "Content-Disposition": "attachment",
        },
    )
