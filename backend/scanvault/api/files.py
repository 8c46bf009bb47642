"""Files: upload intent, list, status (+ download URL when CLEAN), delete. Owner-scoped."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from scanvault.api.schemas import (
    FileMetadata,
    FileStatusResponse,
    UploadIntentRequest,
    UploadIntentResponse,
)
from scanvault.core.deps import get_current_principal, get_records, get_storage_gateway
from scanvault.core.rate_limit import is_intent_rate_limited
from scanvault.core.security import Principal
from scanvault.services.audit import log_audit
from scanvault.services.downloads import get_file_status
from scanvault.services.files import delete_file, list_files
from scanvault.services.intents import create_upload_intent
from scanvault.services.records import RecordStore
from scanvault.services.storage import StorageGateway

router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload-intent", response_model=UploadIntentResponse)
async def upload_intent(
    request: Request,
    body: UploadIntentRequest,
    principal: Principal = Depends(get_current_principal),
    records: RecordStore = Depends(get_records),
    storage: StorageGateway = Depends(get_storage_gateway),
):
    if is_intent_rate_limited(principal.id):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many requests")
    intent = await create_upload_intent(
        records,
        storage,
        owner_id=principal.id,
        filename=body.filename,
        content_type=body.content_type,
        size_bytes=body.size_bytes,
        expires_in_minutes=body.expires_in_minutes,
    )
    await log_audit(
        records.session,
        principal.id,
        "upload_intent_created",
        event_data={"file_id": str(intent.file_id), "storage_key": intent.storage_key},
        request=request,
    )
    return UploadIntentResponse(
        file_id=intent.file_id,
        upload_url=intent.upload_url,
        storage_key=intent.storage_key,
        expires_in_minutes=intent.expires_in_minutes,
    )


@router.get("", response_model=list[FileMetadata])
async def get_files(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    records: RecordStore = Depends(get_records),
):
    rows = await list_files(records, principal.id, limit=limit, offset=offset)
    return [FileMetadata.model_validate(r) for r in rows]


@router.get("/{file_id}", response_model=FileStatusResponse)
async def get_file(
    file_id: UUID,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    records: RecordStore = Depends(get_records),
    storage: StorageGateway = Depends(get_storage_gateway),
):
    view = await get_file_status(records, storage, file_id, principal.id)
    if view.download_url is not None:
        await log_audit(
            records.session,
            principal.id,
            "download_url_minted",
            event_data={"file_id": str(file_id)},
            request=request,
        )
    metadata = FileMetadata.model_validate(view.record)
    return FileStatusResponse(
        **metadata.model_dump(),
        download_url=view.download_url,
        expires_in_minutes=view.expires_in_minutes,
    )


@router.delete("/{file_id}", status_code=204)
async def remove_file(
    file_id: UUID,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    records: RecordStore = Depends(get_records),
    storage: StorageGateway = Depends(get_storage_gateway),
):
    record = await delete_file(records, storage, file_id, principal.id)
    await log_audit(
        records.session,
        principal.id,
        "file_deleted",
        event_data={"file_id": str(file_id), "storage_key": record.storage_key, "status": record.status},
        request=request,
    )
    return None
