"""Pydantic request/response schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def _config_forbid(**kwargs):
    return ConfigDict(extra="forbid", **kwargs)


# ----- Auth -----
class PrincipalProfile(BaseModel):
    model_config = _config_forbid()
    id: str


# ----- Files -----
class UploadIntentRequest(BaseModel):
    model_config = _config_forbid()
    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=255)
    size_bytes: int
    expires_in_minutes: int | None = Field(default=None, gt=0)


class UploadIntentResponse(BaseModel):
    model_config = _config_forbid()
    file_id: UUID
    upload_url: str
    storage_key: str
    expires_in_minutes: int


class FileMetadata(BaseModel):
    model_config = _config_forbid(from_attributes=True)
    id: UUID
    filename: str
    content_type: str
    size_bytes: int
    storage_key: str
    status: str
    created_at: datetime
    status_changed_at: datetime | None = None


class FileStatusResponse(FileMetadata):
    download_url: str | None = None
    expires_in_minutes: int | None = None


# ----- Webhooks -----
class ScanVerdictRequest(BaseModel):
    """Scanner callback. Accepts storage_key or storageKey."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    storage_key: str = Field(alias="storageKey")
    verdict: str


# ----- Admin -----
class SweepReportResponse(BaseModel):
    model_config = _config_forbid()
    ran: bool
    report: dict | None = None
