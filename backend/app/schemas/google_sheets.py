import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SheetsConnect(BaseModel):
    spreadsheet_id: str = Field(..., min_length=1, max_length=255)
    sheet_name: str = Field("Responses", min_length=1, max_length=255)
    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    token_expiry: datetime
    sync_on_submit: bool = True


class SheetsUpdate(BaseModel):
    spreadsheet_id: str | None = Field(None, min_length=1, max_length=255)
    sheet_name: str | None = Field(None, min_length=1, max_length=255)
    active: bool | None = None
    sync_on_submit: bool | None = None


class SheetsIntegrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    form_id: uuid.UUID
    spreadsheet_id: str
    sheet_name: str
    active: bool
    sync_on_submit: bool
    header_row_created: bool
    last_synced_response_id: uuid.UUID | None
    last_sync_time: datetime | None
    sync_count: int
    error_log: list[dict]
    token_expiry: datetime
    created_at: datetime


class BulkSyncResult(BaseModel):
    synced: int
    failed: int
    errors: list[str] = Field(default_factory=list)
