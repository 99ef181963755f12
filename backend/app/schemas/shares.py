import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ShareRole = Literal["owner", "editor", "viewer", "response_manager"]


class ShareCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    role: ShareRole = "viewer"
    message: str | None = Field(None, max_length=1000)
    expires_at: datetime | None = None


class ShareUpdate(BaseModel):
    role: ShareRole


class ShareUser(BaseModel):
    id: uuid.UUID
    name: str
    email: str


class ShareOut(BaseModel):
    id: uuid.UUID
    form_id: uuid.UUID
    shared_with: ShareUser
    shared_by: ShareUser
    role: ShareRole
    permissions: dict[str, bool]
    message: str | None
    expires_at: datetime | None
    is_expired: bool
    shared_at: datetime


class ShareListResponse(BaseModel):
    items: list[ShareOut]
