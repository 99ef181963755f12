import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VersionCreate(BaseModel):
    changes_summary: str = Field("", max_length=1000)
    is_published: bool = True


class VersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    form_id: uuid.UUID
    version_number: int
    fields: list[dict[str, Any]]
    settings: dict[str, Any]
    created_by_id: uuid.UUID
    changes_summary: str
    is_published: bool
    created_at: datetime


class VersionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    version_number: int
    changes_summary: str
    is_published: bool
    created_by_id: uuid.UUID
    created_at: datetime
    field_count: int


class VersionListResponse(BaseModel):
    items: list[VersionSummary]
    total: int


class VersionSide(BaseModel):
    version_number: int
    field_count: int
    created_at: datetime


class VersionComparison(BaseModel):
    version1: VersionSide
    version2: VersionSide
    fields_added: list[str]  # field ids present in version2 only
    fields_removed: list[str]  # field ids present in version1 only
    fields_changed: list[str]  # same id, different definition
    settings_changed: bool


class RollbackResponse(BaseModel):
    message: str
    restored_version: int
    backup_version: int
