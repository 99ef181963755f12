import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TemplateCategory = Literal[
    "contact",
    "survey",
    "registration",
    "feedback",
    "product",
    "education",
    "travel",
    "appointment",
    "event",
    "other",
]


class TemplateCreate(BaseModel):
    """Save an existing form as a reusable template."""

    form_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: TemplateCategory = "other"
    thumbnail: str = ""


class TemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: TemplateCategory | None = None
    thumbnail: str | None = None


class TemplateUse(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str
    category: TemplateCategory
    thumbnail: str
    is_premade: bool
    fields: list[dict[str, Any]]
    settings: dict[str, Any]
    created_by_id: uuid.UUID | None
    usage_count: int
    created_at: datetime


class TemplateListResponse(BaseModel):
    items: list[TemplateResponse]
    total: int
    page: int
    page_size: int
