import uuid
from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from app.core.config import settings

WebhookEvent = Literal["response.created", "response.updated", "response.deleted", "form.updated"]


def _check_url(value: str) -> str:
    if not value.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return value


HttpUrlStr = Annotated[str, AfterValidator(_check_url)]


class WebhookCreate(BaseModel):
    form_id: uuid.UUID
    url: HttpUrlStr = Field(..., min_length=8, max_length=2000)
    events: list[WebhookEvent] = Field(default_factory=lambda: ["response.created"], min_length=1)
    secret: str | None = Field(None, min_length=8, max_length=255)
    description: str | None = Field(None, max_length=500)
    max_retries: int = Field(settings.WEBHOOK_DEFAULT_MAX_RETRIES, ge=0, le=10)
    retry_delay_ms: int = Field(settings.WEBHOOK_DEFAULT_RETRY_DELAY_MS, ge=0, le=60000)


class WebhookUpdate(BaseModel):
    url: HttpUrlStr | None = Field(None, min_length=8, max_length=2000)
    events: list[WebhookEvent] | None = Field(None, min_length=1)
    active: bool | None = None
    description: str | None = Field(None, max_length=500)
    max_retries: int | None = Field(None, ge=0, le=10)
    retry_delay_ms: int | None = Field(None, ge=0, le=60000)


class WebhookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    form_id: uuid.UUID
    url: str
    events: list[str]
    active: bool
    description: str | None
    max_retries: int
    retry_delay_ms: int
    last_triggered: datetime | None
    last_status: str | None
    success_count: int
    failure_count: int
    created_at: datetime
    secret_preview: str | None = None


class WebhookCreatedResponse(WebhookResponse):
    """Returned once on creation; the only time the full secret is shown."""

    secret: str


class WebhookListResponse(BaseModel):
    items: list[WebhookResponse]
    total: int


class WebhookDeliveryResult(BaseModel):
    success: bool
    status_code: int | None = None
    attempts: int
    error: str | None = None


class WebhookLogs(BaseModel):
    webhook_id: uuid.UUID
    last_triggered: datetime | None
    last_status: str | None
    success_count: int
    failure_count: int
    total_deliveries: int
    success_rate: float
