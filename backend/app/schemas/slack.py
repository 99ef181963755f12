import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.webhooks import WebhookEvent


class SlackIntegrationCreate(BaseModel):
    webhook_url: str | None = Field(None, max_length=2000)
    bot_token: str | None = Field(None, max_length=500)
    channel: str | None = Field(None, max_length=100)
    workspace_id: str | None = Field(None, max_length=100)
    notify_on: list[WebhookEvent] = Field(default_factory=lambda: ["response.created"])
    mention_users: list[str] = Field(default_factory=list)
    thread_replies: bool = False
    include_answers: bool = True
    message_template: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _require_target(self):
        if not self.webhook_url and not (self.bot_token and self.channel):
            raise ValueError("Provide webhook_url, or bot_token together with channel")
        if self.webhook_url and not self.webhook_url.startswith("https://"):
            raise ValueError("webhook_url must be an https URL")
        return self


class SlackIntegrationUpdate(BaseModel):
    webhook_url: str | None = Field(None, max_length=2000)
    bot_token: str | None = Field(None, max_length=500)
    channel: str | None = Field(None, max_length=100)
    active: bool | None = None
    notify_on: list[WebhookEvent] | None = None
    mention_users: list[str] | None = None
    thread_replies: bool | None = None
    include_answers: bool | None = None
    message_template: str | None = Field(None, max_length=2000)


class SlackIntegrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    form_id: uuid.UUID
    workspace_id: str | None
    webhook_url: str | None
    channel: str | None
    active: bool
    notify_on: list[str]
    mention_users: list[str]
    thread_replies: bool
    include_answers: bool
    message_template: str
    notification_count: int
    error_count: int
    last_notified_at: datetime | None
    error_log: list[dict]
    has_bot_token: bool = False
    created_at: datetime


class SlackTestResult(BaseModel):
    success: bool
    error: str | None = None
