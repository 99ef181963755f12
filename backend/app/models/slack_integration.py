import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

DEFAULT_SLACK_MESSAGE = "New response received for {{formTitle}}"


class SlackIntegration(Base):
    """Per-form Slack notification target (incoming webhook URL or bot token)."""

    __tablename__ = "slack_integrations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    form_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("forms.id"), nullable=False, unique=True, index=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    workspace_id: Mapped[str | None] = mapped_column(String(100))
    webhook_url: Mapped[str | None] = mapped_column(String(2000))
    channel: Mapped[str | None] = mapped_column(String(100))
    bot_token: Mapped[str | None] = mapped_column(String(500))
    active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    notify_on: Mapped[list] = mapped_column(JSONB, nullable=False, default=lambda: ["response.created"])
    mention_users: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    thread_replies: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    include_answers: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    message_template: Mapped[str] = mapped_column(Text, nullable=False, default=DEFAULT_SLACK_MESSAGE)
    notification_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_notified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # [{"timestamp": iso, "message": str}], newest last
    error_log: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    form: Mapped["Form"] = relationship(back_populates="slack_integration")

    def __repr__(self) -> str:
        return f"<SlackIntegration form={self.form_id} channel={self.channel}>"
