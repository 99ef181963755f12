import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class GoogleSheetsIntegration(Base):
    """Per-form spreadsheet that receives one row per response."""

    __tablename__ = "google_sheets_integrations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    form_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("forms.id"), nullable=False, unique=True, index=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    spreadsheet_id: Mapped[str] = mapped_column(String(255), nullable=False)
    sheet_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Responses")
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    token_expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    sync_on_submit: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    header_row_created: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    last_synced_response_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    last_sync_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sync_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    error_log: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    form: Mapped["Form"] = relationship(back_populates="sheets_integration")

    def __repr__(self) -> str:
        return f"<GoogleSheetsIntegration form={self.form_id} sheet={self.spreadsheet_id}>"
