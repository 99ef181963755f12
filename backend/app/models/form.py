import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class Form(Base):
    """Form definition with a JSONB fields array.

    Each entry of ``fields`` is a dict:
        {
            "id": "f_ab12cd34",
            "type": "short_text" | "long_text" | "email" | "number" | "date" | "dropdown"
                    | "checkbox" | "radio" | "file" | "rating" | "matrix" | "signature"
                    | "image_choice",
            "label": "Question text",
            "required": true/false,
            "options": [...],              # choice/rating/image_choice fields
            "validation": {...},
            "width": "full" | "half",
            "created_at": "2024-01-05T10:00:00+00:00"   # when the field was added
        }

    ``kind`` / ``kind_details`` hold the form-kind payload (event, job, travel, ...)
    validated by ``app.schemas.forms.FormKind``.
    """

    __tablename__ = "forms"
    __table_args__ = (
        Index("ix_forms_owner_id", "owner_id"),
        Index("ix_forms_owner_updated", "owner_id", "updated_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    kind: Mapped[str] = mapped_column(String(30), nullable=False, server_default="general", default="general")
    kind_details: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    fields: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    settings: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    logo: Mapped[str | None] = mapped_column(String(1000))
    header_image: Mapped[str | None] = mapped_column(String(1000))
    source_template_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    owner: Mapped["User"] = relationship(back_populates="forms")
    responses: Mapped[list["FormResponse"]] = relationship(back_populates="form", cascade="all, delete-orphan")
    views: Mapped[list["FormView"]] = relationship(back_populates="form", cascade="all, delete-orphan")
    shares: Mapped[list["FormShare"]] = relationship(back_populates="form", cascade="all, delete-orphan")
    versions: Mapped[list["FormVersion"]] = relationship(back_populates="form", cascade="all, delete-orphan")
    webhooks: Mapped[list["Webhook"]] = relationship(back_populates="form", cascade="all, delete-orphan")
    slack_integration: Mapped["SlackIntegration | None"] = relationship(
        back_populates="form", cascade="all, delete-orphan", uselist=False
    )
    sheets_integration: Mapped["GoogleSheetsIntegration | None"] = relationship(
        back_populates="form", cascade="all, delete-orphan", uselist=False
    )

    @property
    def is_public(self) -> bool:
        return bool((self.settings or {}).get("is_public", True))

    def __repr__(self) -> str:
        return f"<Form {self.title} ({self.kind})>"
