import uuid
from datetime import datetime

from sqlalchemy import Boolean, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

TEMPLATE_CATEGORIES = (
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
)


class Template(Base):
    """Reusable form blueprint. Premade templates have no creator."""

    __tablename__ = "templates"
    __table_args__ = (
        Index("ix_templates_category_premade", "category", "is_premade"),
        Index("ix_templates_created_by_id", "created_by_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    category: Mapped[str] = mapped_column(
        Enum(*TEMPLATE_CATEGORIES, name="template_category"),
        nullable=False,
        server_default="other",
        default="other",
    )
    thumbnail: Mapped[str] = mapped_column(String(500), nullable=False, default="", server_default="")
    is_premade: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    fields: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    settings: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Template {self.name} ({self.category})>"
