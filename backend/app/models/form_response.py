import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class FormResponse(Base):
    """One submission of a form.

    ``answers`` is an ordered JSONB list of ``{"field_id": ..., "value": ...}``.
    A value may be a string, number, bool, list (checkbox) or dict (matrix).

    ``submitted_at`` is the canonical submission instant read by analytics,
    exports and integrations. ``created_at`` is only the row insertion time.
    """

    __tablename__ = "form_responses"
    __table_args__ = (
        Index("ix_form_responses_form_id", "form_id"),
        Index("ix_form_responses_form_submitted", "form_id", "submitted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    form_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("forms.id"), nullable=False
    )
    answers: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(512))
    responder_email: Mapped[str | None] = mapped_column(String(255))
    send_copy: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    form: Mapped["Form"] = relationship(back_populates="responses")
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="response", cascade="all, delete-orphan"
    )

    def answer_for(self, field_id: str) -> dict | None:
        for answer in self.answers or []:
            if answer.get("field_id") == field_id:
                return answer
        return None

    def __repr__(self) -> str:
        return f"<FormResponse form={self.form_id} answers={len(self.answers or [])}>"
