import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class Comment(Base):
    """Reviewer comment on a response. ``parent_id`` set means it is a reply."""

    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_response_created", "response_id", "created_at"),
        Index("ix_comments_form_id", "form_id"),
        Index("ix_comments_author_id", "author_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    response_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("form_responses.id"), nullable=False
    )
    form_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("forms.id"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("comments.id")
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    # [{"user_id": "...", "name": "..."}]
    mentions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    # user ids (as strings) that liked the comment
    likes: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    edited: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_resolved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    response: Mapped["FormResponse"] = relationship(back_populates="comments")
    author: Mapped["User"] = relationship()
    replies: Mapped[list["Comment"]] = relationship(
        back_populates="parent",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
    parent: Mapped["Comment | None"] = relationship(back_populates="replies", remote_side=[id])

    def __repr__(self) -> str:
        return f"<Comment {self.id} on response={self.response_id}>"
