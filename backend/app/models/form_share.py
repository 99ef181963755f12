import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

SHARE_ROLES = ("owner", "editor", "viewer", "response_manager")

_NO_ACCESS = {
    "can_edit": False,
    "can_view_responses": False,
    "can_delete_responses": False,
    "can_add_comments": False,
    "can_share": False,
    "can_delete": False,
}

ROLE_PERMISSIONS: dict[str, dict[str, bool]] = {
    "owner": {key: True for key in _NO_ACCESS},
    "editor": {
        **_NO_ACCESS,
        "can_edit": True,
        "can_view_responses": True,
        "can_add_comments": True,
    },
    "response_manager": {
        **_NO_ACCESS,
        "can_view_responses": True,
        "can_delete_responses": True,
        "can_add_comments": True,
    },
    "viewer": {**_NO_ACCESS, "can_view_responses": True},
}


def permissions_for_role(role: str) -> dict[str, bool]:
    """Unknown roles fall back to viewer permissions."""
    return dict(ROLE_PERMISSIONS.get(role, ROLE_PERMISSIONS["viewer"]))


class FormShare(Base):
    __tablename__ = "form_shares"
    __table_args__ = (
        UniqueConstraint("form_id", "shared_with_id", name="uq_form_shares_form_user"),
        Index("ix_form_shares_shared_with_id", "shared_with_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    form_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("forms.id"), nullable=False
    )
    shared_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    shared_with_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        Enum(*SHARE_ROLES, name="share_role"),
        nullable=False,
        server_default="viewer",
        default="viewer",
    )
    message: Mapped[str | None] = mapped_column(Text)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    shared_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    form: Mapped["Form"] = relationship(back_populates="shares")
    shared_by: Mapped["User"] = relationship(foreign_keys=[shared_by_id])
    shared_with: Mapped["User"] = relationship(foreign_keys=[shared_with_id])

    @property
    def permissions(self) -> dict[str, bool]:
        return permissions_for_role(self.role)

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<FormShare form={self.form_id} user={self.shared_with_id} ({self.role})>"
