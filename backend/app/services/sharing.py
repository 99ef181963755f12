"""Form sharing between users."""

import logging
import uuid

from sqlalchemy.orm import Session

from app.models.form import Form
from app.models.form_share import FormShare
from app.models.user import User
from app.schemas.shares import ShareCreate, ShareOut, ShareUser
from app.services.auth import get_user_by_email

logger = logging.getLogger(__name__)


class SharingError(Exception):
    """Base exception for sharing operations."""


class ShareTargetNotFound(SharingError):
    """Raised when no user has the given email."""


class ShareWithSelf(SharingError):
    """Raised when sharing a form with its owner."""


class ShareNotFound(SharingError):
    """Raised when a share record does not exist on the form."""


def share_form(db: Session, form: Form, shared_by: User, data: ShareCreate) -> tuple[FormShare, bool]:
    """Share or re-share a form. Returns the share and whether it was new."""
    target = get_user_by_email(db, data.email.strip())
    if target is None:
        raise ShareTargetNotFound(f"No user with email {data.email}")
    if target.id == form.owner_id or target.id == shared_by.id:
        raise ShareWithSelf("Cannot share a form with its owner")

    share = (
        db.query(FormShare)
        .filter(FormShare.form_id == form.id, FormShare.shared_with_id == target.id)
        .first()
    )
    created = share is None
    if created:
        share = FormShare(form_id=form.id, shared_by_id=shared_by.id, shared_with_id=target.id)
        db.add(share)

    share.role = data.role
    share.message = data.message
    share.expires_at = data.expires_at
    db.commit()
    db.refresh(share)
    logger.info("Form %s shared with %s as %s", form.id, target.id, share.role)
    return share, created


def list_shares(db: Session, form_id: uuid.UUID) -> list[FormShare]:
    return (
        db.query(FormShare)
        .filter(FormShare.form_id == form_id)
        .order_by(FormShare.shared_at.asc())
        .all()
    )


def get_share(db: Session, form_id: uuid.UUID, share_id: uuid.UUID) -> FormShare:
    share = db.get(FormShare, share_id)
    if share is None or share.form_id != form_id:
        raise ShareNotFound(f"Share {share_id} not found")
    return share


def update_role(db: Session, share: FormShare, role: str) -> FormShare:
    share.role = role
    db.commit()
    db.refresh(share)
    return share


def remove_share(db: Session, share: FormShare) -> None:
    share_id = share.id
    db.delete(share)
    db.commit()
    logger.info("Share %s removed", share_id)


def _user(user: User) -> ShareUser:
    return ShareUser(id=user.id, name=user.name, email=user.email)


def serialize(share: FormShare) -> ShareOut:
    return ShareOut(
        id=share.id,
        form_id=share.form_id,
        shared_with=_user(share.shared_with),
        shared_by=_user(share.shared_by),
        role=share.role,
        permissions=share.permissions,
        message=share.message,
        expires_at=share.expires_at,
        is_expired=share.is_expired,
        shared_at=share.shared_at,
    )
