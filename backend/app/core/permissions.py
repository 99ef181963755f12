import uuid

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.form import Form
from app.models.user import User
from app.services.access import (
    FormAccess,
    FormNotFound,
    PermissionDenied,
    require_access,
    require_owner,
)


def form_access_or_error(
    db: Session,
    form_id: uuid.UUID,
    user: User,
    permission: str | None = None,
) -> FormAccess:
    """Resolve the caller's access to a form, raising 404/403 as HTTP errors."""
    try:
        return require_access(db, form_id, user, permission)
    except FormNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    except PermissionDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


def owned_form_or_error(db: Session, form_id: uuid.UUID, user: User) -> Form:
    try:
        return require_owner(db, form_id, user)
    except FormNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    except PermissionDenied:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the form owner can do this",
        )
