"""Form access control.

A user can reach a form either as its owner or through a non-expired
share. Shares carry a role, and the role decides which permissions apply
(see ``app.models.form_share.ROLE_PERMISSIONS``).
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.models.form import Form
from app.models.form_share import FormShare, permissions_for_role
from app.models.user import User

logger = logging.getLogger(__name__)


class AccessError(Exception):
    """Base exception for form access checks."""


class FormNotFound(AccessError):
    def __init__(self, form_id: uuid.UUID) -> None:
        self.form_id = form_id
        super().__init__(f"Form {form_id} not found")


class PermissionDenied(AccessError):
    def __init__(self, permission: str | None = None) -> None:
        self.permission = permission
        message = "You do not have access to this form"
        if permission:
            message = f"Missing permission: {permission}"
        super().__init__(message)


@dataclass
class FormAccess:
    form: Form
    role: str
    permissions: dict[str, bool]
    is_owner: bool = False

    def can(self, permission: str) -> bool:
        return self.permissions.get(permission, False)


def get_active_share(db: Session, form_id: uuid.UUID, user_id: uuid.UUID) -> FormShare | None:
    """Return the user's share on the form unless it has expired."""
    share = (
        db.query(FormShare)
        .filter(FormShare.form_id == form_id, FormShare.shared_with_id == user_id)
        .first()
    )
    if share is None or share.is_expired:
        return None
    return share


def resolve_access(db: Session, form: Form, user: User) -> FormAccess | None:
    if form.owner_id == user.id:
        return FormAccess(
            form=form, role="owner", permissions=permissions_for_role("owner"), is_owner=True
        )
    share = get_active_share(db, form.id, user.id)
    if share is None:
        return None
    return FormAccess(form=form, role=share.role, permissions=share.permissions)


def require_access(
    db: Session,
    form_id: uuid.UUID,
    user: User,
    permission: str | None = None,
) -> FormAccess:
    """Load a form and check the user may act on it.

    Raises FormNotFound when the form does not exist and PermissionDenied
    when the user has no access, or lacks ``permission``.
    """
    form = db.get(Form, form_id)
    if form is None:
        raise FormNotFound(form_id)

    access = resolve_access(db, form, user)
    if access is None:
        raise PermissionDenied()
    if permission is not None and not access.can(permission):
        logger.info("User %s denied %s on form %s", user.id, permission, form_id)
        raise PermissionDenied(permission)
    return access


def require_owner(db: Session, form_id: uuid.UUID, user: User) -> Form:
    form = db.get(Form, form_id)
    if form is None:
        raise FormNotFound(form_id)
    if form.owner_id != user.id:
        raise PermissionDenied("owner")
    return form
