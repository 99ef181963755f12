import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import form_access_or_error
from app.models.form_share import FormShare
from app.models.user import User
from app.schemas.shares import ShareCreate, ShareListResponse, ShareOut, ShareUpdate
from app.services import sharing

router = APIRouter()


def _share_or_404(form_id: uuid.UUID, share_id: uuid.UUID, db: Session) -> FormShare:
    try:
        return sharing.get_share(db, form_id, share_id)
    except sharing.ShareNotFound:
        raise HTTPException(status_code=404, detail="Share not found")


@router.post("", response_model=ShareOut, status_code=201)
def share_form(
    form_id: uuid.UUID,
    payload: ShareCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Share the form with a registered user. Re-sharing updates the existing share."""
    access = form_access_or_error(db, form_id, current_user, "can_share")
    try:
        share, created = sharing.share_form(db, access.form, current_user, payload)
    except sharing.ShareTargetNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except sharing.ShareWithSelf as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if not created:
        response.status_code = status.HTTP_200_OK
    return sharing.serialize(share)


@router.get("", response_model=ShareListResponse)
def list_shares(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_share")
    return ShareListResponse(items=[sharing.serialize(s) for s in sharing.list_shares(db, form_id)])


@router.put("/{share_id}", response_model=ShareOut)
def update_share(
    form_id: uuid.UUID,
    share_id: uuid.UUID,
    payload: ShareUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_share")
    share = sharing.update_role(db, _share_or_404(form_id, share_id, db), payload.role)
    return sharing.serialize(share)


@router.delete("/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_share(
    form_id: uuid.UUID,
    share_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_share")
    sharing.remove_share(db, _share_or_404(form_id, share_id, db))
