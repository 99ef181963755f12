import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import form_access_or_error
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comments import (
    CommentCreate,
    CommentListResponse,
    CommentOut,
    CommentUpdate,
    LikeToggleResponse,
    ResolveToggleResponse,
)
from app.services import comments as comment_service
from app.services.access import FormAccess
from app.services.responses import get_response

router = APIRouter()
comment_router = APIRouter()


def _comment_or_404(comment_id: uuid.UUID, db: Session) -> Comment:
    try:
        return comment_service.get_comment(db, comment_id)
    except comment_service.CommentNotFound:
        raise HTTPException(status_code=404, detail="Comment not found")


def _comment_access(comment: Comment, user: User, db: Session) -> FormAccess:
    return form_access_or_error(db, comment.form_id, user, "can_view_responses")


# ---------------------------------------------------------------------------
# /forms/{form_id}/responses/{response_id}/comments
# ---------------------------------------------------------------------------


@router.post("", response_model=CommentOut, status_code=201)
def add_comment(
    form_id: uuid.UUID,
    response_id: uuid.UUID,
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_add_comments")
    response = get_response(db, form_id, response_id)
    if response is None:
        raise HTTPException(status_code=404, detail="Response not found")

    try:
        comment = comment_service.add_comment(db, response, current_user, payload)
    except comment_service.CommentNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return comment_service.serialize(comment, current_user)


@router.get("", response_model=CommentListResponse)
def list_comments(
    form_id: uuid.UUID,
    response_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_view_responses")
    if get_response(db, form_id, response_id) is None:
        raise HTTPException(status_code=404, detail="Response not found")

    threads = comment_service.list_threads(db, response_id)
    return CommentListResponse(
        items=[comment_service.serialize(c, current_user) for c in threads],
        total=len(threads),
    )


# ---------------------------------------------------------------------------
# /comments/{comment_id}
# ---------------------------------------------------------------------------


@comment_router.put("/{comment_id}", response_model=CommentOut)
def edit_comment(
    comment_id: uuid.UUID,
    payload: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comment = _comment_or_404(comment_id, db)
    _comment_access(comment, current_user, db)
    try:
        comment = comment_service.edit_comment(db, comment, current_user, payload.text)
    except comment_service.CommentForbidden as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    return comment_service.serialize(comment, current_user)


@comment_router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comment = _comment_or_404(comment_id, db)
    access = _comment_access(comment, current_user, db)
    try:
        comment_service.delete_comment(db, comment, current_user, access.form.owner_id)
    except comment_service.CommentForbidden as exc:
        raise HTTPException(status_code=403, detail=str(exc))


@comment_router.post("/{comment_id}/like", response_model=LikeToggleResponse)
def toggle_like(
    comment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comment = _comment_or_404(comment_id, db)
    _comment_access(comment, current_user, db)
    liked = comment_service.toggle_like(db, comment, current_user)
    return LikeToggleResponse(liked=liked, like_count=len(comment.likes or []))


@comment_router.post("/{comment_id}/resolve", response_model=ResolveToggleResponse)
def toggle_resolve(
    comment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comment = _comment_or_404(comment_id, db)
    access = _comment_access(comment, current_user, db)
    try:
        resolved = comment_service.toggle_resolve(db, comment, current_user, access.form.owner_id)
    except comment_service.CommentForbidden as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    return ResolveToggleResponse(is_resolved=resolved)
