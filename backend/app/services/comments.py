"""Reviewer comments on responses, with one level of replies."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.comment import Comment
from app.models.form_response import FormResponse
from app.models.user import User
from app.schemas.comments import CommentAuthor, CommentCreate, CommentOut

logger = logging.getLogger(__name__)


class CommentError(Exception):
    """Base exception for comment operations."""


class CommentNotFound(CommentError):
    """Raised when a comment (or the parent of a reply) does not exist."""


class CommentForbidden(CommentError):
    """Raised when the caller may not change the comment."""


def add_comment(db: Session, response: FormResponse, author: User, data: CommentCreate) -> Comment:
    parent_id = None
    if data.parent_comment_id is not None:
        parent = db.get(Comment, data.parent_comment_id)
        if parent is None or parent.response_id != response.id:
            raise CommentNotFound("Parent comment not found")
        # Replies to replies attach to the thread root
        parent_id = parent.parent_id or parent.id

    comment = Comment(
        response_id=response.id,
        form_id=response.form_id,
        author_id=author.id,
        parent_id=parent_id,
        text=data.text,
        mentions=[m.model_dump(mode="json") for m in data.mentions],
        likes=[],
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("Comment %s added to response %s by %s", comment.id, response.id, author.id)
    return comment


def list_threads(db: Session, response_id: uuid.UUID) -> list[Comment]:
    """Top-level comments, newest first; replies load oldest first."""
    return (
        db.query(Comment)
        .filter(Comment.response_id == response_id, Comment.parent_id.is_(None))
        .order_by(Comment.created_at.desc())
        .all()
    )


def get_comment(db: Session, comment_id: uuid.UUID) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise CommentNotFound(f"Comment {comment_id} not found")
    return comment


def edit_comment(db: Session, comment: Comment, user: User, text: str) -> Comment:
    if comment.author_id != user.id:
        raise CommentForbidden("You can only edit your own comments")
    comment.text = text
    comment.edited = True
    comment.edited_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(comment)
    return comment


def _author_or_form_owner(comment: Comment, user: User, form_owner_id: uuid.UUID) -> bool:
    return comment.author_id == user.id or form_owner_id == user.id


def delete_comment(db: Session, comment: Comment, user: User, form_owner_id: uuid.UUID) -> None:
    if not _author_or_form_owner(comment, user, form_owner_id):
        raise CommentForbidden("You cannot delete this comment")
    comment_id = comment.id
    db.delete(comment)
    db.commit()
    logger.info("Comment %s deleted by %s", comment_id, user.id)


def toggle_like(db: Session, comment: Comment, user: User) -> bool:
    """Like or unlike. Returns True when the comment is now liked."""
    user_key = str(user.id)
    likes = list(comment.likes or [])
    if user_key in likes:
        likes.remove(user_key)
        liked = False
    else:
        likes.append(user_key)
        liked = True
    comment.likes = likes
    db.commit()
    return liked


def toggle_resolve(db: Session, comment: Comment, user: User, form_owner_id: uuid.UUID) -> bool:
    if not _author_or_form_owner(comment, user, form_owner_id):
        raise CommentForbidden("You cannot resolve this comment")
    comment.is_resolved = not comment.is_resolved
    db.commit()
    return comment.is_resolved


def serialize(comment: Comment, viewer: User, with_replies: bool = True) -> CommentOut:
    likes = comment.likes or []
    return CommentOut(
        id=comment.id,
        response_id=comment.response_id,
        form_id=comment.form_id,
        parent_id=comment.parent_id,
        author=CommentAuthor(
            id=comment.author.id,
            name=comment.author.name,
            avatar=comment.author.avatar,
        ),
        text=comment.text,
        mentions=comment.mentions or [],
        like_count=len(likes),
        is_liked=str(viewer.id) in likes,
        edited=comment.edited,
        edited_at=comment.edited_at,
        is_resolved=comment.is_resolved,
        created_at=comment.created_at,
        replies=[serialize(r, viewer, with_replies=False) for r in comment.replies] if with_replies else [],
    )
