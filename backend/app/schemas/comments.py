import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class Mention(BaseModel):
    user_id: uuid.UUID
    name: str | None = None


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    parent_comment_id: uuid.UUID | None = None
    mentions: list[Mention] = Field(default_factory=list)


class CommentUpdate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class CommentAuthor(BaseModel):
    id: uuid.UUID
    name: str
    avatar: str | None = None


class CommentOut(BaseModel):
    id: uuid.UUID
    response_id: uuid.UUID
    form_id: uuid.UUID
    parent_id: uuid.UUID | None
    author: CommentAuthor
    text: str
    mentions: list[dict]
    like_count: int
    is_liked: bool
    edited: bool
    edited_at: datetime | None
    is_resolved: bool
    created_at: datetime
    replies: list["CommentOut"] = Field(default_factory=list)


class CommentListResponse(BaseModel):
    items: list[CommentOut]
    total: int


class LikeToggleResponse(BaseModel):
    liked: bool
    like_count: int


class ResolveToggleResponse(BaseModel):
    is_resolved: bool
