import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class AnswerIn(BaseModel):
    field_id: str = Field(..., min_length=1)
    value: Any = None


class ResponseSubmission(BaseModel):
    answers: list[AnswerIn] = Field(default_factory=list)
    send_copy: bool = False


class SubmissionReceipt(BaseModel):
    response_id: uuid.UUID
    message: str = "Response submitted"


class FormResponseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    form_id: uuid.UUID
    answers: list[dict[str, Any]]
    ip: str | None
    user_agent: str | None
    responder_email: str | None
    send_copy: bool
    submitted_at: datetime


class FormResponseListResponse(BaseModel):
    items: list[FormResponseOut]
    total: int
    page: int
    page_size: int
    total_pages: int


SortOrder = Literal["asc", "desc"]
