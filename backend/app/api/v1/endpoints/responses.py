import math
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.v1.endpoints.forms import client_ip
from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import form_access_or_error
from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.user import User
from app.schemas.responses import (
    FormResponseListResponse,
    FormResponseOut,
    ResponseSubmission,
    SortOrder,
    SubmissionReceipt,
)
from app.services import responses as response_service
from app.services.integrations import handle_response_created, handle_response_deleted

router = APIRouter()


def _get_response_or_404(form_id: uuid.UUID, response_id: uuid.UUID, db: Session) -> FormResponse:
    response = response_service.get_response(db, form_id, response_id)
    if response is None:
        raise HTTPException(status_code=404, detail="Response not found")
    return response


@router.post("", response_model=SubmissionReceipt, status_code=201)
def submit_response(
    form_id: uuid.UUID,
    payload: ResponseSubmission,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    form = db.get(Form, form_id)
    if form is None or not form.is_public:
        raise HTTPException(status_code=404, detail="Form not found")

    try:
        response = response_service.create_response(
            db,
            form,
            payload,
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except response_service.ResponderEmailRequired as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except response_service.SubmissionError as exc:
        raise HTTPException(status_code=422, detail="; ".join(exc.errors))

    background_tasks.add_task(handle_response_created, response.id)
    return SubmissionReceipt(response_id=response.id)


@router.get("", response_model=FormResponseListResponse)
def list_responses(
    form_id: uuid.UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort: SortOrder = Query("desc"),
    search: str | None = Query(None, max_length=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_view_responses")
    items, total = response_service.list_responses(db, form_id, page, page_size, sort, search)
    return FormResponseListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@router.get("/export")
def export_responses(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Export all responses of the form as CSV."""
    access = form_access_or_error(db, form_id, current_user, "can_view_responses")
    responses, _ = response_service.list_responses(db, form_id, page=1, page_size=1_000_000, sort="asc")
    content = response_service.export_csv(access.form, responses)

    filename = f"form_{form_id}_responses.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{response_id}", response_model=FormResponseOut)
def get_response(
    form_id: uuid.UUID,
    response_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_view_responses")
    return _get_response_or_404(form_id, response_id, db)


@router.delete("/{response_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_response(
    form_id: uuid.UUID,
    response_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_delete_responses")
    response = _get_response_or_404(form_id, response_id, db)
    response_service.delete_response(db, response)
    background_tasks.add_task(handle_response_deleted, form_id, response_id)
