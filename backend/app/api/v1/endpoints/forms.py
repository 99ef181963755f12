import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import form_access_or_error
from app.models.form import Form
from app.models.user import User
from app.schemas.forms import (
    FormCreate,
    FormDetailResponse,
    FormListResponse,
    FormResponse,
    FormUpdate,
    PublicFormResponse,
    SharedFormItem,
    SharedFormListResponse,
    SharedFormSummary,
    ViewRecorded,
)
from app.services import forms as form_service
from app.services.integrations import handle_form_updated

router = APIRouter()


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _get_public_form_or_404(form_id: uuid.UUID, db: Session) -> Form:
    form = db.get(Form, form_id)
    if form is None or not form.is_public:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


# ---------------------------------------------------------------------------
# Public access (no auth)
# ---------------------------------------------------------------------------


@router.get("/public/{form_id}", response_model=PublicFormResponse)
def get_public_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    return _get_public_form_or_404(form_id, db)


@router.post("/public/{form_id}/views", response_model=ViewRecorded, status_code=201)
def record_form_view(form_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    form = _get_public_form_or_404(form_id, db)
    form_service.record_view(db, form, client_ip(request), request.headers.get("user-agent"))
    return ViewRecorded()


# ---------------------------------------------------------------------------
# Form CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=FormResponse, status_code=201)
def create_form(
    payload: FormCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return form_service.create_form(db, current_user, payload)
    except form_service.FormValidationError as exc:
        raise HTTPException(status_code=422, detail="; ".join(exc.errors))


@router.get("/", response_model=FormListResponse)
def list_forms(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    forms, total = form_service.list_owned_forms(db, current_user.id, page, page_size)
    return FormListResponse(items=forms, total=total, page=page, page_size=page_size)


@router.get("/shared", response_model=SharedFormListResponse)
def list_shared_forms(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = [
        SharedFormItem(
            form=SharedFormSummary(
                id=share.form.id,
                title=share.form.title,
                description=share.form.description,
            ),
            shared_by=share.shared_by.name,
            role=share.role,
            permissions=share.permissions,
            shared_at=share.shared_at,
        )
        for share in form_service.list_shared_with(db, current_user)
    ]
    return SharedFormListResponse(items=items)


@router.get("/{form_id}", response_model=FormDetailResponse)
def get_form(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    access = form_access_or_error(db, form_id, current_user)
    detail = FormDetailResponse.model_validate(access.form)
    return detail.model_copy(
        update={
            "response_count": form_service.count_responses(db, form_id),
            "role": access.role,
            "permissions": access.permissions,
        }
    )


@router.put("/{form_id}", response_model=FormResponse)
def update_form(
    form_id: uuid.UUID,
    payload: FormUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    access = form_access_or_error(db, form_id, current_user, "can_edit")
    if not payload.model_fields_set:
        raise HTTPException(status_code=422, detail="No fields to update")

    try:
        form = form_service.update_form(db, access.form, payload)
    except form_service.FormValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=422, detail="; ".join(exc.errors))

    background_tasks.add_task(handle_form_updated, form.id)
    return form


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_form(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    access = form_access_or_error(db, form_id, current_user, "can_delete")
    form_service.delete_form(db, access.form)
