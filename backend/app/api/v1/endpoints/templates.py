import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import owned_form_or_error
from app.models.template import Template
from app.models.user import User
from app.schemas.forms import FormResponse
from app.schemas.templates import (
    TemplateCategory,
    TemplateCreate,
    TemplateListResponse,
    TemplateResponse,
    TemplateUpdate,
    TemplateUse,
)
from app.services import templates as template_service
from app.services.forms import FormValidationError

router = APIRouter()


def _visible_or_error(template_id: uuid.UUID, user: User, db: Session) -> Template:
    try:
        return template_service.get_visible_template(db, template_id, user)
    except template_service.TemplateNotFound:
        raise HTTPException(status_code=404, detail="Template not found")
    except template_service.TemplateAccessDenied as exc:
        raise HTTPException(status_code=403, detail=str(exc))


def _editable_or_error(template_id: uuid.UUID, user: User, db: Session) -> Template:
    try:
        return template_service.get_editable_template(db, template_id, user)
    except template_service.TemplateNotFound:
        raise HTTPException(status_code=404, detail="Template not found")
    except (template_service.TemplateAccessDenied, template_service.PremadeTemplateReadOnly) as exc:
        raise HTTPException(status_code=403, detail=str(exc))


@router.post("/", response_model=TemplateResponse, status_code=201)
def create_template(
    payload: TemplateCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Save one of the caller's forms as a custom template."""
    form = owned_form_or_error(db, payload.form_id, current_user)
    return template_service.create_from_form(db, form, current_user, payload)


@router.get("/", response_model=TemplateListResponse)
def list_templates(
    category: TemplateCategory | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    templates, total = template_service.list_templates(db, current_user, category, page, page_size)
    return TemplateListResponse(items=templates, total=total, page=page, page_size=page_size)


@router.get("/{template_id}", response_model=TemplateResponse)
def get_template(
    template_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _visible_or_error(template_id, current_user, db)


@router.put("/{template_id}", response_model=TemplateResponse)
def update_template(
    template_id: uuid.UUID,
    payload: TemplateUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = _editable_or_error(template_id, current_user, db)
    return template_service.update_template(db, template, payload)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = _editable_or_error(template_id, current_user, db)
    template_service.delete_template(db, template)


@router.post("/{template_id}/use", response_model=FormResponse, status_code=201)
def use_template(
    template_id: uuid.UUID,
    payload: TemplateUse | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = _visible_or_error(template_id, current_user, db)
    try:
        return template_service.use_template(db, template, current_user, payload or TemplateUse())
    except FormValidationError as exc:
        raise HTTPException(status_code=422, detail="; ".join(exc.errors))
