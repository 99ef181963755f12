"""Form templates: premade blueprints plus templates users save from their forms."""

import logging
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.models.form import Form
from app.models.template import Template
from app.models.user import User
from app.schemas.forms import FieldDefinition, FormCreate, FormSettings
from app.schemas.templates import TemplateCreate, TemplateUpdate, TemplateUse
from app.services.forms import create_form

logger = logging.getLogger(__name__)


class TemplateError(Exception):
    """Base exception for template operations."""


class TemplateNotFound(TemplateError):
    """Raised when a template does not exist."""


class TemplateAccessDenied(TemplateError):
    """Raised when a user touches someone else's custom template."""


class PremadeTemplateReadOnly(TemplateError):
    """Raised when trying to change or delete a premade template."""


def strip_field_stamps(fields: list[dict]) -> list[dict]:
    """Copy fields without ``created_at`` so a new form stamps them afresh."""
    return [
        {key: value for key, value in field.items() if key != "created_at"}
        for field in fields or []
        if isinstance(field, dict)
    ]


def list_templates(
    db: Session,
    user: User,
    category: str | None = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[Template], int]:
    """Premade templates plus the user's own, premade first then most used."""
    query = select(Template).where(or_(Template.is_premade.is_(True), Template.created_by_id == user.id))
    if category:
        query = query.where(Template.category == category)

    total = db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
    templates = (
        db.execute(
            query.order_by(
                Template.is_premade.desc(),
                Template.usage_count.desc(),
                Template.created_at.desc(),
            )
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        .scalars()
        .all()
    )
    return list(templates), total


def get_visible_template(db: Session, template_id: uuid.UUID, user: User) -> Template:
    template = db.get(Template, template_id)
    if template is None:
        raise TemplateNotFound(f"Template {template_id} not found")
    if not template.is_premade and template.created_by_id != user.id:
        raise TemplateAccessDenied("Access denied")
    return template


def get_editable_template(db: Session, template_id: uuid.UUID, user: User) -> Template:
    template = db.get(Template, template_id)
    if template is None:
        raise TemplateNotFound(f"Template {template_id} not found")
    if template.is_premade:
        raise PremadeTemplateReadOnly("Premade templates cannot be changed")
    if template.created_by_id != user.id:
        raise TemplateAccessDenied("Access denied")
    return template


def create_from_form(db: Session, form: Form, user: User, data: TemplateCreate) -> Template:
    template = Template(
        name=data.name,
        description=data.description,
        category=data.category,
        thumbnail=data.thumbnail,
        is_premade=False,
        fields=strip_field_stamps(form.fields),
        settings=dict(form.settings or {}),
        created_by_id=user.id,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info("Template %s saved from form %s", template.id, form.id)
    return template


def update_template(db: Session, template: Template, data: TemplateUpdate) -> Template:
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(template, key, value)
    db.commit()
    db.refresh(template)
    return template


def delete_template(db: Session, template: Template) -> None:
    template_id = template.id
    db.delete(template)
    db.commit()
    logger.info("Template %s deleted", template_id)


def use_template(db: Session, template: Template, user: User, data: TemplateUse) -> Form:
    """Create a new form for ``user`` from the template and count the use."""
    form = create_form(
        db,
        user,
        FormCreate(
            title=data.title or template.name,
            description=data.description if data.description is not None else template.description,
            fields=[FieldDefinition.model_validate(f) for f in strip_field_stamps(template.fields)],
            settings=FormSettings.model_validate(template.settings or {}),
            source_template_id=template.id,
        ),
    )
    template.usage_count = (template.usage_count or 0) + 1
    db.commit()
    logger.info("Template %s used for form %s", template.id, form.id)
    return form
