"""Form service: field preparation, CRUD helpers and view logging."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.form_share import FormShare
from app.models.form_view import FormView
from app.models.user import User
from app.schemas.forms import FieldDefinition, FormCreate, FormSettings, FormUpdate, GeneralKind

logger = logging.getLogger(__name__)

CHOICE_TYPES_REQUIRING_OPTIONS = frozenset({"radio", "dropdown"})


class FormValidationError(Exception):
    """Raised when a form definition is structurally invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


# ---------------------------------------------------------------------------
# Field preparation
# ---------------------------------------------------------------------------


def new_field_id() -> str:
    return f"f_{uuid.uuid4().hex[:10]}"


def prepare_fields(
    fields: list[FieldDefinition],
    existing: list[dict] | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """Turn validated field definitions into the JSON stored on the form.

    Missing ids are generated. A field whose id already exists on the form
    keeps its original ``created_at``; new fields keep a supplied stamp,
    capped at ``now``, or get ``now``. Raises FormValidationError for
    duplicate ids or choice fields without options.
    """
    now = now or datetime.now(timezone.utc)
    previous_stamps = {
        f["id"]: f.get("created_at")
        for f in existing or []
        if isinstance(f, dict) and f.get("id") and f.get("created_at")
    }

    errors: list[str] = []
    seen: set[str] = set()
    prepared: list[dict] = []

    for index, field in enumerate(fields):
        data = field.model_dump(mode="json", exclude_none=True)
        field_id = data.get("id") or new_field_id()
        if field_id in seen:
            errors.append(f"Field {index}: duplicate id {field_id!r}")
        seen.add(field_id)
        data["id"] = field_id

        if field.type in CHOICE_TYPES_REQUIRING_OPTIONS and not field.options:
            errors.append(f"Field {index} ('{field.label}'): {field.type} requires at least 1 option")

        supplied = field.created_at
        if supplied is not None:
            if supplied.tzinfo is None:
                supplied = supplied.replace(tzinfo=timezone.utc)
            supplied = min(supplied, now)
        data["created_at"] = previous_stamps.get(field_id) or (supplied or now).isoformat()
        prepared.append(data)

    if errors:
        raise FormValidationError(errors)
    return prepared


def _kind_columns(details) -> tuple[str, dict]:
    payload = details.model_dump(mode="json", exclude={"kind"})
    return details.kind, payload


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def create_form(db: Session, owner: User, data: FormCreate) -> Form:
    kind, kind_details = _kind_columns(data.details)
    form = Form(
        owner_id=owner.id,
        title=data.title,
        description=data.description,
        kind=kind,
        kind_details=kind_details,
        fields=prepare_fields(data.fields),
        settings=data.settings.model_dump(mode="json"),
        logo=data.logo,
        header_image=data.header_image,
        source_template_id=data.source_template_id,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("Form %s created by %s with %d fields", form.id, owner.id, len(form.fields))
    return form


def update_form(db: Session, form: Form, data: FormUpdate) -> Form:
    """Apply an editor update. Fields and settings are replaced wholesale."""
    updates = data.model_dump(exclude_unset=True)

    for attr in ("title", "description", "logo", "header_image"):
        if attr in updates:
            setattr(form, attr, updates[attr])

    if data.details is not None:
        form.kind, form.kind_details = _kind_columns(data.details)
    elif "details" in updates:
        form.kind, form.kind_details = _kind_columns(GeneralKind())

    if data.fields is not None:
        form.fields = prepare_fields(data.fields, existing=form.fields)

    if data.settings is not None:
        form.settings = data.settings.model_dump(mode="json")
    elif "settings" in updates:
        form.settings = FormSettings().model_dump(mode="json")

    db.commit()
    db.refresh(form)
    logger.info("Form %s updated", form.id)
    return form


def list_owned_forms(
    db: Session, owner_id: uuid.UUID, page: int, page_size: int
) -> tuple[list[Form], int]:
    base = select(Form).where(Form.owner_id == owner_id)
    total = db.execute(select(func.count()).select_from(base.subquery())).scalar_one()
    forms = (
        db.execute(
            base.order_by(Form.updated_at.desc(), Form.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        .scalars()
        .all()
    )
    return list(forms), total


def list_shared_with(db: Session, user: User) -> list[FormShare]:
    """Non-expired shares granted to the user, newest first."""
    shares = (
        db.query(FormShare)
        .filter(FormShare.shared_with_id == user.id)
        .order_by(FormShare.shared_at.desc())
        .all()
    )
    return [share for share in shares if not share.is_expired]


def count_responses(db: Session, form_id: uuid.UUID) -> int:
    return db.execute(
        select(func.count()).select_from(FormResponse).where(FormResponse.form_id == form_id)
    ).scalar_one()


def delete_form(db: Session, form: Form) -> None:
    form_id = form.id
    db.delete(form)
    db.commit()
    logger.info("Form %s deleted", form_id)


def record_view(db: Session, form: Form, ip: str | None, user_agent: str | None) -> FormView:
    view = FormView(form_id=form.id, ip=ip, user_agent=user_agent)
    db.add(view)
    db.commit()
    return view
