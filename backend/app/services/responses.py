"""Response collection: answer validation, storage, listing and CSV export."""

import csv
import io
import logging
import math
import re
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.models.form import Form
from app.models.form_response import FormResponse
from app.schemas.responses import AnswerIn, ResponseSubmission
from app.services.analytics import is_blank

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class SubmissionError(Exception):
    """Raised when submitted answers do not satisfy the form."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class ResponderEmailRequired(SubmissionError):
    def __init__(self) -> None:
        super().__init__(["Please provide your email address."])


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _option_values(options: list | None) -> set[str]:
    values: set[str] = set()
    for option in options or []:
        if isinstance(option, dict):
            for key in ("value", "label", "id"):
                if option.get(key) is not None:
                    values.add(str(option[key]))
        else:
            values.add(str(option))
    return values


def _validate_value(field: dict, value: Any) -> str | None:
    field_type = field.get("type")
    label = field.get("label", field.get("id"))

    if field_type == "number":
        try:
            number = float(value)
        except (TypeError, ValueError):
            return f"'{label}' must be a number"
        if isinstance(value, bool) or not math.isfinite(number):
            return f"'{label}' must be a number"
        rules = field.get("validation") or {}
        if rules.get("min") is not None and number < rules["min"]:
            return f"'{label}' must be at least {rules['min']}"
        if rules.get("max") is not None and number > rules["max"]:
            return f"'{label}' must be at most {rules['max']}"

    elif field_type == "email":
        if not isinstance(value, str) or not _EMAIL_PATTERN.match(value.strip()):
            return f"'{label}' must be a valid email address"

    elif field_type in ("radio", "dropdown"):
        options = _option_values(field.get("options"))
        if options and str(value) not in options:
            return f"'{label}': {value!r} is not one of the options"

    elif field_type in ("short_text", "long_text") and isinstance(value, str):
        rules = field.get("validation") or {}
        if rules.get("min_length") is not None and len(value) < rules["min_length"]:
            return f"'{label}' must be at least {rules['min_length']} characters"
        if rules.get("max_length") is not None and len(value) > rules["max_length"]:
            return f"'{label}' must be at most {rules['max_length']} characters"
        pattern = rules.get("pattern")
        if pattern:
            try:
                matched = re.fullmatch(pattern, value) is not None
            except re.error:
                logger.warning("Field %s has an invalid pattern %r", field.get("id"), pattern)
                matched = True
            if not matched:
                return rules.get("pattern_error_message") or f"'{label}' has an invalid format"

    return None


def clean_answers(form: Form, answers: list[AnswerIn]) -> list[dict]:
    """Validate answers against the form's fields.

    Answers to unknown fields are dropped. Returns the stored answer list
    in submission order; raises SubmissionError listing every problem.
    """
    fields_by_id = {f["id"]: f for f in form.fields or [] if isinstance(f, dict) and f.get("id")}
    errors: list[str] = []
    cleaned: list[dict] = []
    answered: set[str] = set()

    for answer in answers:
        field = fields_by_id.get(answer.field_id)
        if field is None or answer.field_id in answered:
            continue
        answered.add(answer.field_id)
        if is_blank(answer.value):
            cleaned.append({"field_id": answer.field_id, "value": answer.value})
            continue
        error = _validate_value(field, answer.value)
        if error:
            errors.append(error)
        cleaned.append({"field_id": answer.field_id, "value": answer.value})

    filled = {a["field_id"] for a in cleaned if not is_blank(a["value"])}
    for field_id, field in fields_by_id.items():
        if field.get("required") and field_id not in filled:
            errors.append(f"'{field.get('label', field_id)}' is required")

    if errors:
        raise SubmissionError(errors)
    return cleaned


def responder_email(form: Form, answers: list[dict]) -> str | None:
    """Email taken from the answer to the form's first email field."""
    email_field = next(
        (f for f in form.fields or [] if isinstance(f, dict) and f.get("type") == "email"),
        None,
    )
    if email_field is None:
        return None
    for answer in answers:
        if answer["field_id"] == email_field.get("id") and not is_blank(answer["value"]):
            return str(answer["value"]).strip()
    return None


def wants_copy(form: Form, requested: bool) -> bool:
    mode = (form.settings or {}).get("send_response_copy", "off")
    return mode == "always" or (mode == "requested" and requested)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


def create_response(
    db: Session,
    form: Form,
    submission: ResponseSubmission,
    ip: str | None,
    user_agent: str | None,
) -> FormResponse:
    answers = clean_answers(form, submission.answers)
    email = responder_email(form, answers)
    if email is None and (form.settings or {}).get("collect_emails") == "responder_input":
        raise ResponderEmailRequired()

    response = FormResponse(
        form_id=form.id,
        answers=answers,
        ip=ip,
        user_agent=user_agent,
        responder_email=email,
        send_copy=wants_copy(form, submission.send_copy) and email is not None,
        submitted_at=datetime.now(timezone.utc),
    )
    db.add(response)
    db.commit()
    db.refresh(response)
    logger.info("Response %s stored for form %s (%d answers)", response.id, form.id, len(answers))
    return response


def get_response(db: Session, form_id: uuid.UUID, response_id: uuid.UUID) -> FormResponse | None:
    response = db.get(FormResponse, response_id)
    if response is None or response.form_id != form_id:
        return None
    return response


def _matches(response: FormResponse, needle: str) -> bool:
    for answer in response.answers or []:
        value = answer.get("value")
        values = value if isinstance(value, list) else [value]
        if any(v is not None and needle in str(v).lower() for v in values):
            return True
    return False


def list_responses(
    db: Session,
    form_id: uuid.UUID,
    page: int = 1,
    page_size: int = 10,
    sort: str = "desc",
    search: str | None = None,
) -> tuple[list[FormResponse], int]:
    """Page through a form's responses ordered by submission time.

    ``search`` is a case-insensitive substring match on answer values.
    """
    order = FormResponse.submitted_at.asc() if sort == "asc" else FormResponse.submitted_at.desc()
    query = db.query(FormResponse).filter(FormResponse.form_id == form_id).order_by(order)

    if search:
        needle = search.lower()
        matched = [r for r in query.all() if _matches(r, needle)]
        start = (page - 1) * page_size
        return matched[start : start + page_size], len(matched)

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return items, total


def delete_response(db: Session, response: FormResponse) -> None:
    response_id = response.id
    db.delete(response)
    db.commit()
    logger.info("Response %s deleted", response_id)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def cell_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(cell_value(v) for v in value)
    if isinstance(value, dict):
        return "; ".join(f"{k}: {cell_value(v)}" for k, v in value.items())
    return str(value)


def _unique_title(title: str, field_id: str, taken: set[str]) -> str:
    candidate = title
    if candidate in taken:
        candidate = f"{title} ({field_id})"
    suffix = 2
    while candidate in taken:
        candidate = f"{title} ({field_id}) {suffix}"
        suffix += 1
    taken.add(candidate)
    return candidate


def export_csv(form: Form, responses: list[FormResponse]) -> str:
    """One row per response, one column per field.

    Columns are headed by field label; a label that is already taken gets
    the field id appended. Answers to fields no longer on the form get a
    column named by field id.
    """
    titles: list[str] = ["submitted_at", "Responder Email", "Send Copy Opt-in"]
    taken = set(titles)
    field_columns: dict[str, str] = {}
    for field in form.fields or []:
        field_id = field.get("id") if isinstance(field, dict) else None
        if not field_id or field_id in field_columns:
            continue
        field_columns[field_id] = _unique_title(field.get("label") or field_id, field_id, taken)

    rows: list[dict[str, str]] = []
    for response in responses:
        row = {
            "submitted_at": response.submitted_at.isoformat() if response.submitted_at else "",
            "Responder Email": response.responder_email or "",
            "Send Copy Opt-in": "yes" if response.send_copy else "",
        }
        seen: set[str] = set()
        for answer in response.answers or []:
            field_id = answer.get("field_id")
            if not field_id or field_id in seen:
                continue
            seen.add(field_id)
            if field_id not in field_columns:
                field_columns[field_id] = _unique_title(str(field_id), str(field_id), taken)
            row[field_columns[field_id]] = cell_value(answer.get("value"))
        rows.append(row)

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=titles + list(field_columns.values()), restval="")
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()
