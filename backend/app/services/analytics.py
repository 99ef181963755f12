"""Response analytics: per-field summaries, submission timelines and form stats.

All functions here are pure. They read already-loaded rows (or any objects
with the same attributes) and never touch the session, so the same inputs
always produce the same JSON.

Inputs are read by attribute:

* form: ``fields`` (list of field dicts with ``id``, ``type``, ``label``,
  ``options`` and optional ``created_at``) and ``updated_at``
* response: ``answers`` (list of ``{"field_id", "value"}`` dicts),
  ``submitted_at``, ``ip`` and ``user_agent``
* view: ``ip`` and ``user_agent``
"""

import json
import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Sequence

from app.schemas.analytics import (
    ChartData,
    FieldAnalytics,
    FormStats,
    NumericStats,
    TimelineBucket,
)

logger = logging.getLogger(__name__)

CHOICE_FIELD_TYPES = frozenset({"radio", "dropdown", "checkbox"})
DEFAULT_RATING_SCALE = ("1", "2", "3", "4", "5")
TIMELINE_GRANULARITIES = ("daily", "weekly", "monthly")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_utc(value: Any) -> datetime | None:
    """Coerce a datetime or ISO-8601 string to an aware UTC datetime.

    Naive datetimes are taken to be UTC already. Anything unparseable
    yields None.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Ignoring unparseable timestamp %r", value)
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _label(value: Any) -> str:
    """Render an answer value as a chart label."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _identity(value: Any) -> str:
    # Distinguishes 1 from "1" and works for unhashable values
    return json.dumps(value, sort_keys=True, default=str)


def is_blank(value: Any) -> bool:
    """True for a missing or empty answer value (None, "", [] or {})."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _parse_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _find_answer(response: Any, field_id: str) -> dict | None:
    for answer in getattr(response, "answers", None) or []:
        if isinstance(answer, dict) and answer.get("field_id") == field_id:
            return answer
    return None


def _submitted_at(response: Any) -> datetime | None:
    return _as_utc(getattr(response, "submitted_at", None))


def _visitor_key(row: Any) -> tuple[str, str]:
    return (getattr(row, "ip", None) or "", getattr(row, "user_agent", None) or "")


# ---------------------------------------------------------------------------
# Field eligibility
# ---------------------------------------------------------------------------


def resolve_field_added_at(field: dict, form: Any) -> datetime | None:
    """When the field joined the form.

    Uses the field's own ``created_at``; fields saved before stamping
    existed fall back to the form's ``updated_at``. None means the time is
    unknown and every response counts as eligible.
    """
    added_at = _as_utc(field.get("created_at"))
    if added_at is not None:
        return added_at
    return _as_utc(getattr(form, "updated_at", None))


def _is_eligible(response: Any, added_at: datetime | None) -> bool:
    if added_at is None:
        return True
    submitted_at = _submitted_at(response)
    # Undated responses cannot be shown to predate the field
    return submitted_at is None or submitted_at >= added_at


# ---------------------------------------------------------------------------
# Per-field aggregation
# ---------------------------------------------------------------------------


def _analyze_field(field: dict, added_at: datetime | None, responses: Sequence[Any]) -> FieldAnalytics:
    field_id = field["id"]
    field_type = field.get("type")
    counts_choices = field_type in CHOICE_FIELD_TYPES or field_type == "rating"

    eligible = 0
    answered = 0
    counts: dict[str, int] = {}
    seen: set[str] = set()
    values: list[Any] = []

    for response in responses:
        if not _is_eligible(response, added_at):
            continue
        eligible += 1

        answer = _find_answer(response, field_id)
        if answer is None or is_blank(answer.get("value")):
            continue
        answered += 1
        value = answer["value"]

        if counts_choices:
            items = value if isinstance(value, (list, tuple)) else [value]
            for item in items:
                key = _label(item)
                counts[key] = counts.get(key, 0) + 1
                seen.add(_identity(item))
        else:
            seen.add(_identity(value))
            values.append(value)

    analytics = FieldAnalytics(
        field_id=field_id,
        label=field.get("label"),
        type=field_type,
        total_responses=answered,
        eligible_responses=eligible,
        completion_rate=round(answered / eligible * 100, 2) if eligible else 0.0,
    )

    if field_type in CHOICE_FIELD_TYPES:
        analytics.chart_data = ChartData(
            type="pie",
            labels=list(counts),
            data=list(counts.values()),
            options=list(field.get("options") or []),
        )
    elif field_type == "rating":
        scale = [_label(option) for option in (field.get("options") or DEFAULT_RATING_SCALE)]
        analytics.chart_data = ChartData(
            type="bar",
            labels=scale,
            data=[counts.get(point, 0) for point in scale],
        )
    elif field_type == "number":
        numbers = [n for n in map(_parse_number, values) if n is not None]
        if numbers:
            total = sum(numbers)
            analytics.stats = NumericStats(
                min=min(numbers),
                max=max(numbers),
                avg=f"{total / len(numbers):.2f}",
                total=total,
            )
    else:
        analytics.unique_count = len(seen)

    return analytics


def aggregate(form: Any, responses: Sequence[Any]) -> dict[str, FieldAnalytics]:
    """Summarise every field on the form, keyed by field id in form order.

    Only responses submitted on or after a field was added count towards
    that field. Answers to fields no longer on the form are ignored.
    """
    results: dict[str, FieldAnalytics] = {}
    for field in getattr(form, "fields", None) or []:
        if not isinstance(field, dict) or not field.get("id"):
            continue
        added_at = resolve_field_added_at(field, form)
        results[field["id"]] = _analyze_field(field, added_at, responses)
    return results


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


def _period_key(moment: datetime, granularity: str) -> str:
    day = moment.date()
    if granularity == "daily":
        return day.isoformat()
    if granularity == "weekly":
        # Weeks start on Sunday; weekday() is 0 for Monday
        return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()
    return day.strftime("%Y-%m")


def timeline(responses: Iterable[Any], granularity: str = "daily") -> list[TimelineBucket]:
    """Count submissions per UTC day, Sunday-start week or month.

    Raises ValueError for an unknown granularity.
    """
    if granularity not in TIMELINE_GRANULARITIES:
        raise ValueError(
            f"Unknown granularity {granularity!r}; expected one of {', '.join(TIMELINE_GRANULARITIES)}"
        )

    counts: dict[str, int] = defaultdict(int)
    for response in responses:
        submitted_at = _submitted_at(response)
        if submitted_at is None:
            continue
        counts[_period_key(submitted_at, granularity)] += 1

    # ISO keys sort chronologically
    return [TimelineBucket(period=period, count=counts[period]) for period in sorted(counts)]


# ---------------------------------------------------------------------------
# Form stats
# ---------------------------------------------------------------------------


def _filled_fraction(response: Any, field_ids: list[str]) -> float:
    if not field_ids:
        return 0.0
    filled = 0
    for field_id in field_ids:
        answer = _find_answer(response, field_id)
        if answer is not None and not is_blank(answer.get("value")):
            filled += 1
    return filled / len(field_ids)


def form_stats(
    form: Any,
    responses: Sequence[Any],
    views: Sequence[Any] = (),
    now: datetime | None = None,
) -> FormStats:
    """Headline numbers for a form.

    Visitor uniqueness is approximated by distinct (ip, user_agent) pairs.
    Completion time is not tracked, so ``avg_completion_time`` is always None.
    """
    now = _as_utc(now) or datetime.now(timezone.utc)
    field_ids = [
        field["id"]
        for field in getattr(form, "fields", None) or []
        if isinstance(field, dict) and field.get("id")
    ]

    if responses:
        mean = sum(_filled_fraction(r, field_ids) for r in responses) / len(responses)
        completion_rate = f"{mean * 100:.2f}"
    else:
        completion_rate = "0.00"

    timestamps = [t for t in map(_submitted_at, responses) if t is not None]

    def _since(days: int) -> int:
        cutoff = now - timedelta(days=days)
        return sum(1 for t in timestamps if t >= cutoff)

    return FormStats(
        total_views=len(views),
        unique_views=len({_visitor_key(v) for v in views}),
        total_responses=len(responses),
        unique_responders=len({_visitor_key(r) for r in responses}),
        completion_rate=completion_rate,
        avg_completion_time=None,
        avg_completion_time_available=False,
        respondents_today=_since(1),
        respondents_this_week=_since(7),
        respondents_this_month=_since(30),
    )
