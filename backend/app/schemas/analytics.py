"""Pydantic schemas for response analytics endpoints."""

import uuid
from typing import Any, Literal

from pydantic import BaseModel

TimelineGranularity = Literal["daily", "weekly", "monthly"]

# ---------------------------------------------------------------------------
# Supporting models
# ---------------------------------------------------------------------------


class ChartData(BaseModel):
    """Distribution of answers for a choice or rating field."""

    type: Literal["pie", "bar"]
    labels: list[str]
    data: list[int]
    options: list[Any] | None = None  # configured choices, pie charts only


class NumericStats(BaseModel):
    min: float
    max: float
    avg: str  # two decimals, e.g. "3.50"
    total: float


class TimelineBucket(BaseModel):
    """Submission count for one day, week (Sunday start) or month."""

    period: str  # "2026-02-12" or "2026-02"
    count: int


# ---------------------------------------------------------------------------
# Per-field analytics
# ---------------------------------------------------------------------------


class FieldAnalytics(BaseModel):
    field_id: str
    label: str | None
    type: str | None
    total_responses: int  # eligible responses that answered the field
    eligible_responses: int  # responses submitted after the field was added
    completion_rate: float  # percent, two decimals
    chart_data: ChartData | None = None
    stats: NumericStats | None = None
    unique_count: int | None = None


class FieldAnalyticsResponse(BaseModel):
    form_id: uuid.UUID
    total_responses: int
    fields: dict[str, FieldAnalytics]


class TimelineResponse(BaseModel):
    form_id: uuid.UUID
    granularity: TimelineGranularity
    buckets: list[TimelineBucket]


# ---------------------------------------------------------------------------
# Form-level stats
# ---------------------------------------------------------------------------


class FormStats(BaseModel):
    total_views: int
    unique_views: int  # distinct (ip, user_agent) pairs
    total_responses: int
    unique_responders: int  # distinct (ip, user_agent) pairs
    completion_rate: str  # mean filled-field percentage, e.g. "66.67"
    avg_completion_time: float | None = None
    avg_completion_time_available: bool = False
    respondents_today: int
    respondents_this_week: int
    respondents_this_month: int
