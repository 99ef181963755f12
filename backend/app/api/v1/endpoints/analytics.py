"""Response analytics API: per-field breakdowns, submission timeline and headline stats."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import form_access_or_error
from app.models.form_response import FormResponse
from app.models.form_view import FormView
from app.models.user import User
from app.schemas.analytics import (
    FieldAnalyticsResponse,
    FormStats,
    TimelineGranularity,
    TimelineResponse,
)
from app.services import analytics

logger = logging.getLogger(__name__)

router = APIRouter()


def _responses(db: Session, form_id: uuid.UUID) -> list[FormResponse]:
    return (
        db.query(FormResponse)
        .filter(FormResponse.form_id == form_id)
        .order_by(FormResponse.submitted_at.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# GET /forms/{form_id}/analytics/fields
# ---------------------------------------------------------------------------


@router.get("/fields", response_model=FieldAnalyticsResponse)
def field_analytics(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Completion and answer distribution per field, counting only responses after the field existed."""
    access = form_access_or_error(db, form_id, current_user, "can_view_responses")
    responses = _responses(db, form_id)
    return FieldAnalyticsResponse(
        form_id=form_id,
        total_responses=len(responses),
        fields=analytics.aggregate(access.form, responses),
    )


# ---------------------------------------------------------------------------
# GET /forms/{form_id}/analytics/timeline
# ---------------------------------------------------------------------------


@router.get("/timeline", response_model=TimelineResponse)
def response_timeline(
    form_id: uuid.UUID,
    granularity: TimelineGranularity = Query("daily"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user, "can_view_responses")
    buckets = analytics.timeline(_responses(db, form_id), granularity)
    return TimelineResponse(form_id=form_id, granularity=granularity, buckets=buckets)


# ---------------------------------------------------------------------------
# GET /forms/{form_id}/analytics/stats
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=FormStats)
def form_stats(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    access = form_access_or_error(db, form_id, current_user, "can_view_responses")
    views = db.query(FormView).filter(FormView.form_id == form_id).all()
    return analytics.form_stats(access.form, _responses(db, form_id), views)
