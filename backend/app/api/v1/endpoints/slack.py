import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import owned_form_or_error
from app.models.slack_integration import SlackIntegration
from app.models.user import User
from app.schemas.slack import (
    SlackIntegrationCreate,
    SlackIntegrationResponse,
    SlackIntegrationUpdate,
    SlackTestResult,
)
from app.services import slack as slack_service
from app.services.forms import count_responses

router = APIRouter()


def _integration_or_404(form_id: uuid.UUID, db: Session) -> SlackIntegration:
    try:
        return slack_service.get_integration(db, form_id)
    except slack_service.SlackIntegrationNotFound:
        raise HTTPException(status_code=404, detail="Slack integration not found")


def _out(integration: SlackIntegration) -> SlackIntegrationResponse:
    out = SlackIntegrationResponse.model_validate(integration)
    return out.model_copy(update={"has_bot_token": bool(integration.bot_token)})


@router.post("/forms/{form_id}", response_model=SlackIntegrationResponse, status_code=201)
def save_integration(
    form_id: uuid.UUID,
    payload: SlackIntegrationCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Connect Slack to the form, or replace the existing configuration."""
    owned_form_or_error(db, form_id, current_user)
    integration, created = slack_service.save_integration(db, form_id, current_user.id, payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return _out(integration)


@router.get("/forms/{form_id}", response_model=SlackIntegrationResponse)
def get_integration(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    return _out(_integration_or_404(form_id, db))


@router.put("/forms/{form_id}", response_model=SlackIntegrationResponse)
def update_integration(
    form_id: uuid.UUID,
    payload: SlackIntegrationUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    integration = _integration_or_404(form_id, db)
    try:
        integration = slack_service.update_integration(db, integration, payload)
    except slack_service.SlackNotConfigured as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return _out(integration)


@router.delete("/forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_integration(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    slack_service.delete_integration(db, _integration_or_404(form_id, db))


@router.post("/forms/{form_id}/test", response_model=SlackTestResult)
async def test_integration(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Send a sample message using the current template."""
    form = owned_form_or_error(db, form_id, current_user)
    integration = _integration_or_404(form_id, db)
    text = slack_service.build_message(
        integration,
        form_title=form.title,
        response_count=count_responses(db, form_id),
    )
    try:
        await slack_service.send_message(integration, f"[Test] {text}")
    except slack_service.SlackError as exc:
        slack_service.record_failure(db, integration, str(exc))
        return SlackTestResult(success=False, error=str(exc))
    return SlackTestResult(success=True)
