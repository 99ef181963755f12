import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import owned_form_or_error
from app.models.user import User
from app.models.webhook import Webhook
from app.schemas.webhooks import (
    WebhookCreate,
    WebhookCreatedResponse,
    WebhookDeliveryResult,
    WebhookListResponse,
    WebhookLogs,
    WebhookResponse,
    WebhookUpdate,
)
from app.services import webhooks as webhook_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _owned_or_error(webhook_id: uuid.UUID, user: User, db: Session) -> Webhook:
    try:
        return webhook_service.get_owned_webhook(db, webhook_id, user.id)
    except webhook_service.WebhookNotFound:
        raise HTTPException(status_code=404, detail="Webhook not found")
    except webhook_service.WebhookForbidden as exc:
        raise HTTPException(status_code=403, detail=str(exc))


def _out(webhook: Webhook) -> WebhookResponse:
    out = WebhookResponse.model_validate(webhook)
    return out.model_copy(update={"secret_preview": webhook_service.mask_secret(webhook.secret)})


# ---------------------------------------------------------------------------
# Webhook CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=WebhookCreatedResponse, status_code=201)
def create_webhook(
    payload: WebhookCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Register a webhook. The signing secret is only returned here."""
    owned_form_or_error(db, payload.form_id, current_user)
    webhook = webhook_service.create_webhook(db, current_user.id, payload)
    return WebhookCreatedResponse(**_out(webhook).model_dump(), secret=webhook.secret)


@router.get("/form/{form_id}", response_model=WebhookListResponse)
def list_form_webhooks(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    webhooks = webhook_service.list_form_webhooks(db, form_id)
    return WebhookListResponse(items=[_out(w) for w in webhooks], total=len(webhooks))


@router.get("/{webhook_id}", response_model=WebhookResponse)
def get_webhook(
    webhook_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _out(_owned_or_error(webhook_id, current_user, db))


@router.put("/{webhook_id}", response_model=WebhookResponse)
def update_webhook(
    webhook_id: uuid.UUID,
    payload: WebhookUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    webhook = _owned_or_error(webhook_id, current_user, db)
    return _out(webhook_service.update_webhook(db, webhook, payload))


@router.delete("/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_webhook(
    webhook_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    webhook_service.delete_webhook(db, _owned_or_error(webhook_id, current_user, db))


# ---------------------------------------------------------------------------
# Test delivery and logs
# ---------------------------------------------------------------------------


@router.post("/{webhook_id}/test", response_model=WebhookDeliveryResult)
async def test_webhook(
    webhook_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Deliver a test event right away and report the outcome."""
    webhook = _owned_or_error(webhook_id, current_user, db)
    result = await webhook_service.deliver_to_webhook(
        db,
        webhook,
        webhook_service.TEST_EVENT,
        {
            "message": "This is a test webhook delivery",
            "sent_at": datetime.now(timezone.utc).isoformat(),
        },
    )
    return WebhookDeliveryResult(
        success=result.success,
        status_code=result.status_code,
        attempts=result.attempts,
        error=result.error,
    )


@router.get("/{webhook_id}/logs", response_model=WebhookLogs)
def webhook_logs(
    webhook_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    webhook = _owned_or_error(webhook_id, current_user, db)
    total = (webhook.success_count or 0) + (webhook.failure_count or 0)
    return WebhookLogs(
        webhook_id=webhook.id,
        last_triggered=webhook.last_triggered,
        last_status=webhook.last_status,
        success_count=webhook.success_count or 0,
        failure_count=webhook.failure_count or 0,
        total_deliveries=total,
        success_rate=round((webhook.success_count or 0) / total * 100, 2) if total else 0.0,
    )
