"""Webhook management and signed delivery.

Each delivery POSTs ``{"event", "form_id", "timestamp", "data"}`` as JSON.
When the webhook has a secret the body is signed with HMAC-SHA256 and the
digest sent as ``X-Formsmith-Signature: sha256=<hex>``. Receivers verify by
recomputing the digest over the raw request body.
"""

import asyncio
import hashlib
import hmac
import json
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.webhook import Webhook
from app.schemas.webhooks import WebhookCreate, WebhookUpdate

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Formsmith-Signature"
EVENT_HEADER = "X-Formsmith-Event"
DELIVERY_HEADER = "X-Formsmith-Delivery"
TEST_EVENT = "webhook.test"


class WebhookError(Exception):
    """Base exception for webhook operations."""


class WebhookNotFound(WebhookError):
    """Raised when a webhook does not exist."""


class WebhookForbidden(WebhookError):
    """Raised when the caller does not own the webhook."""


@dataclass
class DeliveryResult:
    success: bool
    attempts: int
    status_code: int | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Signing and payloads
# ---------------------------------------------------------------------------


def generate_secret() -> str:
    return secrets.token_hex(32)


def mask_secret(secret: str | None) -> str | None:
    if not secret:
        return None
    return f"****{secret[-4:]}"


def sign_payload(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(secret: str, body: bytes, signature: str) -> bool:
    return hmac.compare_digest(sign_payload(secret, body), signature)


def build_payload(event: str, form_id: uuid.UUID, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "event": event,
        "form_id": str(form_id),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def encode_payload(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":"), default=str).encode("utf-8")


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


def _is_retryable(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


async def deliver(
    url: str,
    event: str,
    payload: dict[str, Any],
    *,
    secret: str | None = None,
    max_retries: int = 0,
    retry_delay_ms: int = 0,
) -> DeliveryResult:
    """POST one payload, retrying transport errors, 5xx and 429.

    Makes at most ``max_retries + 1`` attempts, waiting ``retry_delay_ms``
    times the attempt number between them. Never raises.
    """
    body = encode_payload(payload)
    headers = {
        "Content-Type": "application/json",
        "User-Agent": "Formsmith-Webhooks/1.0",
        EVENT_HEADER: event,
        DELIVERY_HEADER: str(uuid.uuid4()),
    }
    if secret:
        headers[SIGNATURE_HEADER] = sign_payload(secret, body)

    attempts = 0
    last_status: int | None = None
    last_error: str | None = None

    async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS) as client:
        while attempts <= max_retries:
            attempts += 1
            try:
                response = await client.post(url, content=body, headers=headers)
                response.raise_for_status()
                logger.info("Webhook %s delivered to %s (attempt %d)", event, url, attempts)
                return DeliveryResult(success=True, attempts=attempts, status_code=response.status_code)
            except httpx.HTTPStatusError as exc:
                last_status = exc.response.status_code
                last_error = f"HTTP {last_status}"
                if not _is_retryable(last_status):
                    break
            except httpx.RequestError as exc:
                last_status = None
                last_error = str(exc) or exc.__class__.__name__

            if attempts <= max_retries:
                logger.warning(
                    "Webhook %s to %s failed (%s), retrying in %dms",
                    event,
                    url,
                    last_error,
                    retry_delay_ms * attempts,
                )
                await asyncio.sleep(retry_delay_ms * attempts / 1000)

    logger.error("Webhook %s to %s failed after %d attempts: %s", event, url, attempts, last_error)
    return DeliveryResult(success=False, attempts=attempts, status_code=last_status, error=last_error)


def record_delivery(db: Session, webhook: Webhook, result: DeliveryResult) -> None:
    webhook.last_triggered = datetime.now(timezone.utc)
    if result.success:
        webhook.last_status = "success"
        webhook.success_count = (webhook.success_count or 0) + 1
    else:
        webhook.last_status = "failed"
        webhook.failure_count = (webhook.failure_count or 0) + 1
    db.commit()


async def deliver_to_webhook(
    db: Session, webhook: Webhook, event: str, data: dict[str, Any]
) -> DeliveryResult:
    payload = build_payload(event, webhook.form_id, data)
    result = await deliver(
        webhook.url,
        event,
        payload,
        secret=webhook.secret,
        max_retries=webhook.max_retries,
        retry_delay_ms=webhook.retry_delay_ms,
    )
    record_delivery(db, webhook, result)
    return result


async def dispatch_event(
    db: Session, form_id: uuid.UUID, event: str, data: dict[str, Any]
) -> list[DeliveryResult]:
    """Deliver an event to every active webhook on the form subscribed to it."""
    webhooks = (
        db.query(Webhook)
        .filter(Webhook.form_id == form_id, Webhook.active.is_(True))
        .order_by(Webhook.created_at)
        .all()
    )
    results = []
    for webhook in webhooks:
        if event not in (webhook.events or []):
            continue
        results.append(await deliver_to_webhook(db, webhook, event, data))
    return results


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def create_webhook(db: Session, owner_id: uuid.UUID, data: WebhookCreate) -> Webhook:
    webhook = Webhook(
        form_id=data.form_id,
        owner_id=owner_id,
        url=data.url,
        events=list(dict.fromkeys(data.events)),
        secret=data.secret or generate_secret(),
        description=data.description,
        max_retries=data.max_retries,
        retry_delay_ms=data.retry_delay_ms,
    )
    db.add(webhook)
    db.commit()
    db.refresh(webhook)
    logger.info("Webhook %s created for form %s", webhook.id, webhook.form_id)
    return webhook


def get_owned_webhook(db: Session, webhook_id: uuid.UUID, user_id: uuid.UUID) -> Webhook:
    webhook = db.get(Webhook, webhook_id)
    if webhook is None:
        raise WebhookNotFound(f"Webhook {webhook_id} not found")
    if webhook.owner_id != user_id:
        raise WebhookForbidden("Only the webhook owner can do this")
    return webhook


def update_webhook(db: Session, webhook: Webhook, data: WebhookUpdate) -> Webhook:
    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    if "events" in updates:
        updates["events"] = list(dict.fromkeys(updates["events"]))
    for key, value in updates.items():
        setattr(webhook, key, value)
    db.commit()
    db.refresh(webhook)
    return webhook


def delete_webhook(db: Session, webhook: Webhook) -> None:
    webhook_id = webhook.id
    db.delete(webhook)
    db.commit()
    logger.info("Webhook %s deleted", webhook_id)


def list_form_webhooks(db: Session, form_id: uuid.UUID) -> list[Webhook]:
    return db.query(Webhook).filter(Webhook.form_id == form_id).order_by(Webhook.created_at.desc()).all()
