"""Slack notifications for form events.

Messages go to an incoming-webhook URL when one is configured, otherwise
through ``chat.postMessage`` with the bot token. Message templates use
``{{name}}`` placeholders, optionally with a fallback: ``{{name|default}}``.

Available placeholders: formTitle, responseCount, submittedAt.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.slack_integration import DEFAULT_SLACK_MESSAGE, SlackIntegration
from app.schemas.slack import SlackIntegrationCreate, SlackIntegrationUpdate
from app.services.error_log import append_error
from app.services.notifications import answer_lines

logger = logging.getLogger(__name__)

# Matches {{name}} or {{name|default}}
_PLACEHOLDER = re.compile(r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*(?:\|([^}]*))?\}\}")

TEMPLATE_VARIABLES = ("formTitle", "responseCount", "submittedAt")


class SlackError(Exception):
    """Base exception for Slack delivery."""


class SlackNotConfigured(SlackError):
    """Raised when an integration has neither a webhook URL nor a bot token and channel."""


class SlackIntegrationNotFound(SlackError):
    """Raised when a form has no Slack integration."""


# ---------------------------------------------------------------------------
# Message rendering
# ---------------------------------------------------------------------------


def extract_placeholders(template: str) -> list[str]:
    return sorted({match.group(1) for match in _PLACEHOLDER.finditer(template)})


def render_template(template: str, variables: dict[str, Any]) -> str:
    """Substitute ``{{name}}`` placeholders.

    Unknown names use their inline default when given, and are left
    untouched otherwise so a typo shows up in the channel.
    """

    def _replace(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        value = variables.get(name)
        if value is None or value == "":
            return default if default is not None else match.group(0)
        return str(value)

    return _PLACEHOLDER.sub(_replace, template)


def build_message(
    integration: SlackIntegration,
    *,
    form_title: str,
    response_count: int,
    submitted_at: datetime | None = None,
    fields: list[dict] | None = None,
    answers: list[dict] | None = None,
) -> str:
    submitted_at = submitted_at or datetime.now(timezone.utc)
    text = render_template(
        integration.message_template or DEFAULT_SLACK_MESSAGE,
        {
            "formTitle": form_title,
            "responseCount": response_count,
            "submittedAt": submitted_at.strftime("%Y-%m-%d %H:%M UTC"),
        },
    )

    mentions = " ".join(f"<@{user}>" for user in integration.mention_users or [])
    if mentions:
        text = f"{mentions} {text}"

    if integration.include_answers and answers:
        lines = answer_lines(fields or [], answers)
        if lines:
            text += "\n" + "\n".join(f"• {line}" for line in lines)
    return text


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


async def send_message(integration: SlackIntegration, text: str) -> None:
    """Post a message. Raises SlackError on any failure."""
    if integration.webhook_url:
        url = integration.webhook_url
        payload: dict[str, Any] = {"text": text}
        headers: dict[str, str] = {}
    elif integration.bot_token and integration.channel:
        url = f"{settings.SLACK_API_BASE_URL}/chat.postMessage"
        payload = {"channel": integration.channel, "text": text}
        headers = {"Authorization": f"Bearer {integration.bot_token}"}
    else:
        raise SlackNotConfigured("Slack integration has no webhook URL or bot token")

    try:
        async with httpx.AsyncClient(timeout=settings.SLACK_TIMEOUT_SECONDS) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error("Slack returned %d for form %s", exc.response.status_code, integration.form_id)
        raise SlackError(f"Slack API error: {exc.response.status_code}") from exc
    except httpx.RequestError as exc:
        logger.error("Slack request failed for form %s: %s", integration.form_id, exc)
        raise SlackError(f"Slack request failed: {exc}") from exc

    if not integration.webhook_url:
        # Web API answers 200 with {"ok": false} on application errors
        data = response.json()
        if not data.get("ok", False):
            raise SlackError(f"Slack API error: {data.get('error', 'unknown_error')}")


def record_success(db: Session, integration: SlackIntegration) -> None:
    integration.notification_count = (integration.notification_count or 0) + 1
    integration.last_notified_at = datetime.now(timezone.utc)
    db.commit()


def record_failure(db: Session, integration: SlackIntegration, message: str) -> None:
    integration.error_count = (integration.error_count or 0) + 1
    integration.error_log = append_error(integration.error_log, message)
    db.commit()


async def notify(
    db: Session,
    integration: SlackIntegration,
    event: str,
    **message_args: Any,
) -> bool:
    """Send the event notification if the integration wants it.

    Returns True when a message was delivered. Failures are recorded on the
    integration and never raised.
    """
    if not integration.active or event not in (integration.notify_on or []):
        return False

    text = build_message(integration, **message_args)
    try:
        await send_message(integration, text)
    except SlackError as exc:
        logger.warning("Slack notification for form %s failed: %s", integration.form_id, exc)
        record_failure(db, integration, str(exc))
        return False

    record_success(db, integration)
    logger.info("Slack notified for form %s (%s)", integration.form_id, event)
    return True


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def get_integration(db: Session, form_id: uuid.UUID) -> SlackIntegration:
    integration = db.query(SlackIntegration).filter(SlackIntegration.form_id == form_id).first()
    if integration is None:
        raise SlackIntegrationNotFound(f"No Slack integration for form {form_id}")
    return integration


def save_integration(
    db: Session, form_id: uuid.UUID, owner_id: uuid.UUID, data: SlackIntegrationCreate
) -> tuple[SlackIntegration, bool]:
    """Create the form's integration, or replace its configuration.

    Returns the integration and whether it was newly created. Delivery
    counters and the error log survive a reconfiguration.
    """
    values = data.model_dump()
    values["message_template"] = values.get("message_template") or DEFAULT_SLACK_MESSAGE

    integration = db.query(SlackIntegration).filter(SlackIntegration.form_id == form_id).first()
    created = integration is None
    if created:
        integration = SlackIntegration(form_id=form_id, owner_id=owner_id, **values)
        db.add(integration)
    else:
        for key, value in values.items():
            setattr(integration, key, value)
    db.commit()
    db.refresh(integration)
    logger.info("Slack integration %s for form %s", "created" if created else "reconfigured", form_id)
    return integration, created


def update_integration(
    db: Session, integration: SlackIntegration, data: SlackIntegrationUpdate
) -> SlackIntegration:
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(integration, key, value)
    if not integration.webhook_url and not (integration.bot_token and integration.channel):
        db.rollback()
        raise SlackNotConfigured("Provide webhook_url, or bot_token together with channel")
    db.commit()
    db.refresh(integration)
    return integration


def delete_integration(db: Session, integration: SlackIntegration) -> None:
    form_id = integration.form_id
    db.delete(integration)
    db.commit()
    logger.info("Slack integration removed from form %s", form_id)
