"""Post-submission side effects, run as background tasks.

Runs after the response is committed and the HTTP reply has gone out, in
its own session. Each integration is isolated: one failing never stops
the others and never affects the stored response.
"""

import logging
import uuid

from sqlalchemy import func, select
from starlette.concurrency import run_in_threadpool

from app.core.database import SessionLocal
from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.google_sheets_integration import GoogleSheetsIntegration
from app.models.slack_integration import SlackIntegration
from app.services import google_sheets, notifications, slack, webhooks

logger = logging.getLogger(__name__)


def response_event_data(response: FormResponse) -> dict:
    return {
        "response_id": str(response.id),
        "answers": response.answers or [],
        "responder_email": response.responder_email,
        "submitted_at": response.submitted_at.isoformat() if response.submitted_at else None,
    }


async def handle_response_created(response_id: uuid.UUID) -> None:
    with SessionLocal() as db:
        response = db.get(FormResponse, response_id)
        if response is None:
            logger.warning("Response %s vanished before integrations ran", response_id)
            return
        form = db.get(Form, response.form_id)
        if form is None:
            return

        fields = list(form.fields or [])
        form_settings = dict(form.settings or {})

        try:
            await run_in_threadpool(
                notifications.send_submission_emails,
                notifications.get_notification_sender(),
                form_title=form.title,
                fields=fields,
                form_settings=form_settings,
                answers=response.answers or [],
                responder_email=response.responder_email,
                send_copy=response.send_copy,
            )
        except Exception:
            logger.exception("Email notifications failed for response %s", response_id)

        try:
            await webhooks.dispatch_event(db, form.id, "response.created", response_event_data(response))
        except Exception:
            logger.exception("Webhook dispatch failed for response %s", response_id)

        integration = db.query(SlackIntegration).filter(SlackIntegration.form_id == form.id).first()
        if integration is not None:
            response_count = db.execute(
                select(func.count()).select_from(FormResponse).where(FormResponse.form_id == form.id)
            ).scalar_one()
            try:
                await slack.notify(
                    db,
                    integration,
                    "response.created",
                    form_title=form.title,
                    response_count=response_count,
                    submitted_at=response.submitted_at,
                    fields=fields,
                    answers=response.answers or [],
                )
            except Exception:
                logger.exception("Slack notification failed for response %s", response_id)

        sheet = (
            db.query(GoogleSheetsIntegration)
            .filter(GoogleSheetsIntegration.form_id == form.id)
            .first()
        )
        if sheet is not None and sheet.active and sheet.sync_on_submit:
            try:
                await run_in_threadpool(google_sheets.sync_response, db, sheet, fields, response)
            except google_sheets.SheetsError as exc:
                logger.warning("Sheets sync failed for response %s: %s", response_id, exc)
            except Exception:
                logger.exception("Sheets sync failed for response %s", response_id)


async def handle_response_deleted(form_id: uuid.UUID, response_id: uuid.UUID) -> None:
    with SessionLocal() as db:
        try:
            await webhooks.dispatch_event(db, form_id, "response.deleted", {"response_id": str(response_id)})
        except Exception:
            logger.exception("Webhook dispatch failed for deleted response %s", response_id)


async def handle_form_updated(form_id: uuid.UUID) -> None:
    with SessionLocal() as db:
        form = db.get(Form, form_id)
        if form is None:
            return
        data = {"title": form.title, "field_count": len(form.fields or [])}
        try:
            await webhooks.dispatch_event(db, form_id, "form.updated", data)
        except Exception:
            logger.exception("Webhook dispatch failed for form %s", form_id)

        integration = db.query(SlackIntegration).filter(SlackIntegration.form_id == form_id).first()
        if integration is not None:
            count = db.execute(
                select(func.count()).select_from(FormResponse).where(FormResponse.form_id == form_id)
            ).scalar_one()
            try:
                await slack.notify(db, integration, "form.updated", form_title=form.title, response_count=count)
            except Exception:
                logger.exception("Slack notification failed for form %s", form_id)
