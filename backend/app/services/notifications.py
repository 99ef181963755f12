"""Email notifications for new responses.

Two messages can follow a submission: a notice to the address in the
form's ``notification_email`` setting, and a copy of the answers to the
responder when they opted in. Delivery goes through a NotificationSender
so tests and deployments without SMTP can swap it out.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Any

from app.core.config import settings

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Base exception for email delivery."""


class NotificationDeliveryError(NotificationError):
    """Raised when the mail server rejects or cannot accept a message."""


# ---------------------------------------------------------------------------
# Senders
# ---------------------------------------------------------------------------


class NotificationSender(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        """Deliver one message. Raises NotificationDeliveryError on failure."""


class SmtpNotificationSender(NotificationSender):
    """Sends mail over SMTP, using STARTTLS unless the port is 465."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
        from_address: str | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address or username or "no-reply@formsmith.local"
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.ehlo()
        server.starttls()
        server.ehlo()
        return server

    def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.from_address
        message["To"] = to
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        try:
            with self._connect() as server:
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", to, exc)
            raise NotificationDeliveryError(str(exc)) from exc

        logger.info("Email '%s' sent to %s", subject, to)


class DisabledNotificationSender(NotificationSender):
    """Used when EMAIL_ENABLED is off; drops every message."""

    def send(self, to: str, subject: str, text: str, html: str | None = None) -> None:
        logger.info("Email disabled, skipping '%s' to %s", subject, to)


def get_notification_sender() -> NotificationSender:
    if not settings.EMAIL_ENABLED or not settings.SMTP_HOST:
        return DisabledNotificationSender()
    return SmtpNotificationSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        from_address=settings.EMAIL_FROM,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )


# ---------------------------------------------------------------------------
# Message builders
# ---------------------------------------------------------------------------


def format_answer(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, list):
        return ", ".join(format_answer(v) for v in value) or "-"
    if isinstance(value, dict):
        return "; ".join(f"{k}: {format_answer(v)}" for k, v in value.items())
    return str(value)


def answer_lines(fields: list[dict], answers: list[dict]) -> list[str]:
    """``Label: value`` for each answered field still on the form."""
    labels = {f.get("id"): f.get("label") for f in fields or [] if isinstance(f, dict)}
    lines = []
    for answer in answers or []:
        label = labels.get(answer.get("field_id"))
        if label is None:
            continue
        lines.append(f"{label}: {format_answer(answer.get('value'))}")
    return lines


def build_owner_notification(form_title: str, fields: list[dict], answers: list[dict]) -> tuple[str, str]:
    subject = f"New response: {form_title}"
    body = "\n".join(
        [f"Your form '{form_title}' received a new response.", "", *answer_lines(fields, answers)]
    )
    return subject, body


def build_responder_copy(form_title: str, fields: list[dict], answers: list[dict]) -> tuple[str, str]:
    subject = f"Your response to {form_title}"
    body = "\n".join(
        [
            f"Thanks for responding to '{form_title}'. Here is a copy of your answers.",
            "",
            *answer_lines(fields, answers),
        ]
    )
    return subject, body


# ---------------------------------------------------------------------------
# Submission hook
# ---------------------------------------------------------------------------


def send_submission_emails(
    sender: NotificationSender,
    *,
    form_title: str,
    fields: list[dict],
    form_settings: dict,
    answers: list[dict],
    responder_email: str | None,
    send_copy: bool,
) -> int:
    """Send the owner notice and responder copy that apply.

    Failures are logged and skipped. Returns how many messages went out.
    """
    sent = 0
    notify_to = form_settings.get("notification_email")
    if form_settings.get("notify_on_submission") and notify_to:
        subject, body = build_owner_notification(form_title, fields, answers)
        try:
            sender.send(notify_to, subject, body)
            sent += 1
        except NotificationError as exc:
            logger.warning("Owner notification for '%s' not sent: %s", form_title, exc)

    if send_copy and responder_email:
        subject, body = build_responder_copy(form_title, fields, answers)
        try:
            sender.send(responder_email, subject, body)
            sent += 1
        except NotificationError as exc:
            logger.warning("Responder copy for '%s' not sent: %s", form_title, exc)

    return sent
