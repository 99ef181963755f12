"""Google Sheets sync: one header row, then one appended row per response.

Writes go through a SpreadsheetSyncClient. The Google implementation wraps
the Sheets v4 API with OAuth credentials stored on the integration and
refreshes the access token when it has expired.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.google_sheets_integration import GoogleSheetsIntegration
from app.schemas.google_sheets import BulkSyncResult, SheetsConnect, SheetsUpdate
from app.services.error_log import append_error
from app.services.responses import cell_value

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"


class SheetsError(Exception):
    """Base exception for spreadsheet sync."""


class SheetsAuthError(SheetsError):
    """Raised when stored credentials are expired, revoked or unrefreshable."""


class SheetsRateLimited(SheetsError):
    """Raised when the Sheets API rejects a call with 429."""


class SheetsIntegrationNotFound(SheetsError):
    """Raised when a form has no spreadsheet connected."""


class SheetsIntegrationExists(SheetsError):
    """Raised when connecting a form that already has a spreadsheet."""


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


class SpreadsheetSyncClient(ABC):
    @abstractmethod
    def write_header(self, spreadsheet_id: str, sheet_name: str, header: list[str]) -> None:
        """Overwrite the first row of the sheet."""

    @abstractmethod
    def append_row(self, spreadsheet_id: str, sheet_name: str, row: list[str]) -> None:
        """Append one row below the existing data."""


def _handle_api_error(exc: HttpError) -> None:
    if exc.resp.status == 429:
        raise SheetsRateLimited("Sheets API rate limit exceeded") from exc
    if exc.resp.status in (401, 403):
        raise SheetsAuthError("Sheets credentials expired or revoked") from exc
    raise SheetsError(f"Sheets API error: {exc}") from exc


class GoogleSheetsClient(SpreadsheetSyncClient):
    def __init__(self, credentials: Credentials) -> None:
        self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)

    def write_header(self, spreadsheet_id: str, sheet_name: str, header: list[str]) -> None:
        try:
            self._service.spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=f"{sheet_name}!A1",
                valueInputOption="RAW",
                body={"values": [header]},
            ).execute(num_retries=3)
        except HttpError as exc:
            _handle_api_error(exc)

    def append_row(self, spreadsheet_id: str, sheet_name: str, row: list[str]) -> None:
        try:
            self._service.spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=f"{sheet_name}!A:A",
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [row]},
            ).execute(num_retries=3)
        except HttpError as exc:
            _handle_api_error(exc)


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def token_expired(integration: GoogleSheetsIntegration, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _as_utc(integration.token_expiry) <= now


def build_credentials(integration: GoogleSheetsIntegration) -> Credentials:
    credentials = Credentials(
        token=integration.access_token,
        refresh_token=integration.refresh_token,
        token_uri=settings.GOOGLE_TOKEN_URI,
        client_id=settings.GOOGLE_CLIENT_ID or None,
        client_secret=settings.GOOGLE_CLIENT_SECRET or None,
        scopes=[SHEETS_SCOPE],
    )
    # google-auth compares expiry as naive UTC
    credentials.expiry = _as_utc(integration.token_expiry).replace(tzinfo=None)
    return credentials


def refresh_access_token(db: Session, integration: GoogleSheetsIntegration, credentials: Credentials) -> None:
    try:
        credentials.refresh(Request())
    except RefreshError as exc:
        logger.error("Token refresh failed for sheets integration %s: %s", integration.id, exc)
        raise SheetsAuthError(f"Failed to refresh access token: {exc}") from exc

    integration.access_token = credentials.token
    if credentials.expiry is not None:
        integration.token_expiry = credentials.expiry.replace(tzinfo=timezone.utc)
    db.commit()
    logger.info("Refreshed access token for sheets integration %s", integration.id)


def build_client(db: Session, integration: GoogleSheetsIntegration) -> SpreadsheetSyncClient:
    credentials = build_credentials(integration)
    if token_expired(integration):
        refresh_access_token(db, integration, credentials)
    return GoogleSheetsClient(credentials)


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


def header_row(fields: list[dict]) -> list[str]:
    return ["Response ID", "Submitted At", *[f.get("label") or f.get("id", "") for f in fields or []]]


def response_row(fields: list[dict], response: FormResponse) -> list[str]:
    answers = {a.get("field_id"): a.get("value") for a in response.answers or []}
    submitted_at = response.submitted_at.isoformat() if response.submitted_at else ""
    return [
        str(response.id),
        submitted_at,
        *[cell_value(answers.get(f.get("id"))) for f in fields or []],
    ]


def _record_failure(db: Session, integration: GoogleSheetsIntegration, message: str) -> None:
    integration.error_log = append_error(integration.error_log, message)
    db.commit()


def sync_response(
    db: Session,
    integration: GoogleSheetsIntegration,
    fields: list[dict],
    response: FormResponse,
    client: SpreadsheetSyncClient | None = None,
) -> None:
    """Append one response, writing the header row first if needed.

    Failures are added to the integration's error log and re-raised as
    SheetsError.
    """
    try:
        client = client or build_client(db, integration)
        if not integration.header_row_created:
            client.write_header(integration.spreadsheet_id, integration.sheet_name, header_row(fields))
            integration.header_row_created = True
            db.commit()
        client.append_row(integration.spreadsheet_id, integration.sheet_name, response_row(fields, response))
    except SheetsError as exc:
        _record_failure(db, integration, f"Sync failed for response {response.id}: {exc}")
        raise

    integration.last_synced_response_id = response.id
    integration.last_sync_time = datetime.now(timezone.utc)
    integration.sync_count = (integration.sync_count or 0) + 1
    db.commit()


def bulk_sync(
    db: Session,
    integration: GoogleSheetsIntegration,
    form: Form,
    client: SpreadsheetSyncClient | None = None,
) -> BulkSyncResult:
    """Append every response of the form, oldest first."""
    responses = (
        db.query(FormResponse)
        .filter(FormResponse.form_id == form.id)
        .order_by(FormResponse.submitted_at.asc())
        .all()
    )
    client = client or build_client(db, integration)

    result = BulkSyncResult(synced=0, failed=0)
    for response in responses:
        try:
            sync_response(db, integration, form.fields or [], response, client=client)
            result.synced += 1
        except SheetsError as exc:
            result.failed += 1
            result.errors.append(f"{response.id}: {exc}")
            if isinstance(exc, SheetsAuthError):
                break

    logger.info(
        "Bulk sync for form %s: %d synced, %d failed", form.id, result.synced, result.failed
    )
    return result


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def get_integration(db: Session, form_id: uuid.UUID) -> GoogleSheetsIntegration:
    integration = (
        db.query(GoogleSheetsIntegration).filter(GoogleSheetsIntegration.form_id == form_id).first()
    )
    if integration is None:
        raise SheetsIntegrationNotFound(f"No spreadsheet connected to form {form_id}")
    return integration


def connect(
    db: Session, form_id: uuid.UUID, owner_id: uuid.UUID, data: SheetsConnect
) -> GoogleSheetsIntegration:
    existing = (
        db.query(GoogleSheetsIntegration).filter(GoogleSheetsIntegration.form_id == form_id).first()
    )
    if existing is not None:
        raise SheetsIntegrationExists(f"Form {form_id} already has a spreadsheet connected")

    integration = GoogleSheetsIntegration(form_id=form_id, owner_id=owner_id, **data.model_dump())
    db.add(integration)
    db.commit()
    db.refresh(integration)
    logger.info("Spreadsheet %s connected to form %s", integration.spreadsheet_id, form_id)
    return integration


def update_integration(
    db: Session, integration: GoogleSheetsIntegration, data: SheetsUpdate
) -> GoogleSheetsIntegration:
    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    target_changed = any(
        key in updates and updates[key] != getattr(integration, key)
        for key in ("spreadsheet_id", "sheet_name")
    )
    for key, value in updates.items():
        setattr(integration, key, value)
    if target_changed:
        integration.header_row_created = False
    db.commit()
    db.refresh(integration)
    return integration


def disconnect(db: Session, integration: GoogleSheetsIntegration) -> None:
    form_id = integration.form_id
    db.delete(integration)
    db.commit()
    logger.info("Spreadsheet disconnected from form %s", form_id)
