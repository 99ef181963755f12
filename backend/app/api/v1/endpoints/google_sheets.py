import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import owned_form_or_error
from app.models.google_sheets_integration import GoogleSheetsIntegration
from app.models.user import User
from app.schemas.google_sheets import (
    BulkSyncResult,
    SheetsConnect,
    SheetsIntegrationResponse,
    SheetsUpdate,
)
from app.services import google_sheets as sheets_service

router = APIRouter()


def _integration_or_404(form_id: uuid.UUID, db: Session) -> GoogleSheetsIntegration:
    try:
        return sheets_service.get_integration(db, form_id)
    except sheets_service.SheetsIntegrationNotFound:
        raise HTTPException(status_code=404, detail="No spreadsheet connected to this form")


@router.post("/forms/{form_id}", response_model=SheetsIntegrationResponse, status_code=201)
def connect_spreadsheet(
    form_id: uuid.UUID,
    payload: SheetsConnect,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    try:
        return sheets_service.connect(db, form_id, current_user.id, payload)
    except sheets_service.SheetsIntegrationExists as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/forms/{form_id}", response_model=SheetsIntegrationResponse)
def get_spreadsheet(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    return _integration_or_404(form_id, db)


@router.put("/forms/{form_id}", response_model=SheetsIntegrationResponse)
def update_spreadsheet(
    form_id: uuid.UUID,
    payload: SheetsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    return sheets_service.update_integration(db, _integration_or_404(form_id, db), payload)


@router.delete("/forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
def disconnect_spreadsheet(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    owned_form_or_error(db, form_id, current_user)
    sheets_service.disconnect(db, _integration_or_404(form_id, db))


@router.post("/forms/{form_id}/sync", response_model=BulkSyncResult)
def sync_all_responses(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Append every stored response to the connected sheet."""
    form = owned_form_or_error(db, form_id, current_user)
    integration = _integration_or_404(form_id, db)
    try:
        return sheets_service.bulk_sync(db, integration, form)
    except sheets_service.SheetsAuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    except sheets_service.SheetsError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
