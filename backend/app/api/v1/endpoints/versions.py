import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.permissions import form_access_or_error, owned_form_or_error
from app.models.form_version import FormVersion
from app.models.user import User
from app.schemas.versions import (
    RollbackResponse,
    VersionComparison,
    VersionCreate,
    VersionListResponse,
    VersionResponse,
    VersionSummary,
)
from app.services import versions as version_service

router = APIRouter()


def _version_or_404(form_id: uuid.UUID, version_number: int, db: Session) -> FormVersion:
    try:
        return version_service.get_version(db, form_id, version_number)
    except version_service.VersionNotFound:
        raise HTTPException(status_code=404, detail=f"Version {version_number} not found")


def _summary(version: FormVersion) -> VersionSummary:
    return VersionSummary(
        id=version.id,
        version_number=version.version_number,
        changes_summary=version.changes_summary,
        is_published=version.is_published,
        created_by_id=version.created_by_id,
        created_at=version.created_at,
        field_count=len(version.fields or []),
    )


@router.post("", response_model=VersionResponse, status_code=201)
def create_version(
    form_id: uuid.UUID,
    payload: VersionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form = owned_form_or_error(db, form_id, current_user)
    return version_service.create_version(
        db,
        form,
        current_user.id,
        changes_summary=payload.changes_summary,
        is_published=payload.is_published,
    )


@router.get("", response_model=VersionListResponse)
def list_versions(
    form_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user)
    versions = version_service.list_versions(db, form_id)
    return VersionListResponse(items=[_summary(v) for v in versions], total=len(versions))


@router.get("/compare", response_model=VersionComparison)
def compare_versions(
    form_id: uuid.UUID,
    v1: int = Query(..., ge=1),
    v2: int = Query(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user)
    return version_service.compare_versions(
        _version_or_404(form_id, v1, db),
        _version_or_404(form_id, v2, db),
    )


@router.get("/{version_number}", response_model=VersionResponse)
def get_version(
    form_id: uuid.UUID,
    version_number: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form_access_or_error(db, form_id, current_user)
    return _version_or_404(form_id, version_number, db)


@router.post("/{version_number}/rollback", response_model=RollbackResponse)
def rollback_version(
    form_id: uuid.UUID,
    version_number: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    form = owned_form_or_error(db, form_id, current_user)
    version = _version_or_404(form_id, version_number, db)
    backup = version_service.rollback(db, form, version, current_user.id)
    return RollbackResponse(
        message=f"Form restored to version {version_number}",
        restored_version=version_number,
        backup_version=backup.version_number,
    )
