"""Form version history: snapshots, comparison and rollback."""

import json
import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.form import Form
from app.models.form_version import FormVersion
from app.schemas.versions import VersionComparison, VersionSide

logger = logging.getLogger(__name__)


class VersionError(Exception):
    """Base exception for version operations."""


class VersionNotFound(VersionError):
    def __init__(self, version_number: int) -> None:
        self.version_number = version_number
        super().__init__(f"Version {version_number} not found")


def snapshot_settings(form: Form) -> dict:
    """Everything besides fields that a rollback restores."""
    return {
        "title": form.title,
        "description": form.description,
        "kind": form.kind,
        "kind_details": dict(form.kind_details or {}),
        "settings": dict(form.settings or {}),
    }


def next_version_number(db: Session, form_id: uuid.UUID) -> int:
    latest = db.execute(
        select(func.max(FormVersion.version_number)).where(FormVersion.form_id == form_id)
    ).scalar_one_or_none()
    return (latest or 0) + 1


def create_version(
    db: Session,
    form: Form,
    user_id: uuid.UUID,
    changes_summary: str = "",
    is_published: bool = True,
    commit: bool = True,
) -> FormVersion:
    version = FormVersion(
        form_id=form.id,
        version_number=next_version_number(db, form.id),
        fields=list(form.fields or []),
        settings=snapshot_settings(form),
        created_by_id=user_id,
        changes_summary=changes_summary,
        is_published=is_published,
    )
    db.add(version)
    if commit:
        db.commit()
        db.refresh(version)
    else:
        db.flush()
    logger.info("Form %s snapshot v%d created", form.id, version.version_number)
    return version


def list_versions(db: Session, form_id: uuid.UUID) -> list[FormVersion]:
    return (
        db.query(FormVersion)
        .filter(FormVersion.form_id == form_id)
        .order_by(FormVersion.version_number.desc())
        .all()
    )


def get_version(db: Session, form_id: uuid.UUID, version_number: int) -> FormVersion:
    version = (
        db.query(FormVersion)
        .filter(FormVersion.form_id == form_id, FormVersion.version_number == version_number)
        .first()
    )
    if version is None:
        raise VersionNotFound(version_number)
    return version


def _field_ids(fields: list[dict]) -> list[str]:
    return [f["id"] for f in fields or [] if isinstance(f, dict) and f.get("id")]


def _canonical(value) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def compare_versions(first: FormVersion, second: FormVersion) -> VersionComparison:
    """Describe how ``second`` differs from ``first``."""
    first_fields = {f["id"]: f for f in first.fields or [] if isinstance(f, dict) and f.get("id")}
    second_fields = {f["id"]: f for f in second.fields or [] if isinstance(f, dict) and f.get("id")}

    return VersionComparison(
        version1=VersionSide(
            version_number=first.version_number,
            field_count=len(first.fields or []),
            created_at=first.created_at,
        ),
        version2=VersionSide(
            version_number=second.version_number,
            field_count=len(second.fields or []),
            created_at=second.created_at,
        ),
        fields_added=[fid for fid in _field_ids(second.fields) if fid not in first_fields],
        fields_removed=[fid for fid in _field_ids(first.fields) if fid not in second_fields],
        fields_changed=[
            fid
            for fid in _field_ids(second.fields)
            if fid in first_fields and _canonical(first_fields[fid]) != _canonical(second_fields[fid])
        ],
        settings_changed=_canonical(first.settings) != _canonical(second.settings),
    )


def rollback(db: Session, form: Form, version: FormVersion, user_id: uuid.UUID) -> FormVersion:
    """Restore ``version`` onto the form, snapshotting the current state first.

    Returns the backup version holding the pre-rollback state.
    """
    backup = create_version(
        db,
        form,
        user_id,
        changes_summary=f"Rollback from v{version.version_number}",
        is_published=False,
        commit=False,
    )

    snapshot = version.settings or {}
    form.fields = list(version.fields or [])
    form.title = snapshot.get("title", form.title)
    form.description = snapshot.get("description", form.description)
    form.kind = snapshot.get("kind", form.kind)
    form.kind_details = dict(snapshot.get("kind_details", form.kind_details) or {})
    form.settings = dict(snapshot.get("settings", form.settings) or {})
    db.commit()
    db.refresh(backup)
    logger.info("Form %s rolled back to v%d", form.id, version.version_number)
    return backup
