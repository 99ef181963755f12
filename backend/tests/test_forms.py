"""Tests for form CRUD, sharing visibility, public access and view logging."""

import uuid
from datetime import datetime, timedelta, timezone

from conftest import auth_header, make_user

from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.form_share import FormShare
from app.models.form_view import FormView

FORMS_URL = "/api/v1/forms"
NONEXISTENT_UUID = str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _form_payload(**overrides):
    base = {
        "title": "Customer Feedback",
        "description": "Tell us how we did",
        "details": {"kind": "feedback", "company_name": "Widget Co"},
        "fields": [
            {"id": "name", "type": "short_text", "label": "Your name", "required": True},
            {"id": "score", "type": "rating", "label": "Score", "options": [1, 2, 3, 4, 5]},
            {"id": "channel", "type": "radio", "label": "Channel", "options": ["Web", "Phone"]},
        ],
        "settings": {"is_public": True, "notify_on_submission": False},
    }
    base.update(overrides)
    return base


def _create_form(client, headers, **overrides):
    resp = client.post(f"{FORMS_URL}/", json=_form_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _share(db, form_id, owner, target, role="viewer", expires_at=None):
    share = FormShare(
        form_id=form_id,
        shared_by_id=owner.id,
        shared_with_id=target.id,
        role=role,
        expires_at=expires_at,
    )
    db.add(share)
    db.commit()
    return share


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateForm:
    def test_create_stamps_fields(self, client, auth_headers, user):
        body = _create_form(client, auth_headers)

        assert body["title"] == "Customer Feedback"
        assert body["owner_id"] == str(user.id)
        assert body["kind"] == "feedback"
        assert body["kind_details"]["company_name"] == "Widget Co"
        assert [f["id"] for f in body["fields"]] == ["name", "score", "channel"]
        assert all(f["created_at"] for f in body["fields"])

    def test_defaults(self, client, auth_headers):
        resp = client.post(f"{FORMS_URL}/", json={}, headers=auth_headers)

        assert resp.status_code == 201
        body = resp.json()
        assert body["title"] == "Untitled Form"
        assert body["kind"] == "general"
        assert body["fields"] == []
        assert body["settings"]["is_public"] is True
        assert body["settings"]["collect_emails"] == "none"

    def test_generates_missing_field_ids(self, client, auth_headers):
        body = _create_form(client, auth_headers, fields=[{"type": "email", "label": "Email"}])
        assert body["fields"][0]["id"].startswith("f_")

    def test_keeps_supplied_created_at(self, client, auth_headers):
        stamp = "2025-06-01T08:00:00+00:00"
        body = _create_form(
            client,
            auth_headers,
            fields=[{"id": "a", "type": "short_text", "label": "A", "created_at": stamp}],
        )
        assert datetime.fromisoformat(body["fields"][0]["created_at"]) == datetime.fromisoformat(stamp)

    def test_future_created_at_capped_at_now(self, client, auth_headers):
        before = datetime.now(timezone.utc)
        future = (before + timedelta(days=30)).isoformat()
        body = _create_form(
            client,
            auth_headers,
            fields=[{"id": "a", "type": "short_text", "label": "A", "created_at": future}],
        )
        stored = datetime.fromisoformat(body["fields"][0]["created_at"])
        assert before <= stored <= datetime.now(timezone.utc)

    def test_duplicate_field_ids_rejected(self, client, auth_headers):
        fields = [
            {"id": "dup", "type": "short_text", "label": "One"},
            {"id": "dup", "type": "short_text", "label": "Two"},
        ]
        resp = client.post(f"{FORMS_URL}/", json=_form_payload(fields=fields), headers=auth_headers)
        assert resp.status_code == 422
        assert "duplicate" in resp.json()["detail"]

    def test_choice_field_requires_options(self, client, auth_headers):
        fields = [{"id": "pick", "type": "dropdown", "label": "Pick one", "options": []}]
        resp = client.post(f"{FORMS_URL}/", json=_form_payload(fields=fields), headers=auth_headers)
        assert resp.status_code == 422

    def test_unknown_field_type_rejected(self, client, auth_headers):
        fields = [{"id": "x", "type": "hologram", "label": "X"}]
        resp = client.post(f"{FORMS_URL}/", json=_form_payload(fields=fields), headers=auth_headers)
        assert resp.status_code == 422

    def test_unknown_kind_rejected(self, client, auth_headers):
        resp = client.post(
            f"{FORMS_URL}/",
            json=_form_payload(details={"kind": "wedding"}),
            headers=auth_headers,
        )
        assert resp.status_code == 422

    def test_requires_auth(self, client):
        resp = client.post(f"{FORMS_URL}/", json=_form_payload())
        assert resp.status_code in (401, 403)


# ---------------------------------------------------------------------------
# List / get
# ---------------------------------------------------------------------------


class TestListAndGet:
    def test_list_only_own_forms(self, client, db, auth_headers, other_headers):
        _create_form(client, auth_headers, title="Mine")
        _create_form(client, other_headers, title="Theirs")

        resp = client.get(f"{FORMS_URL}/", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["items"][0]["title"] == "Mine"

    def test_list_pagination(self, client, auth_headers):
        for i in range(3):
            _create_form(client, auth_headers, title=f"Form {i}")

        resp = client.get(f"{FORMS_URL}/", params={"page": 2, "page_size": 2}, headers=auth_headers)

        body = resp.json()
        assert body["total"] == 3
        assert body["page"] == 2
        assert len(body["items"]) == 1

    def test_get_includes_response_count_and_role(self, client, db, auth_headers):
        form = _create_form(client, auth_headers)
        db.add(FormResponse(form_id=uuid.UUID(form["id"]), answers=[]))
        db.commit()

        resp = client.get(f"{FORMS_URL}/{form['id']}", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["response_count"] == 1
        assert body["role"] == "owner"
        assert body["permissions"]["can_delete"] is True

    def test_get_forbidden_without_share(self, client, auth_headers, other_headers):
        form = _create_form(client, auth_headers)
        resp = client.get(f"{FORMS_URL}/{form['id']}", headers=other_headers)
        assert resp.status_code == 403

    def test_get_with_share(self, client, db, user, other_user, auth_headers, other_headers):
        form = _create_form(client, auth_headers)
        _share(db, uuid.UUID(form["id"]), user, other_user, role="editor")

        resp = client.get(f"{FORMS_URL}/{form['id']}", headers=other_headers)

        assert resp.status_code == 200
        assert resp.json()["role"] == "editor"
        assert resp.json()["permissions"]["can_edit"] is True
        assert resp.json()["permissions"]["can_delete"] is False

    def test_expired_share_grants_nothing(self, client, db, user, other_user, auth_headers, other_headers):
        form = _create_form(client, auth_headers)
        past = datetime.now(timezone.utc) - timedelta(days=1)
        _share(db, uuid.UUID(form["id"]), user, other_user, role="editor", expires_at=past)

        assert client.get(f"{FORMS_URL}/{form['id']}", headers=other_headers).status_code == 403
        assert client.get(f"{FORMS_URL}/shared", headers=other_headers).json()["items"] == []

    def test_get_nonexistent(self, client, auth_headers):
        resp = client.get(f"{FORMS_URL}/{NONEXISTENT_UUID}", headers=auth_headers)
        assert resp.status_code == 404

    def test_shared_with_me(self, client, db, user, other_user, auth_headers, other_headers):
        form = _create_form(client, auth_headers, title="Team form")
        _share(db, uuid.UUID(form["id"]), user, other_user, role="response_manager")

        resp = client.get(f"{FORMS_URL}/shared", headers=other_headers)

        assert resp.status_code == 200
        items = resp.json()["items"]
        assert len(items) == 1
        assert items[0]["form"]["title"] == "Team form"
        assert items[0]["shared_by"] == user.name
        assert items[0]["permissions"]["can_delete_responses"] is True


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdateForm:
    def test_existing_fields_keep_created_at(self, client, db, auth_headers):
        form = _create_form(client, auth_headers)
        original = {f["id"]: f["created_at"] for f in form["fields"]}

        new_fields = [
            {"id": "name", "type": "short_text", "label": "Full name", "required": True},
            {"id": "email", "type": "email", "label": "Email"},
        ]
        resp = client.put(f"{FORMS_URL}/{form['id']}", json={"fields": new_fields}, headers=auth_headers)

        assert resp.status_code == 200
        fields = {f["id"]: f for f in resp.json()["fields"]}
        assert set(fields) == {"name", "email"}
        assert fields["name"]["created_at"] == original["name"]
        assert fields["name"]["label"] == "Full name"
        assert fields["email"]["created_at"]

    def test_replaces_settings_and_kind(self, client, auth_headers):
        form = _create_form(client, auth_headers)

        resp = client.put(
            f"{FORMS_URL}/{form['id']}",
            json={
                "settings": {"is_public": False},
                "details": {"kind": "event", "location": "Kathmandu"},
            },
            headers=auth_headers,
        )

        body = resp.json()
        assert body["settings"]["is_public"] is False
        assert body["kind"] == "event"
        assert body["kind_details"]["location"] == "Kathmandu"
        assert "company_name" not in body["kind_details"]

    def test_empty_update_rejected(self, client, auth_headers):
        form = _create_form(client, auth_headers)
        resp = client.put(f"{FORMS_URL}/{form['id']}", json={}, headers=auth_headers)
        assert resp.status_code == 422

    def test_viewer_cannot_edit(self, client, db, user, other_user, auth_headers, other_headers):
        form = _create_form(client, auth_headers)
        _share(db, uuid.UUID(form["id"]), user, other_user, role="viewer")

        resp = client.put(f"{FORMS_URL}/{form['id']}", json={"title": "Hijacked"}, headers=other_headers)

        assert resp.status_code == 403

    def test_editor_can_edit(self, client, db, user, other_user, auth_headers, other_headers):
        form = _create_form(client, auth_headers)
        _share(db, uuid.UUID(form["id"]), user, other_user, role="editor")

        resp = client.put(f"{FORMS_URL}/{form['id']}", json={"title": "Improved"}, headers=other_headers)

        assert resp.status_code == 200
        assert resp.json()["title"] == "Improved"


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


class TestDeleteForm:
    def test_delete_cascades(self, client, db, auth_headers):
        form = _create_form(client, auth_headers)
        form_id = uuid.UUID(form["id"])
        db.add(FormResponse(form_id=form_id, answers=[]))
        db.add(FormView(form_id=form_id, ip="1.1.1.1"))
        db.commit()

        resp = client.delete(f"{FORMS_URL}/{form['id']}", headers=auth_headers)

        assert resp.status_code == 204
        db.expire_all()
        assert db.get(Form, form_id) is None
        assert db.query(FormResponse).filter(FormResponse.form_id == form_id).count() == 0
        assert db.query(FormView).filter(FormView.form_id == form_id).count() == 0

    def test_editor_cannot_delete(self, client, db, user, other_user, auth_headers, other_headers):
        form = _create_form(client, auth_headers)
        _share(db, uuid.UUID(form["id"]), user, other_user, role="editor")
        assert client.delete(f"{FORMS_URL}/{form['id']}", headers=other_headers).status_code == 403

    def test_shared_owner_role_can_delete(self, client, db, user, other_user, auth_headers, other_headers):
        form = _create_form(client, auth_headers)
        _share(db, uuid.UUID(form["id"]), user, other_user, role="owner")
        assert client.delete(f"{FORMS_URL}/{form['id']}", headers=other_headers).status_code == 204


# ---------------------------------------------------------------------------
# Public access
# ---------------------------------------------------------------------------


class TestPublicForm:
    def test_public_form_hides_owner(self, client, auth_headers):
        form = _create_form(client, auth_headers)

        resp = client.get(f"{FORMS_URL}/public/{form['id']}")

        assert resp.status_code == 200
        assert resp.json()["title"] == "Customer Feedback"
        assert "owner_id" not in resp.json()

    def test_private_form_is_hidden(self, client, auth_headers):
        form = _create_form(client, auth_headers, settings={"is_public": False})
        assert client.get(f"{FORMS_URL}/public/{form['id']}").status_code == 404

    def test_record_view(self, client, db, auth_headers):
        form = _create_form(client, auth_headers)

        resp = client.post(
            f"{FORMS_URL}/public/{form['id']}/views",
            headers={"User-Agent": "Mozilla/5.0", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )

        assert resp.status_code == 201
        view = db.query(FormView).one()
        assert view.ip == "203.0.113.7"
        assert view.user_agent == "Mozilla/5.0"

    def test_third_user_sees_nothing_shared(self, client, db, auth_headers):
        _create_form(client, auth_headers)
        stranger = make_user(db, name="Chandra", email="chandra@example.com")
        resp = client.get(f"{FORMS_URL}/shared", headers=auth_header(stranger))
        assert resp.json()["items"] == []
