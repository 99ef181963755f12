"""Tests for response submission, listing, deletion, CSV export and post-submit integrations."""

import csv
import io
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.form_share import FormShare
from app.models.webhook import Webhook
from app.services.webhooks import DeliveryResult

NONEXISTENT_UUID = str(uuid.uuid4())

FIELDS = [
    {"id": "name", "type": "short_text", "label": "Name", "required": True},
    {"id": "email", "type": "email", "label": "Email"},
    {"id": "age", "type": "number", "label": "Age", "validation": {"min": 0, "max": 130}},
    {"id": "plan", "type": "radio", "label": "Plan", "options": ["Free", "Pro"]},
    {"id": "tags", "type": "checkbox", "label": "Tags", "options": ["a", "b"]},
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_form(db, owner, fields=None, **settings_overrides):
    form_settings = {"is_public": True}
    form_settings.update(settings_overrides)
    form = Form(owner_id=owner.id, title="Signup", fields=fields or FIELDS, settings=form_settings)
    db.add(form)
    db.commit()
    db.refresh(form)
    return form


def _url(form_id, suffix=""):
    return f"/api/v1/forms/{form_id}/responses{suffix}"


def _submit(client, form_id, answers, **extra):
    payload = {"answers": [{"field_id": k, "value": v} for k, v in answers.items()], **extra}
    return client.post(_url(form_id), json=payload, headers={"User-Agent": "pytest-browser"})


def _store(db, form, answers, submitted_at=None, email=None):
    response = FormResponse(
        form_id=form.id,
        answers=[{"field_id": k, "value": v} for k, v in answers.items()],
        responder_email=email,
        submitted_at=submitted_at or datetime.now(timezone.utc),
    )
    db.add(response)
    db.commit()
    db.refresh(response)
    return response


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class TestSubmitResponse:
    def test_submit_stores_answers(self, client, db, user):
        form = _create_form(db, user)

        resp = _submit(client, form.id, {"name": "Asha", "email": "asha@example.com", "age": "31", "plan": "Pro"})

        assert resp.status_code == 201, resp.text
        stored = db.get(FormResponse, uuid.UUID(resp.json()["response_id"]))
        assert stored.responder_email == "asha@example.com"
        assert stored.user_agent == "pytest-browser"
        assert stored.submitted_at is not None
        assert [a["field_id"] for a in stored.answers] == ["name", "email", "age", "plan"]

    def test_unknown_fields_dropped(self, client, db, user):
        form = _create_form(db, user)

        resp = _submit(client, form.id, {"name": "Asha", "ghost": "boo"})

        stored = db.get(FormResponse, uuid.UUID(resp.json()["response_id"]))
        assert [a["field_id"] for a in stored.answers] == ["name"]

    def test_required_field_enforced(self, client, db, user):
        form = _create_form(db, user)
        resp = _submit(client, form.id, {"name": "", "plan": "Pro"})
        assert resp.status_code == 422
        assert "required" in resp.json()["detail"]

    def test_empty_checkbox_does_not_satisfy_required(self, client, db, user):
        fields = [{"id": "tags", "type": "checkbox", "label": "Tags", "options": ["a", "b"], "required": True}]
        form = _create_form(db, user, fields=fields)
        resp = _submit(client, form.id, {"tags": []})
        assert resp.status_code == 422
        assert "Tags" in resp.json()["detail"]

    def test_number_must_parse(self, client, db, user):
        form = _create_form(db, user)
        resp = _submit(client, form.id, {"name": "Asha", "age": "thirty"})
        assert resp.status_code == 422

    def test_number_bounds(self, client, db, user):
        form = _create_form(db, user)
        assert _submit(client, form.id, {"name": "Asha", "age": 200}).status_code == 422

    def test_email_must_look_valid(self, client, db, user):
        form = _create_form(db, user)
        assert _submit(client, form.id, {"name": "Asha", "email": "not-an-email"}).status_code == 422

    def test_radio_must_be_an_option(self, client, db, user):
        form = _create_form(db, user)
        assert _submit(client, form.id, {"name": "Asha", "plan": "Enterprise"}).status_code == 422

    def test_responder_email_required_when_collected(self, client, db, user):
        form = _create_form(db, user, collect_emails="responder_input")
        resp = _submit(client, form.id, {"name": "Asha"})
        assert resp.status_code == 400

    def test_private_form_rejects_submissions(self, client, db, user):
        form = _create_form(db, user, is_public=False)
        assert _submit(client, form.id, {"name": "Asha"}).status_code == 404

    def test_nonexistent_form(self, client):
        assert _submit(client, NONEXISTENT_UUID, {"name": "x"}).status_code == 404

    def test_copy_only_when_requested_mode_and_opted_in(self, client, db, user):
        form = _create_form(db, user, send_response_copy="requested")
        answers = {"name": "Asha", "email": "asha@example.com"}

        opted_in = _submit(client, form.id, answers, send_copy=True).json()["response_id"]
        opted_out = _submit(client, form.id, answers, send_copy=False).json()["response_id"]

        assert db.get(FormResponse, uuid.UUID(opted_in)).send_copy is True
        assert db.get(FormResponse, uuid.UUID(opted_out)).send_copy is False

    def test_copy_never_sent_when_off(self, client, db, user):
        form = _create_form(db, user)
        resp = _submit(client, form.id, {"name": "Asha", "email": "asha@example.com"}, send_copy=True)
        assert db.get(FormResponse, uuid.UUID(resp.json()["response_id"])).send_copy is False


class TestSubmissionIntegrations:
    def test_owner_notification_and_copy_sent(self, client, db, user):
        form = _create_form(
            db,
            user,
            notify_on_submission=True,
            notification_email="owner@example.com",
            send_response_copy="always",
        )
        sender = MagicMock()

        with patch("app.services.integrations.notifications.get_notification_sender", return_value=sender):
            resp = _submit(client, form.id, {"name": "Asha", "email": "asha@example.com"})

        assert resp.status_code == 201
        recipients = [c.args[0] for c in sender.send.call_args_list]
        assert recipients == ["owner@example.com", "asha@example.com"]

    def test_webhook_dispatched_after_submission(self, client, db, user):
        form = _create_form(db, user)
        webhook = Webhook(
            form_id=form.id,
            owner_id=user.id,
            url="https://hooks.example.com/in",
            events=["response.created"],
            secret="s3cret-value",
        )
        db.add(webhook)
        db.commit()

        with patch(
            "app.services.webhooks.deliver",
            new_callable=AsyncMock,
            return_value=DeliveryResult(success=True, attempts=1, status_code=200),
        ) as mock_deliver:
            resp = _submit(client, form.id, {"name": "Asha"})

        assert resp.status_code == 201
        mock_deliver.assert_awaited_once()
        assert mock_deliver.call_args.args[1] == "response.created"
        payload = mock_deliver.call_args.args[2]
        assert payload["data"]["response_id"] == resp.json()["response_id"]
        db.expire_all()
        assert db.get(Webhook, webhook.id).success_count == 1

    def test_integration_failure_does_not_affect_response(self, client, db, user):
        form = _create_form(db, user, notify_on_submission=True, notification_email="owner@example.com")
        sender = MagicMock()
        sender.send.side_effect = RuntimeError("smtp exploded")

        with patch("app.services.integrations.notifications.get_notification_sender", return_value=sender):
            resp = _submit(client, form.id, {"name": "Asha"})

        assert resp.status_code == 201
        assert db.query(FormResponse).count() == 1


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListResponses:
    def test_list_sorted_and_paginated(self, client, db, user, auth_headers):
        form = _create_form(db, user)
        now = datetime.now(timezone.utc)
        for i in range(3):
            _store(db, form, {"name": f"P{i}"}, submitted_at=now - timedelta(days=3 - i))

        resp = client.get(_url(form.id), params={"page_size": 2}, headers=auth_headers)

        body = resp.json()
        assert resp.status_code == 200
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert [r["answers"][0]["value"] for r in body["items"]] == ["P2", "P1"]

        resp = client.get(_url(form.id), params={"sort": "asc"}, headers=auth_headers)
        assert [r["answers"][0]["value"] for r in resp.json()["items"]] == ["P0", "P1", "P2"]

    def test_search_matches_answer_values(self, client, db, user, auth_headers):
        form = _create_form(db, user)
        _store(db, form, {"name": "Asha Gurung", "tags": ["a"]})
        _store(db, form, {"name": "Bikash"})

        resp = client.get(_url(form.id), params={"search": "gurung"}, headers=auth_headers)

        assert resp.json()["total"] == 1
        assert resp.json()["items"][0]["answers"][0]["value"] == "Asha Gurung"

    def test_requires_view_permission(self, client, db, user, other_headers):
        form = _create_form(db, user)
        assert client.get(_url(form.id), headers=other_headers).status_code == 403

    def test_get_single_response(self, client, db, user, auth_headers):
        form = _create_form(db, user)
        stored = _store(db, form, {"name": "Asha"})

        resp = client.get(_url(form.id, f"/{stored.id}"), headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json()["id"] == str(stored.id)

    def test_response_from_other_form_is_404(self, client, db, user, auth_headers):
        form = _create_form(db, user)
        other_form = _create_form(db, user)
        stored = _store(db, other_form, {"name": "Asha"})

        assert client.get(_url(form.id, f"/{stored.id}"), headers=auth_headers).status_code == 404


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


class TestDeleteResponse:
    def test_owner_deletes(self, client, db, user, auth_headers):
        form = _create_form(db, user)
        stored = _store(db, form, {"name": "Asha"})
        response_id = stored.id

        resp = client.delete(_url(form.id, f"/{response_id}"), headers=auth_headers)

        assert resp.status_code == 204
        db.expire_all()
        assert db.get(FormResponse, response_id) is None

    def test_viewer_cannot_delete(self, client, db, user, other_user, other_headers):
        form = _create_form(db, user)
        stored = _store(db, form, {"name": "Asha"})
        db.add(FormShare(form_id=form.id, shared_by_id=user.id, shared_with_id=other_user.id, role="viewer"))
        db.commit()

        assert client.delete(_url(form.id, f"/{stored.id}"), headers=other_headers).status_code == 403

    def test_response_manager_can_delete(self, client, db, user, other_user, other_headers):
        form = _create_form(db, user)
        stored = _store(db, form, {"name": "Asha"})
        db.add(
            FormShare(form_id=form.id, shared_by_id=user.id, shared_with_id=other_user.id, role="response_manager")
        )
        db.commit()

        assert client.delete(_url(form.id, f"/{stored.id}"), headers=other_headers).status_code == 204


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


class TestExport:
    def test_csv_columns_and_rows(self, client, db, user, auth_headers):
        form = _create_form(db, user)
        _store(db, form, {"name": "Asha", "email": "asha@example.com", "tags": ["a", "b"]}, email="asha@example.com")

        resp = client.get(_url(form.id, "/export"), headers=auth_headers)

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert "attachment" in resp.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(resp.text)))
        assert rows[0] == ["submitted_at", "Responder Email", "Send Copy Opt-in", "Name", "Email", "Age", "Plan", "Tags"]
        record = dict(zip(rows[0], rows[1]))
        assert record["Name"] == "Asha"
        assert record["Responder Email"] == "asha@example.com"
        assert record["Tags"] == "a, b"
        assert record["Age"] == ""

    def test_orphaned_answers_keyed_by_field_id(self, client, db, user, auth_headers):
        form = _create_form(db, user)
        _store(db, form, {"name": "Asha", "removed_field": "legacy"})

        resp = client.get(_url(form.id, "/export"), headers=auth_headers)

        rows = list(csv.reader(io.StringIO(resp.text)))
        assert rows[0][-1] == "removed_field"
        assert rows[1][-1] == "legacy"

    def test_shared_labels_get_distinct_columns(self, client, db, user, auth_headers):
        fields = [
            {"id": "a", "type": "short_text", "label": "Name"},
            {"id": "b", "type": "short_text", "label": "Name"},
            {"id": "c", "type": "short_text", "label": "submitted_at"},
        ]
        form = _create_form(db, user, fields=fields)
        _store(db, form, {"a": "first", "b": "last", "c": "yesterday"})

        resp = client.get(_url(form.id, "/export"), headers=auth_headers)

        rows = list(csv.reader(io.StringIO(resp.text)))
        assert rows[0] == [
            "submitted_at",
            "Responder Email",
            "Send Copy Opt-in",
            "Name",
            "Name (b)",
            "submitted_at (c)",
        ]
        assert rows[1][3:] == ["first", "last", "yesterday"]
        assert rows[1][0] != "yesterday"

    def test_export_requires_access(self, client, db, user, other_headers):
        form = _create_form(db, user)
        assert client.get(_url(form.id, "/export"), headers=other_headers).status_code == 403
