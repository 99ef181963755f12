"""Tests for response analytics: field aggregation, timelines, form stats and the HTTP endpoints."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.form_share import FormShare
from app.models.form_view import FormView
from app.services.analytics import aggregate, form_stats, resolve_field_added_at, timeline

FIELD_ADDED = datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _form(fields, updated_at=None):
    return SimpleNamespace(fields=fields, updated_at=updated_at)


def _response(answers, submitted_at=None, ip="10.0.0.1", user_agent="pytest"):
    return SimpleNamespace(
        answers=[{"field_id": fid, "value": value} for fid, value in answers.items()],
        submitted_at=submitted_at,
        ip=ip,
        user_agent=user_agent,
    )


def _at(day, hour=12):
    return datetime(2026, 2, day, hour, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Field addition time
# ---------------------------------------------------------------------------


class TestResolveFieldAddedAt:
    def test_uses_field_created_at(self):
        field = {"id": "f1", "created_at": "2026-02-10T12:00:00+00:00"}
        form = _form([field], updated_at=_at(20))
        assert resolve_field_added_at(field, form) == FIELD_ADDED

    def test_falls_back_to_form_updated_at(self):
        field = {"id": "f1"}
        form = _form([field], updated_at=_at(20))
        assert resolve_field_added_at(field, form) == _at(20)

    def test_none_when_nothing_known(self):
        field = {"id": "f1"}
        assert resolve_field_added_at(field, _form([field])) is None

    def test_unparseable_created_at_uses_form_updated_at(self):
        field = {"id": "f1", "created_at": "not a date"}
        form = _form([field], updated_at=_at(20))
        assert resolve_field_added_at(field, form) == _at(20)

    def test_zulu_suffix_and_naive_values_read_as_utc(self):
        assert resolve_field_added_at({"created_at": "2026-02-10T12:00:00Z"}, _form([])) == FIELD_ADDED
        naive = datetime(2026, 2, 20, 12, 0)
        assert resolve_field_added_at({}, _form([], updated_at=naive)) == _at(20)


# ---------------------------------------------------------------------------
# aggregate()
# ---------------------------------------------------------------------------


class TestAggregateEligibility:
    def test_field_created_at_excludes_earlier_responses(self):
        form = _form([{"id": "q", "type": "short_text", "created_at": FIELD_ADDED.isoformat()}])
        responses = [
            _response({"q": "early"}, submitted_at=_at(9)),
            _response({"q": "on time"}, submitted_at=FIELD_ADDED),
            _response({"q": "late"}, submitted_at=_at(11)),
        ]

        result = aggregate(form, responses)["q"]

        assert result.eligible_responses == 2
        assert result.total_responses == 2
        assert result.unique_count == 2
        assert result.completion_rate == 100.0

    def test_form_updated_at_used_when_field_unstamped(self):
        form = _form([{"id": "q", "type": "short_text"}], updated_at=_at(15))
        responses = [
            _response({"q": "a"}, submitted_at=_at(14)),
            _response({"q": "b"}, submitted_at=_at(16)),
        ]

        result = aggregate(form, responses)["q"]

        assert result.eligible_responses == 1
        assert result.total_responses == 1

    def test_all_responses_eligible_without_timestamps(self):
        form = _form([{"id": "q", "type": "short_text"}])
        responses = [
            _response({"q": "a"}, submitted_at=_at(1)),
            _response({"q": "b"}, submitted_at=_at(28)),
        ]

        assert aggregate(form, responses)["q"].eligible_responses == 2

    def test_undated_response_counts_as_eligible(self):
        form = _form([{"id": "q", "type": "short_text", "created_at": FIELD_ADDED.isoformat()}])
        result = aggregate(form, [_response({"q": "x"}, submitted_at=None)])["q"]
        assert result.eligible_responses == 1

    def test_missing_answer_stays_in_denominator(self):
        form = _form([{"id": "a", "type": "short_text"}, {"id": "b", "type": "short_text"}])
        responses = [
            _response({"a": "yes", "b": "x"}),
            _response({"a": "yes"}),
            _response({"a": "", "b": "y"}),
            _response({"a": "yes"}),
        ]

        result = aggregate(form, responses)

        assert result["a"].total_responses == 3
        assert result["a"].eligible_responses == 4
        assert result["a"].completion_rate == 75.0
        assert result["b"].completion_rate == 50.0

    def test_zero_eligible_gives_zero_rate(self):
        form = _form([{"id": "q", "type": "short_text", "created_at": "2030-01-01T00:00:00+00:00"}])
        result = aggregate(form, [_response({"q": "a"}, submitted_at=_at(1))])["q"]
        assert result.eligible_responses == 0
        assert result.completion_rate == 0.0

    def test_completion_rate_rounds_to_two_decimals(self):
        form = _form([{"id": "q", "type": "short_text"}])
        responses = [_response({"q": "a"}), _response({}), _response({})]
        assert aggregate(form, responses)["q"].completion_rate == 33.33


class TestAggregateChoiceFields:
    def test_radio_counts_in_first_seen_order(self):
        field = {"id": "color", "type": "radio", "label": "Color", "options": ["Red", "Green", "Blue"]}
        responses = [
            _response({"color": "Green"}),
            _response({"color": "Red"}),
            _response({"color": "Green"}),
        ]

        result = aggregate(_form([field]), responses)["color"]

        assert result.chart_data.type == "pie"
        assert result.chart_data.labels == ["Green", "Red"]
        assert result.chart_data.data == [2, 1]
        assert result.chart_data.options == ["Red", "Green", "Blue"]
        assert result.unique_count is None

    def test_checkbox_counts_each_element(self):
        field = {"id": "tags", "type": "checkbox", "options": ["a", "b", "c"]}
        responses = [
            _response({"tags": ["a", "b"]}),
            _response({"tags": ["b"]}),
            _response({"tags": []}),
        ]

        result = aggregate(_form([field]), responses)["tags"]

        assert dict(zip(result.chart_data.labels, result.chart_data.data)) == {"a": 1, "b": 2}
        assert result.total_responses == 2

    def test_non_string_values_get_stable_labels(self):
        field = {"id": "ok", "type": "dropdown", "options": []}
        responses = [_response({"ok": True}), _response({"ok": 2.0}), _response({"ok": {"k": 1}})]

        labels = aggregate(_form([field]), responses)["ok"].chart_data.labels

        assert labels == ["true", "2", '{"k": 1}']


class TestAggregateRating:
    def test_default_scale_is_zero_filled(self):
        field = {"id": "r", "type": "rating"}
        responses = [_response({"r": 5}), _response({"r": 5}), _response({"r": "3"})]

        chart = aggregate(_form([field]), responses)["r"].chart_data

        assert chart.type == "bar"
        assert chart.labels == ["1", "2", "3", "4", "5"]
        assert chart.data == [0, 0, 1, 0, 2]

    def test_uses_configured_options(self):
        field = {"id": "r", "type": "rating", "options": [1, 2, 3]}
        chart = aggregate(_form([field]), [_response({"r": 2})])["r"].chart_data
        assert chart.labels == ["1", "2", "3"]
        assert chart.data == [0, 1, 0]


class TestAggregateNumber:
    def test_stats_skip_invalid_values(self):
        field = {"id": "n", "type": "number"}
        responses = [
            _response({"n": 4}),
            _response({"n": "6"}),
            _response({"n": "abc"}),
            _response({"n": "inf"}),
            _response({"n": 1.5}),
        ]

        result = aggregate(_form([field]), responses)["n"]

        assert result.stats.min == 1.5
        assert result.stats.max == 6
        assert result.stats.total == 11.5
        assert result.stats.avg == "3.83"
        assert result.total_responses == 5

    def test_stats_omitted_without_valid_numbers(self):
        field = {"id": "n", "type": "number"}
        result = aggregate(_form([field]), [_response({"n": "nope"})])["n"]
        assert result.stats is None


class TestAggregateOtherTypes:
    def test_unique_count_distinguishes_types(self):
        field = {"id": "t", "type": "short_text"}
        responses = [_response({"t": "1"}), _response({"t": 1}), _response({"t": "1"})]
        assert aggregate(_form([field]), responses)["t"].unique_count == 2

    def test_unhashable_values_are_counted(self):
        field = {"id": "m", "type": "matrix"}
        responses = [
            _response({"m": {"row1": "a", "row2": "b"}}),
            _response({"m": {"row2": "b", "row1": "a"}}),
            _response({"m": {"row1": "c"}}),
        ]
        assert aggregate(_form([field]), responses)["m"].unique_count == 2

    def test_orphaned_answers_and_id_less_fields_are_ignored(self):
        form = _form([{"id": "kept", "type": "short_text"}, {"type": "short_text", "label": "no id"}])
        result = aggregate(form, [_response({"kept": "a", "removed": "b"})])
        assert list(result) == ["kept"]

    def test_keys_follow_form_order(self):
        form = _form([{"id": "z", "type": "short_text"}, {"id": "a", "type": "short_text"}])
        assert list(aggregate(form, [])) == ["z", "a"]

    def test_identical_inputs_give_identical_json(self):
        form = _form(
            [
                {"id": "c", "type": "checkbox", "options": ["x", "y"]},
                {"id": "n", "type": "number"},
                {"id": "t", "type": "long_text"},
            ],
            updated_at=_at(1),
        )
        responses = [
            _response({"c": ["y", "x"], "n": 3, "t": "hello"}, submitted_at=_at(2)),
            _response({"c": ["x"], "n": "7", "t": "world"}, submitted_at=_at(3)),
        ]

        def dump():
            return {k: v.model_dump_json() for k, v in aggregate(form, responses).items()}

        assert dump() == dump()


# ---------------------------------------------------------------------------
# timeline()
# ---------------------------------------------------------------------------


class TestTimeline:
    def test_daily_buckets_ascending(self):
        responses = [
            _response({}, submitted_at=_at(12, hour=23)),
            _response({}, submitted_at=_at(10)),
            _response({}, submitted_at=_at(12, hour=1)),
        ]

        buckets = timeline(responses, "daily")

        assert [(b.period, b.count) for b in buckets] == [("2026-02-10", 1), ("2026-02-12", 2)]

    def test_daily_uses_utc_date(self):
        late_evening_west = datetime(2026, 2, 12, 20, 0, tzinfo=timezone(timedelta(hours=-8)))
        assert timeline([_response({}, submitted_at=late_evening_west)])[0].period == "2026-02-13"

    def test_weekly_keys_on_sunday(self):
        responses = [
            _response({}, submitted_at=_at(8)),  # Sunday
            _response({}, submitted_at=_at(12)),  # Thursday
            _response({}, submitted_at=_at(14)),  # Saturday
            _response({}, submitted_at=_at(15)),  # next Sunday
        ]

        buckets = timeline(responses, "weekly")

        assert [(b.period, b.count) for b in buckets] == [("2026-02-08", 3), ("2026-02-15", 1)]

    def test_monthly(self):
        responses = [
            _response({}, submitted_at=datetime(2026, 1, 31, tzinfo=timezone.utc)),
            _response({}, submitted_at=_at(1)),
            _response({}, submitted_at=_at(28)),
        ]
        buckets = timeline(responses, "monthly")
        assert [(b.period, b.count) for b in buckets] == [("2026-01", 1), ("2026-02", 2)]

    def test_undated_responses_are_skipped(self):
        assert timeline([_response({}, submitted_at=None)]) == []

    def test_unknown_granularity_raises(self):
        with pytest.raises(ValueError):
            timeline([], "hourly")


# ---------------------------------------------------------------------------
# form_stats()
# ---------------------------------------------------------------------------


class TestFormStats:
    def test_empty_form(self):
        stats = form_stats(_form([]), [], [])
        assert stats.total_responses == 0
        assert stats.completion_rate == "0.00"
        assert stats.avg_completion_time is None
        assert stats.avg_completion_time_available is False

    def test_counts_and_rates(self):
        now = datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)
        form = _form([{"id": "a"}, {"id": "b"}, {"id": "c"}])
        responses = [
            _response({"a": "x", "b": "y", "c": "z"}, submitted_at=now - timedelta(hours=2)),
            _response({"a": "x", "b": ""}, submitted_at=now - timedelta(days=3), ip="10.0.0.2"),
            _response({"a": "x"}, submitted_at=now - timedelta(days=20), ip="10.0.0.2"),
            _response({}, submitted_at=now - timedelta(days=45), user_agent="other"),
        ]
        views = [
            SimpleNamespace(ip="10.0.0.1", user_agent="pytest"),
            SimpleNamespace(ip="10.0.0.1", user_agent="pytest"),
            SimpleNamespace(ip="10.0.0.9", user_agent="pytest"),
        ]

        stats = form_stats(form, responses, views, now=now)

        assert stats.total_views == 3
        assert stats.unique_views == 2
        assert stats.total_responses == 4
        assert stats.unique_responders == 3
        # (3/3 + 1/3 + 1/3 + 0) / 4
        assert stats.completion_rate == "41.67"
        assert stats.respondents_today == 1
        assert stats.respondents_this_week == 2
        assert stats.respondents_this_month == 3

    def test_empty_checkbox_answer_is_not_filled(self):
        form = _form([{"id": "c", "type": "checkbox", "options": ["a", "b"]}])
        responses = [_response({"c": []}, submitted_at=_at(12))]

        assert aggregate(form, responses)["c"].total_responses == 0
        assert form_stats(form, responses, []).completion_rate == "0.00"

    def test_empty_object_answer_is_not_filled(self):
        form = _form([{"id": "m", "type": "matrix"}, {"id": "t", "type": "short_text"}])
        responses = [_response({"m": {}, "t": "hello"}, submitted_at=_at(12))]

        assert form_stats(form, responses, []).completion_rate == "50.00"


# ---------------------------------------------------------------------------
# HTTP endpoints
# ---------------------------------------------------------------------------


def _stored_form(db, owner, fields=None):
    form = Form(
        owner_id=owner.id,
        title="Survey",
        fields=fields
        or [
            {"id": "color", "type": "radio", "label": "Color", "options": ["Red", "Blue"],
             "created_at": "2026-01-01T00:00:00+00:00"},
            {"id": "age", "type": "number", "label": "Age", "created_at": "2026-01-01T00:00:00+00:00"},
        ],
        settings={"is_public": True},
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    return form


def _stored_response(db, form, answers, submitted_at, ip="1.1.1.1"):
    response = FormResponse(
        form_id=form.id,
        answers=[{"field_id": k, "value": v} for k, v in answers.items()],
        submitted_at=submitted_at,
        ip=ip,
        user_agent="pytest",
    )
    db.add(response)
    db.commit()
    return response


class TestAnalyticsEndpoints:
    def test_field_analytics(self, client, db, user, auth_headers):
        form = _stored_form(db, user)
        _stored_response(db, form, {"color": "Red", "age": 30}, _at(2))
        _stored_response(db, form, {"color": "Blue", "age": "40"}, _at(3))

        resp = client.get(f"/api/v1/forms/{form.id}/analytics/fields", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_responses"] == 2
        assert body["fields"]["color"]["chart_data"]["labels"] == ["Red", "Blue"]
        assert body["fields"]["age"]["stats"]["avg"] == "35.00"

    def test_timeline(self, client, db, user, auth_headers):
        form = _stored_form(db, user)
        _stored_response(db, form, {"color": "Red"}, _at(2))
        _stored_response(db, form, {"color": "Red"}, _at(2, hour=18))

        resp = client.get(
            f"/api/v1/forms/{form.id}/analytics/timeline",
            params={"granularity": "monthly"},
            headers=auth_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["buckets"] == [{"period": "2026-02", "count": 2}]

    def test_timeline_rejects_unknown_granularity(self, client, db, user, auth_headers):
        form = _stored_form(db, user)
        resp = client.get(
            f"/api/v1/forms/{form.id}/analytics/timeline",
            params={"granularity": "hourly"},
            headers=auth_headers,
        )
        assert resp.status_code == 422

    def test_stats(self, client, db, user, auth_headers):
        form = _stored_form(db, user)
        _stored_response(db, form, {"color": "Red", "age": 1}, datetime.now(timezone.utc))
        db.add(FormView(form_id=form.id, ip="1.1.1.1", user_agent="pytest"))
        db.commit()

        resp = client.get(f"/api/v1/forms/{form.id}/analytics/stats", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_views"] == 1
        assert body["completion_rate"] == "100.00"
        assert body["respondents_today"] == 1

    def test_requires_access(self, client, db, user, other_headers):
        form = _stored_form(db, user)
        resp = client.get(f"/api/v1/forms/{form.id}/analytics/stats", headers=other_headers)
        assert resp.status_code == 403

    def test_viewer_share_may_read(self, client, db, user, other_user, other_headers):
        form = _stored_form(db, user)
        db.add(FormShare(form_id=form.id, shared_by_id=user.id, shared_with_id=other_user.id, role="viewer"))
        db.commit()

        resp = client.get(f"/api/v1/forms/{form.id}/analytics/fields", headers=other_headers)

        assert resp.status_code == 200

    def test_missing_form(self, client, auth_headers):
        resp = client.get(
            "/api/v1/forms/00000000-0000-0000-0000-000000000000/analytics/stats",
            headers=auth_headers,
        )
        assert resp.status_code == 404
