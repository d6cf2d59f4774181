from datetime import timedelta

import pytest

from app.models.alert import AlertKind, AlertSeverity, ReportKind
from app.services.alert_queries import get_alert
from app.services.alerts import append_report, create_alert, soft_delete_alert, update_alert
from app.utils.errors import Forbidden, InvalidInput, NotFound, ValidationError
from app.utils.time import ensure_utc, utcnow


def _fields(**overrides):
    fields = {
        "title": "Protest on 7th avenue",
        "description": "Road closed between 19th and 26th street.",
        "coordinates": [-74.06, 4.65],
    }
    fields.update(overrides)
    return fields


def test_create_alert_builds_point_and_defaults(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")

    assert (alert.longitude, alert.latitude) == (-74.06, 4.65)
    assert alert.creator_id == "user-owner"
    assert alert.kind is AlertKind.traffic
    assert alert.severity is AlertSeverity.medium
    assert alert.active is True


def test_create_alert_requires_creator(db_session):
    with pytest.raises(InvalidInput) as excinfo:
        create_alert(db_session, _fields(), None)
    assert "creator_id" in excinfo.value.details


@pytest.mark.parametrize(
    "fields",
    [
        _fields(title=None),
        _fields(description="   "),
        _fields(coordinates=[-74.06]),
        _fields(coordinates="north"),
        {"title": "No location", "description": "Missing coordinates"},
    ],
)
def test_create_alert_rejects_malformed_input(db_session, fields):
    with pytest.raises(InvalidInput):
        create_alert(db_session, fields, "user-owner")


def test_create_alert_out_of_range_is_validation_error(db_session):
    with pytest.raises(ValidationError):
        create_alert(db_session, _fields(coordinates=[200, 10]), "user-owner")


def test_update_alert_by_owner(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")

    updated = update_alert(
        db_session, alert.id, {"severity": "high", "coordinates": [-74.07, 4.66]}, "user-owner"
    )

    assert updated.severity is AlertSeverity.high
    assert (updated.longitude, updated.latitude) == (-74.07, 4.66)


def test_update_alert_by_other_user_is_forbidden(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")

    with pytest.raises(Forbidden):
        update_alert(db_session, alert.id, {"title": "Hijacked"}, "user-other")

    db_session.refresh(alert)
    assert alert.title == "Protest on 7th avenue"


def test_update_missing_alert_is_not_found_before_ownership(db_session):
    with pytest.raises(NotFound):
        update_alert(db_session, 999_999, {"title": "Ghost"}, "user-other")


@pytest.mark.parametrize("patch", [{"active": False}, {"creator_id": "me"}, {"reports": []}, {"id": 3}])
def test_update_rejects_immutable_fields(db_session, patch):
    alert = create_alert(db_session, _fields(), "user-owner")
    with pytest.raises(InvalidInput):
        update_alert(db_session, alert.id, patch, "user-owner")


def test_update_store_violation_is_validation_error(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")
    with pytest.raises(ValidationError):
        update_alert(db_session, alert.id, {"title": "x" * 200, "severity": "extreme"}, "user-owner")


def test_soft_delete_is_idempotent(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")

    first = soft_delete_alert(db_session, alert.id, "user-owner")
    second = soft_delete_alert(db_session, alert.id, "user-owner")

    assert first == second == {"id": alert.id, "active": False, "message": "Alert marked as inactive."}
    db_session.refresh(alert)
    assert alert.active is False


def test_soft_delete_checks_ownership(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")
    with pytest.raises(Forbidden):
        soft_delete_alert(db_session, alert.id, "user-other")
    with pytest.raises(NotFound):
        soft_delete_alert(db_session, alert.id + 1000, "user-owner")


def test_any_user_may_report(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")

    append_report(db_session, alert.id, "user-other", "Still blocked")
    updated = append_report(db_session, alert.id, "user-owner", "Police on site", "update")

    assert [r.user_id for r in updated.reports] == ["user-other", "user-owner"]
    assert updated.reports[1].kind is ReportKind.update
    assert ensure_utc(updated.reports[1].created_at) > ensure_utc(updated.reports[0].created_at)


@pytest.mark.parametrize(
    ("user_id", "comment", "kind"),
    [(None, "hi", "confirmation"), ("u1", "  ", "confirmation"), ("u1", "hi", "rumour")],
)
def test_append_report_invalid_input(db_session, user_id, comment, kind):
    alert = create_alert(db_session, _fields(), "user-owner")
    with pytest.raises(InvalidInput):
        append_report(db_session, alert.id, user_id, comment, kind)


def test_append_report_missing_alert(db_session):
    with pytest.raises(NotFound):
        append_report(db_session, 999_999, "u1", "Anyone?")


def test_create_alert_keeps_explicit_expiry(db_session):
    expires_at = utcnow() + timedelta(hours=3)
    alert = create_alert(db_session, _fields(expires_at=expires_at.isoformat()), "user-owner")
    assert abs((ensure_utc(alert.expires_at) - expires_at).total_seconds()) < 1


def test_append_report_comment_too_long_is_invalid_input(db_session):
    alert = create_alert(db_session, _fields(), "user-owner")
    with pytest.raises(InvalidInput) as excinfo:
        append_report(db_session, alert.id, "u1", "x" * 501)
    assert "comment" in excinfo.value.details


@pytest.mark.parametrize("patch", [{"coordinates": None}, {"expires_at": None}])
def test_update_rejects_null_for_required_fields(db_session, patch):
    alert = create_alert(db_session, _fields(), "user-owner")
    with pytest.raises(InvalidInput):
        update_alert(db_session, alert.id, patch, "user-owner")


def test_owner_cannot_revive_expired_alert(db_session, make_alert):
    alert = make_alert(creator_id="user-owner", expires_at=utcnow() - timedelta(minutes=5))

    updated = update_alert(
        db_session, alert.id, {"expires_at": (utcnow() + timedelta(hours=5)).isoformat()}, "user-owner"
    )
    assert updated.active is False

    assert get_alert(db_session, alert.id).active is False


def test_report_on_expired_alert_shows_it_inactive(db_session, make_alert):
    alert = make_alert(expires_at=utcnow() - timedelta(minutes=5))

    updated = append_report(db_session, alert.id, "user-other", "Is this still happening?")

    assert updated.active is False
    assert len(updated.reports) == 1


def test_soft_delete_of_expired_alert_is_confirmed_without_write(db_session, make_alert):
    alert = make_alert(creator_id="user-owner", expires_at=utcnow() - timedelta(minutes=5))

    result = soft_delete_alert(db_session, alert.id, "user-owner")

    assert result["active"] is False
    db_session.refresh(alert)
    assert alert.active is False
