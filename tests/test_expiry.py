from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.runtime_state import last_sweep
from app.services import expiry
from app.services.alert_queries import get_alert, list_alerts
from app.services.expiry import sweep_before_read, sweep_expired_alerts
from app.utils.time import utcnow


def test_alert_past_expiry_is_inactive_on_next_read(db_session, make_alert):
    alert = make_alert(expires_at=utcnow() - timedelta(seconds=1))

    fetched = get_alert(db_session, alert.id)

    assert fetched.active is False


def test_sweep_is_idempotent(db_session, make_alert):
    expired = make_alert(expires_at=utcnow() - timedelta(minutes=1))
    fresh = make_alert(expires_at=utcnow() + timedelta(hours=1))

    assert sweep_expired_alerts(db_session) == 1
    db_session.refresh(expired)
    version_after_first = expired.version
    assert sweep_expired_alerts(db_session) == 0

    db_session.refresh(expired)
    db_session.refresh(fresh)
    assert expired.active is False
    assert expired.version == version_after_first
    assert fresh.active is True


def test_sweep_records_outcome(db_session, make_alert):
    make_alert(expires_at=utcnow() - timedelta(minutes=1))
    sweep_expired_alerts(db_session)

    state = last_sweep()
    assert state["ok"] is True
    assert state["expired"] == 1


def test_expired_alerts_drop_out_of_active_listing(db_session, make_alert):
    make_alert(title="stale", expires_at=utcnow() - timedelta(seconds=1))
    live = make_alert(title="live")

    page = list_alerts(db_session)

    assert [item.id for item in page["items"]] == [live.id]
    assert page["pagination"]["total"] == 1


def test_sweep_failure_does_not_fail_reads(db_session, make_alert, monkeypatch):
    alert = make_alert()

    def _broken(db, *, now=None):
        raise OperationalError("UPDATE alerts", {}, Exception("database is locked"))

    monkeypatch.setattr(expiry, "sweep_expired_alerts", _broken)

    assert sweep_before_read(db_session) == 0
    assert last_sweep()["ok"] is False
    assert get_alert(db_session, alert.id).id == alert.id


@pytest.mark.parametrize("offset", [timedelta(seconds=-5), timedelta(seconds=5)])
def test_sweep_uses_reference_time(db_session, make_alert, offset):
    reference = utcnow()
    alert = make_alert(expires_at=reference + offset)

    sweep_expired_alerts(db_session, now=reference)
    db_session.refresh(alert)

    assert alert.active is (offset > timedelta(0))
