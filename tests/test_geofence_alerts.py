import pytest

from geowork.schemas.session import SessionStatus
from geowork.services.geofence_alerts import GeofenceAlertMonitor
from geowork.schemas.reference import LocationFix

from .helpers import OUTSIDE_LAT, SITE_LAT, SITE_LON, at, insert_session, make_session, seed_world


def fix(lat, when):
    return LocationFix(latitude=lat, longitude=SITE_LON, accuracy=10, timestamp=when)


@pytest.fixture
def monitor(store, notifier, config, session_factory):
    seed_world(session_factory)
    return GeofenceAlertMonitor(store, notifier, config=config)


def test_alert_opens_reminds_and_resolves(monitor, store, push):
    insert_session(store, make_session(status=SessionStatus.clocked_in, clocked_in=True, clock_in_time=at(9)))

    alert = monitor.process("e1", fix(OUTSIDE_LAT, at(11)), at(11))
    assert alert.active
    assert alert.distance > 1000
    assert push.sent[-1]["title"] == "Employee outside geofence"
    assert push.sent[-1]["topic"] == "company_c1_admins"
    assert push.sent[-1]["data"]["employeeId"] == "e1"

    refreshed = monitor.process("e1", fix(OUTSIDE_LAT, at(11, 5)), at(11, 5))
    assert refreshed.id == alert.id
    assert refreshed.last_seen == at(11, 5)
    assert len(push.sent) == 1

    monitor.process("e1", fix(OUTSIDE_LAT, at(11, 10)), at(11, 10))
    assert len(push.sent) == 2
    assert push.sent[-1]["title"] == "Employee still outside geofence"

    resolved = monitor.process("e1", fix(SITE_LAT, at(11, 12)), at(11, 12))
    assert not resolved.active
    assert resolved.resolved_at == at(11, 12)
    assert push.sent[-1]["title"] == "Geofence alert resolved"
    assert store.active_geofence_alert("e1") is None


def test_no_alert_without_a_working_session(monitor, store, push):
    insert_session(store, make_session(status=SessionStatus.monitoring_active))

    assert monitor.process("e1", fix(OUTSIDE_LAT, at(8, 55)), at(8, 55)) is None
    assert store.active_geofence_alert("e1") is None
    assert push.sent == []


def test_alert_resolves_once_the_employee_clocks_out(monitor, store, push):
    session = insert_session(store, make_session(status=SessionStatus.on_break, clocked_in=True, clock_in_time=at(9)))
    monitor.process("e1", fix(OUTSIDE_LAT, at(12)), at(12))
    assert store.active_geofence_alert("e1") is not None

    from geowork.store.provider import UpdateSession

    clocked_out = session.model_copy(deep=True)
    clocked_out.status = SessionStatus.clocked_out
    store.commit([UpdateSession(clocked_out, session.status, session.revision)])

    resolved = monitor.process("e1", fix(OUTSIDE_LAT, at(12, 20)), at(12, 20))
    assert not resolved.active
