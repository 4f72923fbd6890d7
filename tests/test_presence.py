from geowork.schemas.reference import CompanyPolicy, NotificationConsent
from geowork.schemas.session import OvertimeSettings, SessionStatus
from geowork.services.presence import should_auto_clock_in, should_auto_clock_out

from .helpers import at, make_session


def present(**overrides):
    fields = dict(
        employee_present=True,
        arrival_time=at(8, 40),
        employee_notifications=NotificationConsent(consent_given=True),
    )
    fields.update(overrides)
    return make_session(**fields)


def test_clock_in_waits_for_buffer_window():
    session = present()
    assert not should_auto_clock_in(session, at(8, 44))
    assert should_auto_clock_in(session, at(8, 45))


def test_clock_in_waits_for_dwell_time():
    session = present(arrival_time=at(8, 58))
    assert not should_auto_clock_in(session, at(9, 2))
    assert should_auto_clock_in(session, at(9, 3))


def test_clock_in_requires_tracking_consent():
    session = present(employee_notifications=NotificationConsent(consent_given=True, auto_tracking_enabled=False))
    assert not should_auto_clock_in(session, at(9, 10))


def test_clock_in_is_a_no_op_once_clocked_in():
    session = present(status=SessionStatus.clocked_in, clocked_in=True, clock_in_time=at(9))
    assert not should_auto_clock_in(session, at(9, 10))


def test_clock_out_on_geofence_exit_when_enabled():
    session = make_session(company_settings=CompanyPolicy(geofence_auto_clock_out=True))
    assert should_auto_clock_out(session, at(12))


def test_clock_out_at_end_only_after_threshold():
    session = make_session(
        company_settings=CompanyPolicy(geofence_auto_clock_out=False),
        overtime_detection=OvertimeSettings(auto_clock_out_at_end=True, threshold_minutes=15),
    )
    assert not should_auto_clock_out(session, at(12))
    assert not should_auto_clock_out(session, at(17, 15))
    assert should_auto_clock_out(session, at(17, 16))
