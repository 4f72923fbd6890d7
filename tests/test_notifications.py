from concurrent.futures import ThreadPoolExecutor

from geowork.schemas.reference import NotificationConsent
from geowork.services.notifications import (
    Notifier, admin_notice, employee_notice, should_send_notification,
)

from .helpers import FailingPushProvider, RecordingPushProvider, at, make_session


def test_employee_notice_renders_topic_title_and_payload():
    session = make_session()
    message = employee_notice(session, "auto_clock_in", time=at(9)).render()

    assert message["topic"] == "user_e1"
    assert message["title"] == "Automatically Clocked In"
    assert message["body"] == "You've been clocked in at Harbour Depot"
    assert message["data"]["type"] == "auto_clock_in"
    assert message["data"]["sessionId"] == session.id
    assert message["data"]["time"] == at(9).isoformat()


def test_admin_notice_is_addressed_to_company_admins():
    message = admin_notice("c1", "overtime_detected", employeeName="Ada", jobSiteName="Depot",
                           overtimeMinutes=12).render()
    assert message["topic"] == "company_c1_admins"
    assert message["title"] == "Overtime Alert"
    assert message["body"] == "Ada is in overtime at Depot (12 min)"
    assert message["data"]["companyId"] == "c1"


def test_consent_gates_employee_notifications():
    consent = NotificationConsent(notify_on_auto_clock_in=False)
    assert not should_send_notification(consent, "auto_clock_in")
    assert should_send_notification(consent, "auto_clock_out")
    assert should_send_notification(consent, "schedule_ended")
    assert should_send_notification(None, "auto_clock_in")


def test_dispatch_skips_notices_without_consent():
    push = RecordingPushProvider()
    session = make_session(employee_notifications=NotificationConsent(notify_on_break_detection=False))

    queued = Notifier(push, enabled=True).dispatch([
        employee_notice(session, "break_started"),
        employee_notice(session, "auto_clock_out"),
        admin_notice("c1", "session_errors"),
    ])

    assert queued == 2
    assert push.types() == ["auto_clock_out", "session_errors"]


def test_disabled_push_sends_nothing():
    push = RecordingPushProvider()
    assert Notifier(push, enabled=False).dispatch([admin_notice("c1", "session_errors")]) == 0
    assert push.sent == []


def test_transport_failures_are_swallowed():
    failing = FailingPushProvider()
    notifier = Notifier(failing, enabled=True)
    assert notifier.dispatch([admin_notice("c1", "session_errors"), admin_notice("c1", "session_errors")]) == 2
    assert failing.attempts == 2


def test_pooled_dispatch_does_not_block_the_caller():
    push = RecordingPushProvider()
    notifier = Notifier(push, executor=ThreadPoolExecutor(max_workers=1), enabled=True)
    notifier.dispatch([admin_notice("c1", "session_errors")])
    notifier.shutdown()
    assert push.types() == ["session_errors"]
