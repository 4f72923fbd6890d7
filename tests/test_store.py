from geowork.schemas.session import SessionStatus
from geowork.store.provider import ArchiveSession, CreateSession, UpdateSession

from .helpers import at, insert_session, make_session, report_location


def test_create_is_skipped_when_schedule_already_has_a_session(store):
    insert_session(store, make_session())
    duplicate = make_session()

    applied = store.commit([CreateSession(duplicate)])

    assert applied == []
    assert store.get_session(duplicate.id) is None
    assert store.session_exists_for_schedule("sch1")


def test_guarded_update_applies_and_advances_revision(store):
    session = insert_session(store, make_session())
    working = session.model_copy(deep=True)
    working.status = SessionStatus.clocked_in

    applied = store.commit([UpdateSession(working, session.status, session.revision)])

    assert len(applied) == 1
    stored = store.get_session(session.id)
    assert stored.status == SessionStatus.clocked_in
    assert stored.revision == session.revision + 1
    assert working.revision == stored.revision


def test_stale_update_loses_the_race(store):
    session = insert_session(store, make_session())
    first = session.model_copy(deep=True)
    first.status = SessionStatus.clocked_in
    second = session.model_copy(deep=True)
    second.status = SessionStatus.no_show

    store.commit([UpdateSession(first, session.status, session.revision)])
    applied = store.commit([UpdateSession(second, session.status, session.revision)])

    assert applied == []
    assert store.get_session(session.id).status == SessionStatus.clocked_in


def test_find_sessions_filters(store):
    insert_session(store, make_session(schedule_id="a", employee_present=True))
    insert_session(store, make_session(schedule_id="b", scheduled_start_time=at(10), scheduled_end_time=at(18)))
    insert_session(store, make_session(schedule_id="c", status=SessionStatus.clocked_in))
    insert_session(store, make_session(schedule_id="d", company_id="c2"))

    active = store.find_sessions("c1", [SessionStatus.monitoring_active])
    assert [s.schedule_id for s in active] == ["a", "b"]

    absent = store.find_sessions("c1", [SessionStatus.monitoring_active], employee_present=False)
    assert [s.schedule_id for s in absent] == ["b"]

    started = store.find_sessions("c1", [SessionStatus.monitoring_active], scheduled_start_before=at(9, 30))
    assert [s.schedule_id for s in started] == ["a"]

    limited = store.find_sessions("c1", list(SessionStatus), limit=2)
    assert len(limited) == 2


def test_archive_moves_session_out_of_live_collection(store):
    session = insert_session(store, make_session(status=SessionStatus.completed))

    applied = store.commit([ArchiveSession(session, session.status, session.revision)])

    assert len(applied) == 1
    assert store.get_session(session.id) is None
    assert not store.session_exists_for_schedule("sch1")


def test_latest_location_returns_newest_fix(store):
    report_location(store, "e1", at(9), inside=False)
    report_location(store, "e1", at(9, 5))
    report_location(store, "e2", at(9, 10), inside=False)

    fix = store.latest_location("e1")
    assert fix.timestamp == at(9, 5)
    assert store.latest_location("nobody") is None


def test_working_session_for_employee(store):
    insert_session(store, make_session(schedule_id="a"))
    assert store.working_session_for_employee("e1") is None
    clocked = insert_session(store, make_session(schedule_id="b", status=SessionStatus.clocked_in))
    assert store.working_session_for_employee("e1").id == clocked.id


def test_reference_lookups(store, session_factory):
    from .helpers import seed_world

    seed_world(session_factory, policy={"minimumTimeAtSite": 10})

    assert store.list_company_ids() == ["c1"]
    assert store.get_employee("e1").display_name == "Ada Lovelace"
    assert store.get_job_site("s1").radius == 100
    assert store.get_company_policy("c1").minimum_time_at_site == 10
    assert store.get_company_policy("c1").clock_in_buffer == 15
    assert store.get_notification_consent("e1").consent_given
    assert store.get_company_policy("missing") is None
    due = store.due_schedules("c1", at(8, 40), at(9))
    assert [s.id for s in due] == ["sch1"]
