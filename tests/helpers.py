from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytz

from geowork.errors import NotificationDispatchError
from geowork.models import models as m
from geowork.push.provider import PushProvider
from geowork.schemas.reference import LocationFix
from geowork.schemas.session import ScheduleSession, SessionStatus
from geowork.store.provider import CreateSession

SITE_LAT = 52.5200
SITE_LON = 13.4050
# roughly 1.1 km north of the site
OUTSIDE_LAT = 52.5300


def at(hour: int, minute: int = 0, day: int = 6) -> datetime:
    return datetime(2026, 10, day, hour, minute, tzinfo=pytz.UTC)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, day: int = 6) -> datetime:
        self.now = at(hour, minute, day)
        return self.now

    def advance(self, minutes: int = 1) -> datetime:
        self.now = self.now + timedelta(minutes=minutes)
        return self.now


class RecordingPushProvider(PushProvider):
    def __init__(self):
        self.sent: List[Dict] = []

    def send(self, topic, title, body, data):
        self.sent.append({"topic": topic, "title": title, "body": body, "data": data})

    def types(self, topic: Optional[str] = None) -> List[str]:
        return [s["data"]["type"] for s in self.sent if topic is None or s["topic"] == topic]


class FailingPushProvider(PushProvider):
    def __init__(self):
        self.attempts = 0

    def send(self, topic, title, body, data):
        self.attempts += 1
        raise NotificationDispatchError("transport down")


def seed_world(
    session_factory,
    *,
    company_id: str = "c1",
    employee_id: str = "e1",
    job_site_id: str = "s1",
    schedule_id: str = "sch1",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    radius: float = 100,
    policy: Optional[dict] = None,
    consent: Optional[dict] = None,
    with_company: bool = True,
    with_employee: bool = True,
    with_settings: bool = True,
) -> None:
    """Company, employee, job site, policy, consent and one 09:00-17:00 shift."""
    rows = []
    if with_company:
        rows.append(m.Company(id=company_id, name="Acme Builders"))
        rows.append(m.JobSite(id=job_site_id, company_id=company_id, site_name="Harbour Depot",
                              latitude=SITE_LAT, longitude=SITE_LON, radius_m=radius))
    if with_employee:
        rows.append(m.User(id=employee_id, company_id=company_id, first_name="Ada", last_name="Lovelace"))
    if with_settings:
        rows.append(m.CompanySettings(company_id=company_id, policy=policy or {}))
        rows.append(m.EmployeeNotificationSettings(
            employee_id=employee_id,
            settings={"consentGiven": True, "autoTrackingEnabled": True, **(consent or {})},
        ))
    rows.append(m.Schedule(
        id=schedule_id,
        company_id=company_id,
        employee_id=employee_id,
        job_site_id=job_site_id,
        start_time=start or at(9),
        end_time=end or at(17),
    ))
    with session_factory() as db, db.begin():
        db.add_all(rows)


def report_location(store, employee_id: str, when: datetime, inside: bool = True, accuracy: float = 10.0) -> None:
    lat = SITE_LAT if inside else OUTSIDE_LAT
    store.add_location(employee_id, LocationFix(latitude=lat, longitude=SITE_LON, accuracy=accuracy, timestamp=when))


def make_session(**overrides) -> ScheduleSession:
    fields = dict(
        schedule_id="sch1",
        employee_id="e1",
        employee_name="Ada Lovelace",
        job_site_id="s1",
        job_site_name="Harbour Depot",
        company_id="c1",
        scheduled_start_time=at(9),
        scheduled_end_time=at(17),
        status=SessionStatus.monitoring_active,
        monitoring_started=at(8, 50),
        last_health_check=at(8, 50),
        total_scheduled_time=480,
        created_at=at(8, 50),
        updated_at=at(8, 50),
    )
    fields.update(overrides)
    return ScheduleSession(**fields)


def insert_session(store, session: ScheduleSession) -> ScheduleSession:
    store.commit([CreateSession(session)])
    return store.get_session(session.id)


def only_session(store, company_id: str = "c1") -> ScheduleSession:
    sessions = store.find_sessions(company_id, list(SessionStatus))
    assert len(sessions) == 1
    return sessions[0]
