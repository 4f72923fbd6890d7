"""
SQLAlchemy-backed document store.
Sessions are kept as JSON documents next to the scalar columns they are queried by.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import BatchWriteError, StoreError
from ..models import models as m
from ..schemas.alert import GeofenceAlert
from ..schemas.reference import Company, CompanyPolicy, Employee, JobSite, LocationFix, NotificationConsent, Schedule
from ..schemas.session import ScheduleSession, SessionStatus
from ..services.state_machine import WORKING_STATUSES
from ..services.time_rules import utcnow
from .provider import ArchiveSession, CreateSession, SessionStore, UpdateSession, Write

logger = structlog.get_logger(__name__)


def _index_columns(session: ScheduleSession) -> dict:
    return {
        "company_id": session.company_id,
        "employee_id": session.employee_id,
        "status": session.status.value,
        "scheduled_start_time": session.scheduled_start_time,
        "scheduled_end_time": session.scheduled_end_time,
        "employee_present": session.employee_present,
        "currently_on_break": session.currently_on_break,
        "is_in_overtime": session.is_in_overtime,
        "last_health_check": session.last_health_check,
        "updated_at": session.updated_at,
    }


def _to_session(row: m.ScheduleSessionRecord) -> ScheduleSession:
    session = ScheduleSession.model_validate(row.document)
    session.revision = row.revision
    return session


def _to_alert(row: m.GeofenceAlert) -> GeofenceAlert:
    return GeofenceAlert(
        id=row.id,
        employee_id=row.employee_id,
        company_id=row.company_id,
        job_site_id=row.job_site_id,
        distance=row.distance,
        first_detected=row.first_detected,
        last_seen=row.last_seen,
        last_push_at=row.last_push_at,
        active=row.active,
        resolved_at=row.resolved_at,
    )


class SqlSessionStore(SessionStore):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _read(self) -> Iterator[Session]:
        try:
            with self._session_factory() as db:
                yield db
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    # Reference data

    def list_company_ids(self) -> List[str]:
        with self._read() as db:
            return list(db.scalars(select(m.Company.id).where(m.Company.active.is_(True)).order_by(m.Company.id)))

    def get_company(self, company_id: str) -> Optional[Company]:
        with self._read() as db:
            row = db.get(m.Company, company_id)
            if row is None:
                return None
            return Company(id=row.id, name=row.name, active=row.active)

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        with self._read() as db:
            row = db.get(m.User, employee_id)
            if row is None:
                return None
            return Employee(id=row.id, company_id=row.company_id, first_name=row.first_name, last_name=row.last_name)

    def get_job_site(self, job_site_id: str) -> Optional[JobSite]:
        with self._read() as db:
            row = db.get(m.JobSite, job_site_id)
            if row is None:
                return None
            return JobSite(
                id=row.id,
                company_id=row.company_id,
                site_name=row.site_name,
                latitude=row.latitude,
                longitude=row.longitude,
                radius=row.radius_m or 0,
            )

    def get_company_policy(self, company_id: str) -> Optional[CompanyPolicy]:
        with self._read() as db:
            row = db.get(m.CompanySettings, company_id)
            if row is None:
                return None
            return CompanyPolicy.model_validate(row.policy or {})

    def get_notification_consent(self, employee_id: str) -> Optional[NotificationConsent]:
        with self._read() as db:
            row = db.get(m.EmployeeNotificationSettings, employee_id)
            if row is None:
                return None
            return NotificationConsent.model_validate(row.settings or {})

    # Location feed

    def latest_location(self, employee_id: str) -> Optional[LocationFix]:
        with self._read() as db:
            row = db.scalars(
                select(m.LocationEntry)
                .where(m.LocationEntry.employee_id == employee_id)
                .order_by(m.LocationEntry.recorded_at.desc())
                .limit(1)
            ).first()
            if row is None:
                return None
            return LocationFix(
                latitude=row.latitude,
                longitude=row.longitude,
                accuracy=row.accuracy if row.accuracy is not None else 50.0,
                timestamp=row.recorded_at,
            )

    def add_location(self, employee_id: str, fix: LocationFix) -> None:
        try:
            with self._session_factory() as db, db.begin():
                db.add(m.LocationEntry(
                    employee_id=employee_id,
                    latitude=fix.latitude,
                    longitude=fix.longitude,
                    accuracy=fix.accuracy,
                    recorded_at=fix.timestamp,
                    created_at=utcnow(),
                ))
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    # Schedules and sessions

    def due_schedules(self, company_id: str, start_after: datetime, start_until: datetime) -> List[Schedule]:
        with self._read() as db:
            rows = db.scalars(
                select(m.Schedule).where(
                    m.Schedule.company_id == company_id,
                    m.Schedule.status == "scheduled",
                    m.Schedule.start_time > start_after,
                    m.Schedule.start_time <= start_until,
                ).order_by(m.Schedule.start_time)
            )
            return [
                Schedule(
                    id=r.id,
                    company_id=r.company_id,
                    employee_id=r.employee_id,
                    job_site_id=r.job_site_id,
                    start_time=r.start_time,
                    end_time=r.end_time,
                    status=r.status,
                )
                for r in rows
            ]

    def session_exists_for_schedule(self, schedule_id: str) -> bool:
        with self._read() as db:
            return db.scalar(
                select(m.ScheduleSessionRecord.id).where(m.ScheduleSessionRecord.schedule_id == schedule_id).limit(1)
            ) is not None

    def get_session(self, session_id: str) -> Optional[ScheduleSession]:
        with self._read() as db:
            row = db.get(m.ScheduleSessionRecord, session_id)
            return _to_session(row) if row is not None else None

    def find_sessions(
        self,
        company_id: str,
        statuses: Iterable[SessionStatus],
        *,
        employee_present: Optional[bool] = None,
        currently_on_break: Optional[bool] = None,
        is_in_overtime: Optional[bool] = None,
        scheduled_start_before: Optional[datetime] = None,
        scheduled_end_before: Optional[datetime] = None,
        last_health_check_before: Optional[datetime] = None,
        updated_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[ScheduleSession]:
        rec = m.ScheduleSessionRecord
        query = select(rec).where(
            rec.company_id == company_id,
            rec.status.in_([s.value for s in statuses]),
        )
        if employee_present is not None:
            query = query.where(rec.employee_present == employee_present)
        if currently_on_break is not None:
            query = query.where(rec.currently_on_break == currently_on_break)
        if is_in_overtime is not None:
            query = query.where(rec.is_in_overtime == is_in_overtime)
        if scheduled_start_before is not None:
            query = query.where(rec.scheduled_start_time < scheduled_start_before)
        if scheduled_end_before is not None:
            query = query.where(rec.scheduled_end_time <= scheduled_end_before)
        if last_health_check_before is not None:
            query = query.where(rec.last_health_check < last_health_check_before)
        if updated_before is not None:
            query = query.where(rec.updated_at < updated_before)
        query = query.order_by(rec.scheduled_start_time, rec.id)
        if limit:
            query = query.limit(limit)

        with self._read() as db:
            return [_to_session(row) for row in db.scalars(query)]

    def working_session_for_employee(self, employee_id: str) -> Optional[ScheduleSession]:
        rec = m.ScheduleSessionRecord
        with self._read() as db:
            row = db.scalars(
                select(rec)
                .where(rec.employee_id == employee_id, rec.status.in_([s.value for s in WORKING_STATUSES]))
                .order_by(rec.scheduled_start_time.desc())
                .limit(1)
            ).first()
            return _to_session(row) if row is not None else None

    def commit(self, writes: List[Write]) -> List[Write]:
        applied: List[Write] = []
        try:
            with self._session_factory() as db, db.begin():
                for write in writes:
                    if self._apply(db, write):
                        applied.append(write)
        except SQLAlchemyError as e:
            logger.error("batch_write_failed", writes=len(writes), error=str(e))
            raise BatchWriteError(str(e)) from e

        # revisions only advance once the transaction is durable
        for write in applied:
            if not isinstance(write, CreateSession):
                write.session.revision = write.expected_revision + 1
        return applied

    def _apply(self, db: Session, write: Write) -> bool:
        rec = m.ScheduleSessionRecord
        session = write.session

        if isinstance(write, CreateSession):
            if db.scalar(select(rec.id).where(rec.schedule_id == session.schedule_id)) is not None:
                logger.info("session_create_skipped", schedule_id=session.schedule_id, reason="exists")
                return False
            db.add(rec(id=session.id, schedule_id=session.schedule_id, revision=0,
                       document=session.to_document(), **_index_columns(session)))
            db.flush()
            return True

        guard = (
            rec.id == session.id,
            rec.status == write.expected_status.value,
            rec.revision == write.expected_revision,
        )

        if isinstance(write, UpdateSession):
            result = db.execute(
                update(rec)
                .where(*guard)
                .values(revision=write.expected_revision + 1, document=session.to_document(), **_index_columns(session))
                .execution_options(synchronize_session=False)
            )
        elif isinstance(write, ArchiveSession):
            result = db.execute(delete(rec).where(*guard).execution_options(synchronize_session=False))
            if result.rowcount == 1:
                db.add(m.ArchivedScheduleSession(
                    id=session.id,
                    schedule_id=session.schedule_id,
                    company_id=session.company_id,
                    status=session.status.value,
                    archived_at=utcnow(),
                    document=session.to_document(),
                ))
        else:
            raise TypeError(f"unsupported write {type(write).__name__}")

        if result.rowcount != 1:
            logger.info("guarded_write_skipped", session_id=session.id, expected_status=write.expected_status.value)
            return False
        return True

    # Geofence alerts

    def active_geofence_alert(self, employee_id: str) -> Optional[GeofenceAlert]:
        with self._read() as db:
            row = db.scalars(
                select(m.GeofenceAlert)
                .where(m.GeofenceAlert.employee_id == employee_id, m.GeofenceAlert.active.is_(True))
                .limit(1)
            ).first()
            return _to_alert(row) if row is not None else None

    def save_geofence_alert(self, alert: GeofenceAlert) -> None:
        try:
            with self._session_factory() as db, db.begin():
                row = db.get(m.GeofenceAlert, alert.id)
                if row is None:
                    row = m.GeofenceAlert(id=alert.id)
                    db.add(row)
                row.employee_id = alert.employee_id
                row.company_id = alert.company_id
                row.job_site_id = alert.job_site_id
                row.distance = alert.distance
                row.first_detected = alert.first_detected
                row.last_seen = alert.last_seen
                row.last_push_at = alert.last_push_at
                row.active = alert.active
                row.resolved_at = alert.resolved_at
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
