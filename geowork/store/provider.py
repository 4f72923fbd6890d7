from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Union

from ..schemas.alert import GeofenceAlert
from ..schemas.reference import Company, CompanyPolicy, Employee, JobSite, LocationFix, NotificationConsent, Schedule
from ..schemas.session import ScheduleSession, SessionStatus


@dataclass
class CreateSession:
    """Insert a new session unless one already exists for its schedule."""
    session: ScheduleSession


@dataclass
class UpdateSession:
    """Replace a session document only if it is still in the state it was read in."""
    session: ScheduleSession
    expected_status: SessionStatus
    expected_revision: int


@dataclass
class ArchiveSession:
    """Copy a session to the archive and remove it from the live collection, guarded like an update."""
    session: ScheduleSession
    expected_status: SessionStatus
    expected_revision: int


Write = Union[CreateSession, UpdateSession, ArchiveSession]


class SessionStore:
    # Reference data (read-only)

    def list_company_ids(self) -> List[str]:
        raise NotImplementedError

    def get_company(self, company_id: str) -> Optional[Company]:
        raise NotImplementedError

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_job_site(self, job_site_id: str) -> Optional[JobSite]:
        raise NotImplementedError

    def get_company_policy(self, company_id: str) -> Optional[CompanyPolicy]:
        raise NotImplementedError

    def get_notification_consent(self, employee_id: str) -> Optional[NotificationConsent]:
        raise NotImplementedError

    # Location feed

    def latest_location(self, employee_id: str) -> Optional[LocationFix]:
        raise NotImplementedError

    def add_location(self, employee_id: str, fix: LocationFix) -> None:
        raise NotImplementedError

    # Schedules and sessions

    def due_schedules(self, company_id: str, start_after: datetime, start_until: datetime) -> List[Schedule]:
        raise NotImplementedError

    def session_exists_for_schedule(self, schedule_id: str) -> bool:
        raise NotImplementedError

    def get_session(self, session_id: str) -> Optional[ScheduleSession]:
        raise NotImplementedError

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
        raise NotImplementedError

    def working_session_for_employee(self, employee_id: str) -> Optional[ScheduleSession]:
        raise NotImplementedError

    def commit(self, writes: List[Write]) -> List[Write]:
        """
        Apply writes as one atomic batch.

        Returns the writes that took effect; guarded writes whose document moved on
        since it was read are skipped. Raises BatchWriteError if the batch fails,
        in which case nothing was applied.
        """
        raise NotImplementedError

    # Geofence alerts

    def active_geofence_alert(self, employee_id: str) -> Optional[GeofenceAlert]:
        raise NotImplementedError

    def save_geofence_alert(self, alert: GeofenceAlert) -> None:
        raise NotImplementedError
