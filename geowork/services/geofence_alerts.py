"""
Geofence breach alerts.

Runs after every location fix is stored. An employee on the clock who is
outside their job site gets one active alert; admins are pushed when it opens,
reminded at most once per throttle window while it stays open, and told when
it resolves.
"""
from datetime import datetime
from typing import Optional

import structlog

from ..config import Settings, settings as default_settings
from ..schemas.alert import GeofenceAlert
from ..schemas.reference import LocationFix
from ..store.provider import SessionStore
from .geofence import inside_geofence
from .notifications import Notice, Notifier, admin_notice
from .time_rules import elapsed_minutes

logger = structlog.get_logger(__name__)

ALERT_TYPE = "geofence_alert"


def _alert_notice(alert: GeofenceAlert, title: str, body: str) -> Notice:
    notice = admin_notice(alert.company_id, ALERT_TYPE, employeeId=alert.employee_id, jobSiteId=alert.job_site_id)
    notice.title = title
    notice.body = body
    return notice


class GeofenceAlertMonitor:
    def __init__(self, store: SessionStore, notifier: Notifier, config: Optional[Settings] = None):
        self.store = store
        self.notifier = notifier
        self.config = config or default_settings

    def process(self, employee_id: str, fix: LocationFix, now: datetime) -> Optional[GeofenceAlert]:
        """
        Open, refresh or resolve the employee's geofence alert for a new fix.

        Returns the alert that was touched, if any.
        """
        active = self.store.active_geofence_alert(employee_id)
        session = self.store.working_session_for_employee(employee_id)
        job_site = self.store.get_job_site(session.job_site_id) if session is not None else None

        outside = False
        distance = 0.0
        if session is not None and job_site is not None:
            is_inside, distance, _ = inside_geofence(fix, job_site, self.config.gps_accuracy_risk_m)
            outside = not is_inside

        if outside:
            if active is None:
                return self._open(session.employee_id, session.company_id, session.job_site_id, distance, now)
            return self._refresh(active, distance, now)

        if active is not None:
            return self._resolve(active, now)
        return None

    def _open(self, employee_id: str, company_id: str, job_site_id: str, distance: float, now: datetime) -> GeofenceAlert:
        alert = GeofenceAlert(
            employee_id=employee_id,
            company_id=company_id,
            job_site_id=job_site_id,
            distance=distance,
            first_detected=now,
            last_seen=now,
            last_push_at=now,
        )
        self.store.save_geofence_alert(alert)
        logger.info("geofence_alert_opened", employee_id=employee_id, company_id=company_id, distance=round(distance))
        self.notifier.dispatch([_alert_notice(
            alert,
            "Employee outside geofence",
            f"Employee {employee_id} is {round(distance)}m outside job site {job_site_id}",
        )])
        return alert

    def _refresh(self, alert: GeofenceAlert, distance: float, now: datetime) -> GeofenceAlert:
        alert.last_seen = now
        alert.distance = distance
        remind = (
            alert.last_push_at is None
            or elapsed_minutes(now, alert.last_push_at) >= self.config.geofence_alert_throttle_min
        )
        if remind:
            alert.last_push_at = now
        self.store.save_geofence_alert(alert)
        if remind:
            self.notifier.dispatch([_alert_notice(
                alert,
                "Employee still outside geofence",
                f"Employee {alert.employee_id} remains {round(distance)}m outside job site {alert.job_site_id}",
            )])
        return alert

    def _resolve(self, alert: GeofenceAlert, now: datetime) -> GeofenceAlert:
        alert.active = False
        alert.resolved_at = now
        self.store.save_geofence_alert(alert)
        logger.info("geofence_alert_resolved", employee_id=alert.employee_id, company_id=alert.company_id)
        self.notifier.dispatch([_alert_notice(
            alert,
            "Geofence alert resolved",
            f"Employee {alert.employee_id} is back inside the job site or has clocked out.",
        )])
        return alert
