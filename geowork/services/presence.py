"""
Presence & clock decision engine.

Compares each active session's latest location fix against its job-site
geofence to detect arrival and departure, and clocks the employee in or out
when the snapshot policy allows it.
"""
from datetime import datetime
from typing import List, Optional

import structlog

from ..schemas.reference import LocationFix
from ..schemas.session import Actor, EventType, GeoPoint, ScheduleSession, SessionStatus
from .changes import Change, RunContext, plan_each
from .geofence import inside_geofence
from .metrics import apply_metrics
from .notifications import Notice, employee_notice
from .state_machine import ACTIVE_STATUSES, WORKING_STATUSES, transition
from .time_rules import add_minutes, elapsed_minutes

logger = structlog.get_logger(__name__)


def should_auto_clock_in(session: ScheduleSession, now: datetime) -> bool:
    policy = session.company_settings
    consent = session.employee_notifications

    if session.status != SessionStatus.monitoring_active or session.clocked_in:
        return False
    if not session.employee_present or session.arrival_time is None:
        return False
    if now < add_minutes(session.scheduled_start_time, -policy.clock_in_buffer):
        return False
    if not (consent.consent_given and consent.auto_tracking_enabled):
        return False
    return elapsed_minutes(now, session.arrival_time) >= policy.minimum_time_at_site


def should_auto_clock_out(session: ScheduleSession, now: datetime) -> bool:
    if session.company_settings.geofence_auto_clock_out:
        return True
    overtime = session.overtime_detection
    return overtime.auto_clock_out_at_end and now > add_minutes(session.scheduled_end_time, overtime.threshold_minutes)


def clock_in(session: ScheduleSession, now: datetime, location: Optional[GeoPoint] = None) -> None:
    transition(session, SessionStatus.clocked_in, now)
    session.clocked_in = True
    session.clock_in_time = now
    session.auto_clock_in_triggered = True
    session.add_event(
        EventType.auto_clock_in, now, Actor.system,
        f"Automatically clocked in at {session.job_site_name}", location,
    )


def close_open_periods(session: ScheduleSession, now: datetime) -> None:
    open_break = session.open_break()
    if open_break is not None:
        open_break.end_time = now
        open_break.duration = elapsed_minutes(now, open_break.start_time)
    session.currently_on_break = False

    open_overtime = session.open_overtime()
    if open_overtime is not None:
        open_overtime.end_time = now
        open_overtime.duration = elapsed_minutes(now, open_overtime.start_time)


def clock_out(
    ctx: RunContext,
    session: ScheduleSession,
    details: str,
    target: SessionStatus = SessionStatus.clocked_out,
    location: Optional[GeoPoint] = None,
) -> None:
    """Close the working day: open break and overtime periods end now."""
    now = ctx.now
    close_open_periods(session, now)
    session.clocked_in = False
    session.clock_out_time = now
    session.auto_clock_out_triggered = True
    session.add_event(EventType.auto_clock_out, now, Actor.system, details, location)
    apply_metrics(session, now, ctx.scoring)
    transition(session, target, now)


def _geo_point(fix: LocationFix) -> GeoPoint:
    return GeoPoint(latitude=fix.latitude, longitude=fix.longitude, accuracy=fix.accuracy)


def is_stale(fix: LocationFix, now: datetime, timeout_minutes: int) -> bool:
    return elapsed_minutes(now, fix.timestamp) >= timeout_minutes


def evaluate_presence(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    now = ctx.now
    fix = ctx.refs.latest_location(session.employee_id)
    if fix is None or is_stale(fix, now, ctx.config.location_timeout_min):
        # location_unavailable: presence is left as it was, the health monitor ages it
        logger.debug("location_unavailable", session_id=session.id, employee_id=session.employee_id,
                     last_fix=fix.timestamp.isoformat() if fix else None)
        session.updated_at = now
        session.last_modified_by = Actor.system.value
        return []
    job_site = ctx.refs.job_site(session.job_site_id)
    if job_site is None:
        logger.warning("reference_data_missing", session_id=session.id, kind="job_site",
                       record_id=session.job_site_id)
        return None

    is_inside, distance, low_accuracy = inside_geofence(fix, job_site, ctx.config.gps_accuracy_risk_m)
    where = _geo_point(fix)
    geo = {"distanceFromJobSite": round(distance, 1), "lowAccuracy": low_accuracy}
    notices: List[Notice] = []

    if is_inside:
        if not session.employee_present:
            session.employee_present = True
            session.arrival_time = now
            session.departure_time = None
            session.outside_since = None
            session.add_event(EventType.employee_arrived, now, Actor.geofence,
                              f"Employee arrived at {session.job_site_name}", where, **geo)
        elif session.outside_since is not None:
            session.outside_since = None
            session.add_event(EventType.employee_returned, now, Actor.geofence,
                              f"Employee returned to {session.job_site_name}", where, **geo)

        if should_auto_clock_in(session, now):
            clock_in(session, now, where)
            notices.append(employee_notice(session, "auto_clock_in", time=now))

    elif session.employee_present:
        grace = session.company_settings.geofence_exit_grace_period
        if session.outside_since is None:
            session.outside_since = now
            session.add_event(EventType.employee_left_geofence, now, Actor.geofence,
                              f"Employee left the {session.job_site_name} geofence", where,
                              gracePeriodMinutes=grace, **geo)

        if elapsed_minutes(now, session.outside_since) >= grace:
            session.employee_present = False
            session.departure_time = now
            session.outside_since = None
            session.add_event(EventType.employee_departed, now, Actor.geofence,
                              f"Employee left {session.job_site_name}", where, **geo)

            if session.clocked_in and session.status in WORKING_STATUSES and should_auto_clock_out(session, now):
                clock_out(ctx, session, f"Automatically clocked out - left {session.job_site_name}", location=where)
                notices.append(employee_notice(session, "auto_clock_out", time=now))

    session.last_location_update = fix.timestamp
    session.updated_at = now
    session.last_modified_by = Actor.system.value
    return notices


def plan_presence(ctx: RunContext, company_id: str) -> List[Change]:
    sessions = ctx.store.find_sessions(company_id, ACTIVE_STATUSES)
    return plan_each(ctx, sessions, evaluate_presence, "advance_active_sessions")
