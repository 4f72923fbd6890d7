"""
Session factory.
Turns a planned shift that is about to start into a monitored session.
"""
from datetime import datetime
from typing import List

import structlog

from ..errors import ReferenceDataMissing
from ..schemas.reference import CompanyPolicy, Employee, JobSite, NotificationConsent, Schedule
from ..schemas.session import (
    Actor, AutoBreakSettings, EventType, OvertimeSettings, ScheduleSession, SessionStatus,
)
from ..store.provider import CreateSession
from .changes import Change, RunContext
from .notifications import employee_notice
from .time_rules import add_minutes, elapsed_minutes, utc_to_local

logger = structlog.get_logger(__name__)


def build_session(
    schedule: Schedule,
    employee: Employee,
    job_site: JobSite,
    policy: CompanyPolicy,
    consent: NotificationConsent,
    now: datetime,
    default_tz: str = "UTC",
) -> ScheduleSession:
    """
    Build a `monitoring_active` session from a shift and its resolved policy.

    The policy and consent are copied into the session so later edits to
    company or employee settings do not change a shift already in flight.
    """
    time_zone = policy.time_zone or default_tz
    session = ScheduleSession(
        schedule_id=schedule.id,
        employee_id=schedule.employee_id,
        employee_name=employee.display_name,
        job_site_id=schedule.job_site_id,
        job_site_name=job_site.site_name,
        company_id=schedule.company_id,
        time_zone=time_zone,
        scheduled_start_time=schedule.start_time,
        scheduled_end_time=schedule.end_time,
        local_scheduled_start_time=utc_to_local(schedule.start_time, time_zone),
        local_scheduled_end_time=utc_to_local(schedule.end_time, time_zone),
        status=SessionStatus.monitoring_active,
        monitoring_started=now,
        auto_break_settings=AutoBreakSettings(
            enabled=policy.auto_break_enabled,
            required_break_duration=policy.required_break_duration,
            auto_start_break=policy.auto_start_break,
            auto_end_break=policy.auto_end_break,
            minimum_work_before_break=policy.required_break_interval * 60,
        ),
        overtime_detection=OvertimeSettings(
            enabled=policy.overtime_enabled,
            threshold_minutes=policy.overtime_threshold_minutes,
            auto_clock_out_at_end=policy.auto_clock_out_at_end,
            allow_overtime=policy.allow_overtime,
            notify_admin_at_overtime=policy.notify_admin_at_overtime,
            notify_employee_at_overtime=policy.notify_employee_at_overtime,
            overtime_rate=policy.overtime_rate,
        ),
        company_settings=policy.model_copy(deep=True),
        employee_notifications=consent.model_copy(deep=True),
        last_health_check=now,
        total_scheduled_time=elapsed_minutes(schedule.end_time, schedule.start_time),
        created_at=now,
        updated_at=now,
    )
    session.add_event(
        EventType.session_created, now, Actor.system,
        f"Schedule session created for {job_site.site_name}",
    )
    return session


def _resolve(ctx: RunContext, schedule: Schedule):
    if ctx.refs.company(schedule.company_id) is None:
        raise ReferenceDataMissing("company", schedule.company_id)
    employee = ctx.refs.employee(schedule.employee_id)
    if employee is None:
        raise ReferenceDataMissing("employee", schedule.employee_id)
    job_site = ctx.refs.job_site(schedule.job_site_id)
    if job_site is None:
        raise ReferenceDataMissing("job_site", schedule.job_site_id)
    return employee, job_site


def plan_session_starts(ctx: RunContext, company_id: str) -> List[Change]:
    """Create sessions for shifts starting within the lookahead window."""
    window = ctx.config.session_lookahead_min
    schedules = ctx.store.due_schedules(
        company_id,
        start_after=add_minutes(ctx.now, -window),
        start_until=add_minutes(ctx.now, window),
    )

    changes: List[Change] = []
    for schedule in schedules:
        if ctx.store.session_exists_for_schedule(schedule.id):
            continue
        try:
            employee, job_site = _resolve(ctx, schedule)
        except ReferenceDataMissing as e:
            logger.warning("reference_data_missing", schedule_id=schedule.id,
                           kind=e.kind, record_id=e.record_id)
            continue

        session = build_session(
            schedule,
            employee,
            job_site,
            ctx.refs.company_policy(company_id),
            ctx.refs.notification_consent(schedule.employee_id),
            ctx.now,
            default_tz=ctx.config.tz_default,
        )
        notice = employee_notice(session, "session_starting", startTime=session.scheduled_start_time)
        changes.append(Change(CreateSession(session), [notice]))
    return changes
