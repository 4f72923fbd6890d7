"""
Compliance violation detector.
Marks sessions whose employee never showed up and tells the company admins.
"""
from typing import List, Optional

from ..schemas.session import Actor, EventType, ScheduleSession, SessionStatus
from .changes import Change, RunContext, plan_each
from .notifications import Notice, admin_notice
from .state_machine import transition
from .time_rules import add_minutes, elapsed_minutes


def evaluate_no_show(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    if session.status != SessionStatus.monitoring_active or session.employee_present:
        return None

    now = ctx.now
    late_after = add_minutes(session.scheduled_start_time, ctx.config.no_show_late_min)
    if now <= late_after:
        return None

    minutes_late = elapsed_minutes(now, session.scheduled_start_time)
    transition(session, SessionStatus.no_show, now)
    session.add_event(
        EventType.no_show, now, Actor.system,
        f"Employee did not arrive at {session.job_site_name} - {minutes_late} minutes late",
        minutesLate=minutes_late,
    )
    return []


def violation(session: ScheduleSession, now) -> dict:
    return {
        "type": "no_show",
        "sessionId": session.id,
        "employeeId": session.employee_id,
        "employeeName": session.employee_name,
        "jobSiteName": session.job_site_name,
        "scheduledStartTime": session.scheduled_start_time,
        "minutesLate": elapsed_minutes(now, session.scheduled_start_time),
    }


def plan_no_shows(ctx: RunContext, company_id: str) -> List[Change]:
    sessions = ctx.store.find_sessions(
        company_id,
        [SessionStatus.monitoring_active],
        employee_present=False,
        scheduled_start_before=add_minutes(ctx.now, -ctx.config.no_show_late_min),
    )
    return plan_each(ctx, sessions, evaluate_no_show, "detect_no_shows")


def summarize_no_shows(ctx: RunContext, company_id: str, applied: List[Change]) -> List[Notice]:
    """One admin alert per company listing every no-show that was actually recorded."""
    violations = [violation(c.write.session, ctx.now) for c in applied if c.write is not None]
    if not violations:
        return []
    return [admin_notice(company_id, "compliance_violations", violations=violations, timestamp=ctx.now)]
