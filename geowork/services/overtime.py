"""
Overtime detector.
Flags working sessions that run past their scheduled end plus the overtime threshold.
"""
from typing import List, Optional

from ..schemas.session import Actor, EventType, OvertimePeriod, ScheduleSession, SessionStatus
from .changes import Change, RunContext, plan_each
from .notifications import Notice, admin_notice, employee_notice
from .state_machine import transition
from .time_rules import add_minutes, elapsed_minutes


def evaluate_overtime(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    settings = session.overtime_detection
    if not settings.enabled or session.is_in_overtime or not session.clocked_in:
        return None

    now = ctx.now
    overtime_start = add_minutes(session.scheduled_end_time, settings.threshold_minutes)
    if now <= overtime_start:
        return None

    session.overtime_periods.append(OvertimePeriod(start_time=overtime_start, reason="schedule_overrun"))
    session.is_in_overtime = True
    transition(session, SessionStatus.overtime, now)
    session.add_event(
        EventType.overtime_started, now, Actor.system,
        f"Overtime started - exceeded scheduled end time by {settings.threshold_minutes} minutes",
        thresholdMinutes=settings.threshold_minutes,
    )

    notices: List[Notice] = []
    if settings.notify_admin_at_overtime:
        notices.append(admin_notice(
            session.company_id, "overtime_detected",
            sessionId=session.id,
            employeeName=session.employee_name,
            jobSiteName=session.job_site_name,
            overtimeMinutes=elapsed_minutes(now, overtime_start),
        ))
    if settings.notify_employee_at_overtime:
        notices.append(employee_notice(session, "overtime_started"))
    return notices


def plan_overtime(ctx: RunContext, company_id: str) -> List[Change]:
    sessions = ctx.store.find_sessions(
        company_id,
        [SessionStatus.clocked_in, SessionStatus.on_break],
        is_in_overtime=False,
        scheduled_end_before=ctx.now,
    )
    return plan_each(ctx, sessions, evaluate_overtime, "detect_overtime")
