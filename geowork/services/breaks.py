"""
Break automation engine.
Opens required breaks after a long stretch of work and closes them once the
required duration has passed.
"""
from datetime import datetime
from typing import List, Optional

from ..schemas.session import Actor, BreakPeriod, BreakType, EventType, ScheduleSession, SessionStatus
from .changes import Change, RunContext, plan_each
from .metrics import work_duration_minutes
from .notifications import Notice, employee_notice
from .state_machine import transition
from .time_rules import elapsed_minutes


def had_recent_break(session: ScheduleSession, now: datetime, interval_minutes: int) -> bool:
    for bp in session.break_periods:
        if elapsed_minutes(now, bp.end_time or now) < interval_minutes:
            return True
    return False


def evaluate_required_break(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    settings = session.auto_break_settings
    if not settings.enabled or session.open_break() is not None:
        return None

    now = ctx.now
    worked = work_duration_minutes(session, now)
    interval = settings.minimum_work_before_break
    if worked < interval or had_recent_break(session, now, interval):
        return None

    if not settings.auto_start_break:
        return None

    session.break_periods.append(BreakPeriod(start_time=now, type=BreakType.required, triggered_by=Actor.system))
    session.currently_on_break = True
    transition(session, SessionStatus.on_break, now)
    session.add_event(
        EventType.break_started, now, Actor.system,
        f"Required break started automatically - worked {worked // 60}+ hours",
        workedMinutes=worked,
    )
    reason = f"Required break after {interval // 60} hours of work"
    return [employee_notice(session, "break_started", reason=reason)]


def evaluate_break_end(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    settings = session.auto_break_settings
    current = session.open_break()
    if not settings.auto_end_break or current is None:
        return None

    now = ctx.now
    duration = elapsed_minutes(now, current.start_time)
    if duration < settings.required_break_duration:
        return None

    current.end_time = now
    current.duration = duration
    session.currently_on_break = False
    if session.status == SessionStatus.on_break:
        transition(session, SessionStatus.overtime if session.is_in_overtime else SessionStatus.clocked_in, now)
    else:
        session.updated_at = now
    session.add_event(
        EventType.break_ended, now, Actor.system,
        f"Break ended automatically after {duration} minutes",
        duration=duration,
    )
    return [employee_notice(session, "break_ended", duration=duration)]


def evaluate_break_recommendation(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    """
    Remind an employee who is due a break under a policy that does not start one.

    The reminder repeats at most once per `break_recommendation_interval_min`
    while the break stays due; the last one sent is recorded on the session.
    """
    settings = session.auto_break_settings
    if not settings.enabled or settings.auto_start_break or session.open_break() is not None:
        return None

    now = ctx.now
    worked = work_duration_minutes(session, now)
    interval = settings.minimum_work_before_break
    if worked < interval or had_recent_break(session, now, interval):
        return None
    last = session.last_break_recommendation
    if last is not None and elapsed_minutes(now, last) < ctx.config.break_recommendation_interval_min:
        return None

    session.last_break_recommendation = now
    session.updated_at = now
    return [employee_notice(session, "break_recommended", workDuration=worked)]


def plan_breaks(ctx: RunContext, company_id: str) -> List[Change]:
    working = ctx.store.find_sessions(company_id, [SessionStatus.clocked_in], currently_on_break=False)
    changes = plan_each(ctx, working, evaluate_required_break, "process_breaks")
    changes.extend(plan_each(ctx, working, evaluate_break_recommendation, "process_breaks"))

    on_break = ctx.store.find_sessions(
        company_id, [SessionStatus.on_break, SessionStatus.overtime], currently_on_break=True,
    )
    changes.extend(plan_each(ctx, on_break, evaluate_break_end, "process_breaks"))
    return changes
