"""
Session completion and retirement.
"""
from typing import List, Optional

import structlog

from ..schemas.session import Actor, EventType, ScheduleSession, SessionStatus
from ..store.provider import ArchiveSession
from .changes import Change, RunContext, plan_each
from .metrics import apply_metrics
from .notifications import Notice, employee_notice
from .presence import clock_out
from .state_machine import ACTIVE_STATUSES, TERMINAL_STATUSES, transition
from .time_rules import add_minutes

logger = structlog.get_logger(__name__)

COMPLETABLE_STATUSES = ACTIVE_STATUSES | {SessionStatus.clocked_out, SessionStatus.error}


def evaluate_completion(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    """
    Complete a session once its scheduled end plus the clock-out buffer has passed.

    An employee still on the clock is clocked out first; final metrics are
    computed either way.
    """
    if session.status not in COMPLETABLE_STATUSES:
        return None
    now = ctx.now
    complete_after = add_minutes(session.scheduled_end_time, session.company_settings.clock_out_buffer)
    if now < complete_after:
        return None

    notices: List[Notice] = []
    if session.clocked_in:
        clock_out(ctx, session, "Automatically clocked out - schedule ended", target=SessionStatus.completed)
        notices.append(employee_notice(session, "schedule_ended", endTime=now))
    else:
        apply_metrics(session, now, ctx.scoring)
        transition(session, SessionStatus.completed, now)

    session.add_event(
        EventType.session_completed, now, Actor.system,
        f"Schedule session completed at {session.job_site_name}",
        totalWorkedTime=session.total_worked_time,
        complianceScore=session.compliance_score,
    )
    return notices


def plan_completions(ctx: RunContext, company_id: str) -> List[Change]:
    sessions = ctx.store.find_sessions(company_id, COMPLETABLE_STATUSES, scheduled_end_before=ctx.now)
    return plan_each(ctx, sessions, evaluate_completion, "complete_due_sessions")


def plan_archive(ctx: RunContext, company_id: str) -> List[Change]:
    """Move terminal sessions older than the retention window to the archive."""
    cutoff = add_minutes(ctx.now, -ctx.config.archive_retention_days * 24 * 60)
    sessions = ctx.store.find_sessions(
        company_id,
        TERMINAL_STATUSES,
        updated_before=cutoff,
        limit=ctx.config.archive_batch,
    )
    if sessions:
        logger.info("archiving_sessions", company_id=company_id, count=len(sessions))
    return [Change(ArchiveSession(s, s.status, s.revision)) for s in sessions]
