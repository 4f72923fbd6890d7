"""
Session health monitor.

Looks for sessions that stopped receiving location fixes or that nothing has
written to for a long time, and records advisory errors on them. Health never
changes a session's lifecycle status.
"""
from datetime import datetime
from typing import List, Optional

import structlog

from ..schemas.session import (
    ErrorKind, ErrorSeverity, HealthStatus, ScheduleSession, SessionError,
)
from .changes import Change, RunContext, plan_each
from .notifications import Notice, admin_notice
from .state_machine import ACTIVE_STATUSES
from .time_rules import add_minutes, elapsed_minutes

logger = structlog.get_logger(__name__)


def derive_health(session: ScheduleSession) -> HealthStatus:
    unresolved = session.unresolved_errors()
    if any(e.severity == ErrorSeverity.error for e in unresolved):
        return HealthStatus.error
    if unresolved:
        return HealthStatus.warning
    return HealthStatus.healthy


def location_age_minutes(session: ScheduleSession, now: datetime) -> Optional[int]:
    seen = session.last_location_update or session.monitoring_started
    if seen is None:
        return None
    return elapsed_minutes(now, seen)


def evaluate_health(ctx: RunContext, session: ScheduleSession) -> Optional[List[Notice]]:
    now = ctx.now
    config = ctx.config
    notices: List[Notice] = []

    age = location_age_minutes(session, now)
    timeouts = session.unresolved_errors(ErrorKind.location_timeout)
    if age is not None and age >= config.location_timeout_min:
        if not timeouts:
            session.errors.append(SessionError(
                timestamp=now,
                error_type=ErrorKind.location_timeout,
                error_message=f"No location updates received for {config.location_timeout_min}+ minutes",
                severity=ErrorSeverity.warning,
            ))
    else:
        for error in timeouts:
            error.resolved = True
            error.resolved_at = now

    # stuck sessions are left for an operator to clear
    if session.updated_at is not None and elapsed_minutes(now, session.updated_at) >= config.stuck_session_min:
        if not session.unresolved_errors(ErrorKind.stuck_session):
            session.errors.append(SessionError(
                timestamp=now,
                error_type=ErrorKind.stuck_session,
                error_message=f"Session has not been updated for {config.stuck_session_min}+ minutes",
                severity=ErrorSeverity.error,
            ))
            logger.warning("stuck_session", session_id=session.id, company_id=session.company_id)
            notices.append(admin_notice(
                session.company_id, "session_errors",
                sessionId=session.id,
                employeeName=session.employee_name,
                jobSiteName=session.job_site_name,
            ))

    session.health_status = derive_health(session)
    # not updated_at: stuck detection measures it
    session.last_health_check = now
    return notices


def plan_health_checks(ctx: RunContext, company_id: str) -> List[Change]:
    sessions = ctx.store.find_sessions(
        company_id,
        ACTIVE_STATUSES,
        last_health_check_before=add_minutes(ctx.now, -ctx.config.health_check_interval_min),
        limit=ctx.config.health_check_batch,
    )
    return plan_each(ctx, sessions, evaluate_health, "health_check")
