"""
Session lifecycle state machine.
The single place where a session's status is allowed to change.
"""
from datetime import datetime
from typing import Dict, FrozenSet

from ..errors import IllegalTransition
from ..schemas.session import ScheduleSession, SessionStatus

S = SessionStatus

TERMINAL_STATUSES: FrozenSet[SessionStatus] = frozenset({S.completed, S.no_show})

# Statuses whose sessions are still being tracked live.
ACTIVE_STATUSES: FrozenSet[SessionStatus] = frozenset({
    S.monitoring_active, S.clocked_in, S.on_break, S.overtime,
})

# Statuses in which the employee is on the clock.
WORKING_STATUSES: FrozenSet[SessionStatus] = frozenset({S.clocked_in, S.on_break, S.overtime})

TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    S.scheduled: frozenset({S.monitoring_active, S.error}),
    S.monitoring_active: frozenset({S.clocked_in, S.no_show, S.completed, S.error}),
    S.clocked_in: frozenset({S.on_break, S.overtime, S.clocked_out, S.completed, S.error}),
    S.on_break: frozenset({S.clocked_in, S.overtime, S.clocked_out, S.completed, S.error}),
    S.overtime: frozenset({S.clocked_out, S.completed, S.error}),
    S.clocked_out: frozenset({S.completed, S.error}),
    S.error: frozenset({S.completed}),
    S.completed: frozenset(),
    S.no_show: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def transition(session: ScheduleSession, target: SessionStatus, now: datetime, actor: str = "system") -> ScheduleSession:
    """
    Move a session to `target`, stamping audit fields.

    Raises:
        IllegalTransition: if the edge is not part of the lifecycle.
    """
    if not can_transition(session.status, target):
        raise IllegalTransition(session.status.value, target.value)
    session.status = target
    touch(session, now, actor)
    return session


def touch(session: ScheduleSession, now: datetime, actor: str = "system") -> None:
    session.updated_at = now
    session.last_modified_by = actor


def is_terminal(status: SessionStatus) -> bool:
    return status in TERMINAL_STATUSES
