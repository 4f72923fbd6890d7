"""
Planned session changes and their batched commit.

Decision engines never write directly. They evaluate a copy of each session
and return `Change`s; the driver commits them in atomic batches and only then
dispatches the notices attached to writes that were actually applied.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

import structlog

from ..config import Settings, settings as default_settings
from ..errors import BatchWriteError
from ..schemas.session import (
    Actor, ErrorKind, ErrorSeverity, EventType, HealthStatus, ScheduleSession, SessionError,
)
from ..store.provider import SessionStore, UpdateSession, Write
from .metrics import LinearScoringPolicy, ScoringPolicy
from .notifications import Notice
from .reference import ReferenceData

logger = structlog.get_logger(__name__)


@dataclass
class Change:
    write: Write
    notices: List[Notice] = field(default_factory=list)


@dataclass
class RunContext:
    """Everything a decision engine needs for one pass."""
    store: SessionStore
    refs: ReferenceData
    now: datetime
    scoring: ScoringPolicy = field(default_factory=LinearScoringPolicy)
    config: Settings = field(default_factory=lambda: default_settings)


# A decision returns None when the session needs no change, otherwise the
# notices that go with the (already mutated) working copy.
Decision = Callable[[RunContext, ScheduleSession], Optional[List[Notice]]]


def failure_change(session: ScheduleSession, error: Exception, now: datetime, step: str) -> Optional[Change]:
    """
    Record a processing failure on the session's error log.

    Only one unresolved processing failure is kept so a session that keeps
    failing does not grow its log every pass.
    """
    if session.unresolved_errors(ErrorKind.processing_failure):
        return None
    working = session.model_copy(deep=True)
    working.errors.append(SessionError(
        timestamp=now,
        error_type=ErrorKind.processing_failure,
        error_message=f"{step}: {error}",
        severity=ErrorSeverity.error,
    ))
    working.health_status = HealthStatus.error
    working.add_event(EventType.error_occurred, now, Actor.system, f"Processing failed during {step}", step=step)
    return Change(UpdateSession(working, session.status, session.revision))


def plan_each(ctx: RunContext, sessions: Iterable[ScheduleSession], decide: Decision, step: str) -> List[Change]:
    """Run `decide` on a copy of every session, isolating per-session failures."""
    changes: List[Change] = []
    for session in sessions:
        working = session.model_copy(deep=True)
        try:
            notices = decide(ctx, working)
        except Exception as e:
            logger.exception("session_processing_failed", step=step, session_id=session.id)
            change = failure_change(session, e, ctx.now, step)
            if change is not None:
                changes.append(change)
            continue
        if notices is not None:
            changes.append(Change(UpdateSession(working, session.status, session.revision), notices))
    return changes


def commit_in_batches(
    store: SessionStore,
    changes: List[Change],
    limit: int,
    step: str,
) -> Tuple[List[Change], List[str]]:
    """
    Commit changes in atomic batches of at most `limit` writes.

    A failed batch leaves its sessions untouched and does not stop the
    remaining batches. Returns the applied changes and the failure messages.
    """
    applied: List[Change] = []
    failures: List[str] = []
    limit = max(1, limit)
    for start in range(0, len(changes), limit):
        chunk = changes[start:start + limit]
        try:
            written = store.commit([c.write for c in chunk])
        except BatchWriteError as e:
            logger.error("batch_write_failure", step=step, writes=len(chunk), error=str(e))
            failures.append(f"batch_write_failure: {e}")
            continue
        written_ids = {id(w) for w in written}
        applied.extend(c for c in chunk if id(c.write) in written_ids)
    return applied, failures
