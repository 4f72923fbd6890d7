"""
Session metrics and scoring.
Durations are whole minutes and never negative. Scores are 0-100.
"""
from datetime import datetime
from typing import Dict, Optional

from ..schemas.session import ScheduleSession
from .time_rules import elapsed_minutes


def break_minutes(session: ScheduleSession, now: Optional[datetime] = None) -> int:
    """Closed break minutes, plus the open break up to `now` when one is given."""
    total = 0
    for bp in session.break_periods:
        if bp.end_time is not None:
            total += elapsed_minutes(bp.end_time, bp.start_time)
        elif now is not None:
            total += elapsed_minutes(now, bp.start_time)
    return total


def work_duration_minutes(session: ScheduleSession, now: datetime) -> int:
    """Clocked time minus breaks, up to clock-out or `now`."""
    if session.clock_in_time is None:
        return 0
    end = session.clock_out_time or now
    total = elapsed_minutes(end, session.clock_in_time)
    return max(0, total - break_minutes(session, end))


def overtime_minutes(session: ScheduleSession, now: datetime) -> int:
    total = 0
    for op in session.overtime_periods:
        total += op.duration if op.duration is not None else elapsed_minutes(op.end_time or now, op.start_time)
    return total


class ScoringPolicy:
    def punctuality(self, session: ScheduleSession) -> float:
        raise NotImplementedError

    def attendance(self, worked: int, scheduled: int) -> float:
        raise NotImplementedError

    def compliance(self, punctuality: float, attendance: float) -> float:
        raise NotImplementedError


class LinearScoringPolicy(ScoringPolicy):
    """Two points off per minute late; attendance is worked over scheduled, capped at 100."""

    late_penalty_per_minute = 2

    def punctuality(self, session: ScheduleSession) -> float:
        if session.arrival_time is None or session.arrival_time <= session.scheduled_start_time:
            return 100.0
        late = elapsed_minutes(session.arrival_time, session.scheduled_start_time)
        return float(max(0, 100 - late * self.late_penalty_per_minute))

    def attendance(self, worked: int, scheduled: int) -> float:
        if scheduled <= 0:
            return 0.0
        return min(100.0, worked / scheduled * 100)

    def compliance(self, punctuality: float, attendance: float) -> float:
        return (punctuality + attendance) / 2


def compute_metrics(session: ScheduleSession, now: datetime, scoring: ScoringPolicy) -> Dict[str, float]:
    worked = work_duration_minutes(session, now)
    punctuality = scoring.punctuality(session)
    attendance = scoring.attendance(worked, session.total_scheduled_time)
    return {
        "total_worked_time": worked,
        "total_break_time": break_minutes(session),
        "total_overtime_time": max(overtime_minutes(session, now), worked - session.total_scheduled_time, 0),
        "punctuality_score": punctuality,
        "attendance_rate": attendance,
        "compliance_score": scoring.compliance(punctuality, attendance),
    }


def apply_metrics(session: ScheduleSession, now: datetime, scoring: ScoringPolicy) -> None:
    for name, value in compute_metrics(session, now, scoring).items():
        setattr(session, name, value)
