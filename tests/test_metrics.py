from geowork.schemas.session import Actor, BreakPeriod, BreakType, OvertimePeriod
from geowork.services.metrics import (
    LinearScoringPolicy, apply_metrics, break_minutes, compute_metrics, work_duration_minutes,
)

from .helpers import at, make_session


def test_punctuality_loses_two_points_per_minute_late():
    scoring = LinearScoringPolicy()
    assert scoring.punctuality(make_session(arrival_time=at(8, 55))) == 100
    assert scoring.punctuality(make_session(arrival_time=at(9, 10))) == 80
    assert scoring.punctuality(make_session(arrival_time=at(10, 0))) == 0
    assert scoring.punctuality(make_session()) == 100


def test_attendance_is_capped_and_zero_without_schedule():
    scoring = LinearScoringPolicy()
    assert scoring.attendance(240, 480) == 50
    assert scoring.attendance(600, 480) == 100
    assert scoring.attendance(100, 0) == 0


def test_compliance_is_the_average():
    assert LinearScoringPolicy().compliance(80, 50) == 65


def test_work_duration_excludes_breaks():
    session = make_session(clock_in_time=at(9), break_periods=[
        BreakPeriod(start_time=at(12), end_time=at(12, 30), type=BreakType.required, triggered_by=Actor.system),
        BreakPeriod(start_time=at(14), type=BreakType.manual, triggered_by=Actor.employee),
    ])
    assert break_minutes(session) == 30
    assert break_minutes(session, at(14, 10)) == 40
    assert work_duration_minutes(session, at(14, 10)) == 5 * 60 + 10 - 40


def test_work_duration_is_zero_before_clock_in():
    assert work_duration_minutes(make_session(), at(12)) == 0


def test_metrics_never_negative():
    session = make_session(clock_in_time=at(9), clock_out_time=at(8), total_scheduled_time=480)
    metrics = compute_metrics(session, at(10), LinearScoringPolicy())
    assert metrics["total_worked_time"] == 0
    assert metrics["total_overtime_time"] == 0


def test_apply_metrics_counts_overtime_periods():
    session = make_session(
        arrival_time=at(9, 5),
        clock_in_time=at(9, 5),
        clock_out_time=at(17, 45),
        overtime_periods=[OvertimePeriod(start_time=at(17, 15), end_time=at(17, 45), duration=30)],
    )
    apply_metrics(session, at(18), LinearScoringPolicy())
    assert session.total_worked_time == 520
    assert session.total_overtime_time == 40
    assert session.punctuality_score == 90
    assert session.attendance_rate == 100
    assert session.compliance_score == 95
