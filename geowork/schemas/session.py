"""
Schedule session document - one per planned shift occurrence.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from .base import Document, UtcDatetime
from .reference import CompanyPolicy, NotificationConsent


def new_id() -> str:
    return uuid.uuid4().hex


class SessionStatus(str, Enum):
    scheduled = "scheduled"
    monitoring_active = "monitoring_active"
    clocked_in = "clocked_in"
    on_break = "on_break"
    overtime = "overtime"
    clocked_out = "clocked_out"
    completed = "completed"
    no_show = "no_show"
    error = "error"


class BreakType(str, Enum):
    manual = "manual"
    auto = "auto"
    required = "required"
    geofence_exit = "geofence_exit"


class Actor(str, Enum):
    system = "system"
    geofence = "geofence"
    admin = "admin"
    employee = "employee"


class HealthStatus(str, Enum):
    healthy = "healthy"
    warning = "warning"
    error = "error"


class ErrorSeverity(str, Enum):
    warning = "warning"
    error = "error"


class ErrorKind(str, Enum):
    reference_data_missing = "reference_data_missing"
    location_unavailable = "location_unavailable"
    location_timeout = "location_timeout"
    stuck_session = "stuck_session"
    notification_dispatch_failure = "notification_dispatch_failure"
    batch_write_failure = "batch_write_failure"
    processing_failure = "processing_failure"


class EventType(str, Enum):
    session_created = "session_created"
    employee_arrived = "employee_arrived"
    employee_left_geofence = "employee_left_geofence"
    employee_returned = "employee_returned"
    employee_departed = "employee_departed"
    auto_clock_in = "auto_clock_in"
    auto_clock_out = "auto_clock_out"
    break_started = "break_started"
    break_ended = "break_ended"
    overtime_started = "overtime_started"
    session_completed = "session_completed"
    no_show = "no_show"
    error_occurred = "error_occurred"


class GeoPoint(Document):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


class BreakPeriod(Document):
    id: str = Field(default_factory=new_id)
    start_time: UtcDatetime
    end_time: Optional[UtcDatetime] = None
    type: BreakType
    triggered_by: Actor
    duration: Optional[int] = None  # minutes, set when the break closes
    location: Optional[GeoPoint] = None


class OvertimePeriod(Document):
    id: str = Field(default_factory=new_id)
    start_time: UtcDatetime
    end_time: Optional[UtcDatetime] = None
    reason: Literal["schedule_overrun", "early_arrival", "manual_extension"] = "schedule_overrun"
    approved: bool = False
    duration: Optional[int] = None


class SessionEvent(Document):
    id: str = Field(default_factory=new_id)
    timestamp: UtcDatetime
    event_type: EventType
    triggered_by: Actor
    details: str
    location: Optional[GeoPoint] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SessionError(Document):
    id: str = Field(default_factory=new_id)
    timestamp: UtcDatetime
    error_type: ErrorKind
    error_message: str
    severity: ErrorSeverity
    resolved: bool = False
    resolved_at: Optional[UtcDatetime] = None


class AutoBreakSettings(Document):
    enabled: bool = True
    required_break_duration: int = 30  # minutes
    auto_start_break: bool = False
    auto_end_break: bool = False
    minimum_work_before_break: int = 240  # minutes


class OvertimeSettings(Document):
    enabled: bool = True
    threshold_minutes: int = 15
    auto_clock_out_at_end: bool = False
    allow_overtime: bool = True
    notify_admin_at_overtime: bool = True
    notify_employee_at_overtime: bool = True
    overtime_rate: float = 1.5


class ScheduleSession(Document):
    # identity
    id: str = Field(default_factory=new_id)
    schedule_id: str
    employee_id: str
    employee_name: str = "Unknown Employee"
    job_site_id: str
    job_site_name: str = ""
    company_id: str

    # timing
    time_zone: str = "UTC"
    scheduled_start_time: UtcDatetime
    scheduled_end_time: UtcDatetime
    local_scheduled_start_time: Optional[datetime] = None
    local_scheduled_end_time: Optional[datetime] = None

    status: SessionStatus = SessionStatus.scheduled

    # presence
    monitoring_started: Optional[UtcDatetime] = None
    employee_present: bool = False
    arrival_time: Optional[UtcDatetime] = None
    departure_time: Optional[UtcDatetime] = None
    outside_since: Optional[UtcDatetime] = None
    last_location_update: Optional[UtcDatetime] = None

    # clock
    clocked_in: bool = False
    clock_in_time: Optional[UtcDatetime] = None
    clock_out_time: Optional[UtcDatetime] = None
    auto_clock_in_triggered: bool = False
    auto_clock_out_triggered: bool = False

    # breaks
    currently_on_break: bool = False
    break_periods: List[BreakPeriod] = Field(default_factory=list)
    last_break_recommendation: Optional[UtcDatetime] = None
    auto_break_settings: AutoBreakSettings = Field(default_factory=AutoBreakSettings)

    # overtime
    overtime_detection: OvertimeSettings = Field(default_factory=OvertimeSettings)
    overtime_periods: List[OvertimePeriod] = Field(default_factory=list)
    is_in_overtime: bool = False

    # snapshots taken at creation
    company_settings: CompanyPolicy = Field(default_factory=CompanyPolicy)
    employee_notifications: NotificationConsent = Field(default_factory=NotificationConsent)

    # logs
    events: List[SessionEvent] = Field(default_factory=list)
    errors: List[SessionError] = Field(default_factory=list)
    last_health_check: Optional[UtcDatetime] = None
    health_status: HealthStatus = HealthStatus.healthy

    # metrics (minutes / 0-100 scores)
    total_scheduled_time: int = 0
    total_worked_time: int = 0
    total_break_time: int = 0
    total_overtime_time: int = 0
    punctuality_score: float = 100
    attendance_rate: float = 100
    compliance_score: float = 100

    # audit
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
    created_by: str = "system"
    last_modified_by: str = "system"

    # optimistic concurrency token, owned by the store
    revision: int = Field(default=0, exclude=True)

    def open_break(self) -> Optional[BreakPeriod]:
        return next((bp for bp in self.break_periods if bp.end_time is None), None)

    def open_overtime(self) -> Optional[OvertimePeriod]:
        return next((op for op in self.overtime_periods if op.end_time is None), None)

    def add_event(
        self,
        event_type: EventType,
        timestamp: datetime,
        triggered_by: Actor,
        details: str,
        location: Optional[GeoPoint] = None,
        **metadata: Any,
    ) -> SessionEvent:
        event = SessionEvent(
            timestamp=timestamp,
            event_type=event_type,
            triggered_by=triggered_by,
            details=details,
            location=location,
            metadata=metadata,
        )
        self.events.append(event)
        return event

    def unresolved_errors(self, kind: Optional[ErrorKind] = None) -> List[SessionError]:
        return [
            e for e in self.errors
            if not e.resolved and (kind is None or e.error_type == kind)
        ]
