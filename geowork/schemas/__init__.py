from .reference import (
    Company,
    CompanyPolicy,
    Employee,
    JobSite,
    LocationFix,
    NotificationConsent,
    Schedule,
)
from .session import (
    Actor,
    AutoBreakSettings,
    BreakPeriod,
    BreakType,
    ErrorKind,
    ErrorSeverity,
    EventType,
    GeoPoint,
    HealthStatus,
    OvertimePeriod,
    OvertimeSettings,
    ScheduleSession,
    SessionError,
    SessionEvent,
    SessionStatus,
)

__all__ = [
    "Actor",
    "AutoBreakSettings",
    "BreakPeriod",
    "BreakType",
    "Company",
    "CompanyPolicy",
    "Employee",
    "ErrorKind",
    "ErrorSeverity",
    "EventType",
    "GeoPoint",
    "HealthStatus",
    "JobSite",
    "LocationFix",
    "NotificationConsent",
    "OvertimePeriod",
    "OvertimeSettings",
    "Schedule",
    "ScheduleSession",
    "SessionError",
    "SessionEvent",
    "SessionStatus",
]
