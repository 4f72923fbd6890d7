"""
Read-only reference records consumed by the orchestrator.
"""
from typing import Optional

from pydantic import Field

from .base import Document, UtcDatetime


class Company(Document):
    id: str
    name: str = ""
    active: bool = True


class Employee(Document):
    id: str
    company_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or "Unknown Employee"


class JobSite(Document):
    id: str
    company_id: str
    site_name: str
    latitude: float
    longitude: float
    radius: float = 0  # meters; 0 means use GEO_RADIUS_M_DEFAULT


class Schedule(Document):
    """A planned shift."""
    id: str
    company_id: str
    employee_id: str
    job_site_id: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    status: str = "scheduled"


class LocationFix(Document):
    latitude: float
    longitude: float
    accuracy: Optional[float] = 50.0
    timestamp: UtcDatetime


class CompanyPolicy(Document):
    """Company time-tracking policy. Every field has a default used when settings are absent."""
    time_zone: str = "UTC"
    minimum_time_at_site: int = 5  # minutes present before auto clock-in
    clock_in_buffer: int = 15  # minutes before scheduled start that clock-in is allowed
    clock_out_buffer: int = 30  # minutes after scheduled end before the session is completed
    required_break_duration: int = 30  # minutes
    required_break_interval: int = 4  # hours of work before a break is required
    geofence_exit_grace_period: int = 5  # minutes outside before departure is confirmed

    # automation switches
    auto_break_enabled: bool = True
    auto_start_break: bool = False
    auto_end_break: bool = False
    geofence_auto_clock_out: bool = True
    auto_clock_out_at_end: bool = False

    # overtime
    overtime_enabled: bool = True
    overtime_threshold_minutes: int = 15
    allow_overtime: bool = True
    notify_admin_at_overtime: bool = True
    notify_employee_at_overtime: bool = True
    overtime_rate: float = 1.5


class NotificationConsent(Document):
    """Employee tracking consent and notification preferences."""
    auto_tracking_enabled: bool = True
    notify_on_session_start: bool = True
    notify_on_auto_clock_in: bool = True
    notify_on_auto_clock_out: bool = True
    notify_on_break_detection: bool = True
    notify_on_schedule_change: bool = True
    notify_on_overtime_start: bool = True
    consent_given: bool = False
    consent_date: Optional[UtcDatetime] = None
    consent_version: str = Field(default="1.0")
