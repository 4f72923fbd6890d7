import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    Integer,
    Float,
    JSON,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


def str_pk() -> Mapped[str]:
    return mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)


class Company(Base):
    """Tenant record"""
    __tablename__ = "companies"

    id: Mapped[str] = str_pk()
    name: Mapped[str] = mapped_column(String(255), default="")
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class User(Base):
    """Employee or administrator belonging to a company"""
    __tablename__ = "users"

    id: Mapped[str] = str_pk()
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(120))
    last_name: Mapped[Optional[str]] = mapped_column(String(120))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default="employee")  # employee|admin
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class JobSite(Base):
    """Work location with a circular geofence"""
    __tablename__ = "job_sites"

    id: Mapped[str] = str_pk()
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    site_name: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    radius_m: Mapped[float] = mapped_column(Float, default=0)  # 0 -> GEO_RADIUS_M_DEFAULT
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class CompanySettings(Base):
    """Company time-tracking policy overrides, keyed by company"""
    __tablename__ = "company_settings"

    company_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    policy: Mapped[dict] = mapped_column(JSON, default=dict)  # camelCase policy fields
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class EmployeeNotificationSettings(Base):
    """Employee tracking consent and notification preferences"""
    __tablename__ = "employee_notification_settings"

    employee_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    settings: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Schedule(Base):
    """Planned shift for an employee at a job site"""
    __tablename__ = "schedules"

    id: Mapped[str] = str_pk()
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    job_site_id: Mapped[str] = mapped_column(String(64), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)  # UTC
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)  # UTC
    status: Mapped[str] = mapped_column(String(20), default="scheduled")  # scheduled|cancelled

    __table_args__ = (
        Index("idx_schedules_company_status_start", "company_id", "status", "start_time"),
    )


class LocationEntry(Base):
    """Location feed: one row per reported device fix"""
    __tablename__ = "location_entries"

    id: Mapped[str] = str_pk()
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    accuracy: Mapped[Optional[float]] = mapped_column(Float)  # meters
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    __table_args__ = (
        Index("idx_location_entries_employee_recorded", "employee_id", "recorded_at"),
    )


class ScheduleSessionRecord(Base):
    """Live schedule session: full document plus the fields it is queried by"""
    __tablename__ = "schedule_sessions"

    id: Mapped[str] = str_pk()
    schedule_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    scheduled_start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    scheduled_end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    employee_present: Mapped[bool] = mapped_column(Boolean, default=False)
    currently_on_break: Mapped[bool] = mapped_column(Boolean, default=False)
    is_in_overtime: Mapped[bool] = mapped_column(Boolean, default=False)
    last_health_check: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    document: Mapped[dict] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        Index("idx_sessions_company_status_start", "company_id", "status", "scheduled_start_time"),
        Index("idx_sessions_company_status_end", "company_id", "status", "scheduled_end_time"),
    )


class ArchivedScheduleSession(Base):
    """Retired sessions moved out of the live collection"""
    __tablename__ = "archived_schedule_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    schedule_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    archived_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    document: Mapped[dict] = mapped_column(JSON, nullable=False)


class GeofenceAlert(Base):
    """Employee detected outside the job site while on the clock"""
    __tablename__ = "geofence_alerts"

    id: Mapped[str] = str_pk()
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    job_site_id: Mapped[str] = mapped_column(String(64), nullable=False)
    distance: Mapped[float] = mapped_column(Float, default=0)  # meters from site centre
    first_detected: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_seen: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_push_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_geofence_alerts_employee_active", "employee_id", "active"),
    )
