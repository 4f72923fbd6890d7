from fastapi import Request

from .services.geofence_alerts import GeofenceAlertMonitor
from .services.orchestrator import ScheduleOrchestrator
from .store.provider import SessionStore


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_orchestrator(request: Request) -> ScheduleOrchestrator:
    return request.app.state.orchestrator


def get_alert_monitor(request: Request) -> GeofenceAlertMonitor:
    return request.app.state.alert_monitor


def get_clock(request: Request):
    return request.app.state.clock
