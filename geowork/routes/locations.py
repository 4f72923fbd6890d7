from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..deps import get_alert_monitor, get_clock, get_store
from ..errors import StoreError
from ..schemas.reference import LocationFix
from ..services.geofence_alerts import GeofenceAlertMonitor
from ..services.time_rules import ensure_utc
from ..store.provider import SessionStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/locations", tags=["locations"])


class LocationReport(BaseModel):
    employeeId: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    timestamp: Optional[datetime] = None


@router.post("", status_code=201)
def report_location(
    payload: LocationReport,
    store: SessionStore = Depends(get_store),
    monitor: GeofenceAlertMonitor = Depends(get_alert_monitor),
    clock=Depends(get_clock),
):
    """Store a device location fix and update the employee's geofence alert."""
    now = clock()
    fix = LocationFix(
        latitude=payload.latitude,
        longitude=payload.longitude,
        accuracy=payload.accuracy if payload.accuracy is not None else 50.0,
        timestamp=ensure_utc(payload.timestamp) if payload.timestamp else now,
    )
    try:
        store.add_location(payload.employeeId, fix)
    except StoreError as e:
        logger.error("location_store_failed", employee_id=payload.employeeId, error=str(e))
        raise HTTPException(status_code=503, detail="Location could not be stored")

    alert = None
    try:
        alert = monitor.process(payload.employeeId, fix, now)
    except Exception:
        logger.exception("geofence_alert_failed", employee_id=payload.employeeId)

    return {
        "status": "stored",
        "employeeId": payload.employeeId,
        "timestamp": fix.timestamp.isoformat(),
        "geofenceAlert": alert.to_document() if alert is not None else None,
    }
