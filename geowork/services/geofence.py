"""
Geofence evaluation.
Uses Haversine formula to calculate distance between points.
"""
import math
from typing import Optional, Tuple

from ..config import settings
from ..schemas.reference import JobSite, LocationFix


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    # Earth radius in meters
    R = 6371000

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def site_radius(job_site: JobSite) -> float:
    if job_site.radius and job_site.radius > 0:
        return float(job_site.radius)
    return float(settings.geo_radius_m_default)


def inside_geofence(
    fix: LocationFix,
    job_site: JobSite,
    accuracy_risk_m: Optional[float] = None,
) -> Tuple[bool, float, bool]:
    """
    Check whether a location fix lies inside a job site's circular geofence.

    Membership is `distance <= radius`; accuracy never widens or shrinks the fence,
    it only marks the reading as low-confidence.

    Returns:
        Tuple of (is_inside, distance_m, is_risk)
        is_risk: True if accuracy is poor (accuracy > GPS_ACCURACY_RISK_M)
    """
    if accuracy_risk_m is None:
        accuracy_risk_m = settings.gps_accuracy_risk_m
    distance = haversine_distance(fix.latitude, fix.longitude, job_site.latitude, job_site.longitude)
    is_risk = fix.accuracy is not None and fix.accuracy > accuracy_risk_m
    return distance <= site_radius(job_site), distance, is_risk
