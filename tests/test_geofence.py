import pytest

from geowork.schemas.reference import JobSite, LocationFix
from geowork.services.geofence import haversine_distance, inside_geofence, site_radius

from .helpers import OUTSIDE_LAT, SITE_LAT, SITE_LON, at


def site(radius=100):
    return JobSite(id="s1", company_id="c1", site_name="Harbour Depot",
                   latitude=SITE_LAT, longitude=SITE_LON, radius=radius)


def fix(lat, lon=SITE_LON, accuracy=10.0):
    return LocationFix(latitude=lat, longitude=lon, accuracy=accuracy, timestamp=at(9))


def test_haversine_one_degree_of_latitude():
    assert haversine_distance(0, 0, 1, 0) == pytest.approx(111195, rel=1e-3)


def test_haversine_same_point_is_zero():
    assert haversine_distance(SITE_LAT, SITE_LON, SITE_LAT, SITE_LON) == 0


def test_fix_at_centre_is_inside():
    inside, distance, risky = inside_geofence(fix(SITE_LAT), site())
    assert inside
    assert distance == pytest.approx(0)
    assert not risky


def test_fix_far_away_is_outside():
    inside, distance, _ = inside_geofence(fix(OUTSIDE_LAT), site())
    assert not inside
    assert distance == pytest.approx(1112, rel=1e-2)


def test_boundary_is_inclusive():
    # ~55.6 m north of the centre
    inside, distance, _ = inside_geofence(fix(SITE_LAT + 0.0005), site(radius=56))
    assert distance < 56
    assert inside


def test_poor_accuracy_is_flagged_but_does_not_change_membership():
    inside, _, risky = inside_geofence(fix(SITE_LAT, accuracy=250), site(), accuracy_risk_m=100)
    assert inside
    assert risky


def test_missing_radius_uses_default():
    assert site_radius(site(radius=0)) == 150
    assert site_radius(site(radius=80)) == 80
