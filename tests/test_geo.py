from datetime import timedelta

import pytest

from app.utils.geo import bounding_box, haversine_m, is_valid_coordinate
from app.utils.time import humanize_elapsed, minutes_until, utcnow


def test_haversine_zero_and_known_distance():
    assert haversine_m(4.65, -74.06, 4.65, -74.06) == 0
    # One degree of latitude on the mean-radius sphere.
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=1e-3)


def test_haversine_across_antimeridian_is_short():
    assert haversine_m(0.0, 179.99, 0.0, -179.99) < 2_500


@pytest.mark.parametrize(
    ("longitude", "latitude", "expected"),
    [(-74.06, 4.65, True), (180.0, -90.0, True), (200.0, 10.0, False), (10.0, 91.0, False)],
)
def test_is_valid_coordinate(longitude, latitude, expected):
    assert is_valid_coordinate(longitude, latitude) is expected


def test_bounding_box_contains_radius():
    min_lat, max_lat, ranges = bounding_box(4.65, -74.06, 5_000)
    assert len(ranges) == 1
    low, high = ranges[0]
    assert min_lat < 4.65 < max_lat
    assert low < -74.06 < high
    assert haversine_m(4.65, -74.06, max_lat, -74.06) == pytest.approx(5_000, rel=1e-6)


def test_bounding_box_splits_at_antimeridian():
    _, _, ranges = bounding_box(0.0, 179.95, 50_000)
    assert len(ranges) == 2
    assert ranges[0][1] == 180.0
    assert ranges[1][0] == -180.0


def test_bounding_box_near_pole_spans_all_longitudes():
    _, max_lat, ranges = bounding_box(89.99, 0.0, 5_000)
    assert max_lat == 90.0
    assert ranges == [(-180.0, 180.0)]


def test_humanize_elapsed_buckets():
    now = utcnow()
    assert humanize_elapsed(now - timedelta(minutes=5), now=now) == "5 min ago"
    assert humanize_elapsed(now - timedelta(hours=3, minutes=10), now=now) == "3h ago"
    assert humanize_elapsed(now - timedelta(days=2, hours=1), now=now) == "2d ago"


def test_minutes_until_floors_at_zero():
    now = utcnow()
    assert minutes_until(now + timedelta(minutes=90, seconds=30), now=now) == 90
    assert minutes_until(now - timedelta(minutes=5), now=now) == 0
