"""Geospatial utility helpers."""
from math import asin, cos, degrees, radians, sin, sqrt

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the distance in meters between two WGS84 coordinates."""

    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    a = sin(dlat / 2.0) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2.0) ** 2
    c = 2 * asin(min(1.0, sqrt(a)))
    return EARTH_RADIUS_M * c


def is_valid_coordinate(longitude: float, latitude: float) -> bool:
    """Return True when the pair lies within geographic bounds."""

    return -180.0 <= longitude <= 180.0 and -90.0 <= latitude <= 90.0


def bounding_box(
    lat: float, lon: float, radius_m: float
) -> tuple[float, float, list[tuple[float, float]]]:
    """Return ``(min_lat, max_lat, lon_ranges)`` enclosing a circle of ``radius_m``.

    ``lon_ranges`` holds one ``(min_lon, max_lon)`` pair, or two when the box
    crosses the antimeridian. Near the poles the whole longitude span is used.
    """

    angular = radius_m / EARTH_RADIUS_M
    min_lat = lat - degrees(angular)
    max_lat = lat + degrees(angular)
    if min_lat <= -90.0 or max_lat >= 90.0:
        return max(min_lat, -90.0), min(max_lat, 90.0), [(-180.0, 180.0)]

    cos_lat = cos(radians(lat))
    if sin(angular) >= cos_lat:
        return min_lat, max_lat, [(-180.0, 180.0)]
    delta_lon = degrees(asin(sin(angular) / cos_lat))

    min_lon = lon - delta_lon
    max_lon = lon + delta_lon
    if min_lon < -180.0:
        return min_lat, max_lat, [(min_lon + 360.0, 180.0), (-180.0, max_lon)]
    if max_lon > 180.0:
        return min_lat, max_lat, [(min_lon, 180.0), (-180.0, max_lon - 360.0)]
    return min_lat, max_lat, [(min_lon, max_lon)]


__all__ = ["EARTH_RADIUS_M", "haversine_m", "is_valid_coordinate", "bounding_box"]
