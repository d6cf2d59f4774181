"""Radius search primitive the alert store depends on."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import Session

from app.models.alert import Alert
from app.utils.geo import bounding_box, haversine_m
from app.utils.time import ensure_utc


@dataclass(frozen=True)
class GeoPoint:
    longitude: float
    latitude: float


@dataclass(frozen=True)
class GeoHit:
    alert: Alert
    distance_m: float


class GeoIndex(Protocol):
    """Answers "alerts within ``radius_m`` of ``center``, nearest first"."""

    def within_radius(
        self, db: Session, stmt: Select, center: GeoPoint, radius_m: float
    ) -> list[GeoHit]:
        ...


class BoundingBoxGeoIndex:
    """Portable index: SQL bounding-box prefilter, exact haversine in Python.

    The prefilter runs against the ``(latitude, longitude)`` index so only the
    rows inside the enclosing box are materialised. Ties on distance are broken
    by newest first.
    """

    def within_radius(
        self, db: Session, stmt: Select, center: GeoPoint, radius_m: float
    ) -> list[GeoHit]:
        min_lat, max_lat, lon_ranges = bounding_box(center.latitude, center.longitude, radius_m)
        lon_clause = or_(
            *(and_(Alert.longitude >= low, Alert.longitude <= high) for low, high in lon_ranges)
        )
        boxed = stmt.where(Alert.latitude >= min_lat, Alert.latitude <= max_lat, lon_clause)

        hits: list[GeoHit] = []
        for alert in db.scalars(boxed).all():
            distance = haversine_m(center.latitude, center.longitude, alert.latitude, alert.longitude)
            if distance <= radius_m:
                hits.append(GeoHit(alert=alert, distance_m=distance))

        hits.sort(key=lambda hit: (hit.distance_m, -ensure_utc(hit.alert.created_at).timestamp(), -hit.alert.id))
        return hits


default_geo_index: GeoIndex = BoundingBoxGeoIndex()


__all__ = ["GeoPoint", "GeoHit", "GeoIndex", "BoundingBoxGeoIndex", "default_geo_index"]
