"""Read-side alert queries: lookup, filtered pages, proximity and statistics.

Every read runs the expiry sweep first so no alert past its ``expires_at`` is
reported as active.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.alert import Alert, AlertKind, AlertSeverity
from app.services.alert_store import AlertFilter, count_alerts_grouped, find_alerts, get_alert_by_id
from app.services.expiry import sweep_before_read
from app.services.geo_index import GeoIndex, GeoPoint
from app.utils.errors import InvalidInput, NotFound
from app.utils.geo import is_valid_coordinate


def _parse_choices(field: str, raw: str | Iterable[str] | None, enum_cls: type) -> tuple[Any, ...]:
    """Accept one value, a comma separated string or a list; OR-matched later."""

    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    parsed: list[Any] = []
    for item in items:
        value = item.strip() if isinstance(item, str) else item
        if value in ("", None):
            continue
        try:
            member = enum_cls(value)
        except ValueError as exc:
            allowed = ", ".join(m.value for m in enum_cls)
            raise InvalidInput(f"Unknown {field}.", details={field: f"must be one of: {allowed}."}) from exc
        if member not in parsed:
            parsed.append(member)
    return tuple(parsed)


def _parse_center(latitude: Any, longitude: Any) -> GeoPoint | None:
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise InvalidInput("lat and lng must be given together.", details={"center": "incomplete"})
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("lat and lng must be numbers.", details={"center": "not a number"}) from exc
    if not (math.isfinite(lat) and math.isfinite(lon)) or not is_valid_coordinate(lon, lat):
        raise InvalidInput("lat/lng are out of range.", details={"lat": lat, "lng": lon})
    return GeoPoint(longitude=lon, latitude=lat)


def _parse_radius(radius_m: Any, default: float) -> float:
    if radius_m is None:
        return float(default)
    try:
        radius = float(radius_m)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("radius must be a number.", details={"radius": radius_m}) from exc
    if not math.isfinite(radius) or radius <= 0:
        raise InvalidInput("radius must be a positive number of meters.", details={"radius": radius_m})
    return radius


def build_filter(
    *,
    kind: str | Iterable[str] | None = None,
    severity: str | Iterable[str] | None = None,
    active: bool | None = True,
    latitude: float | None = None,
    longitude: float | None = None,
    radius_m: float | None = None,
    default_radius_m: float | None = None,
) -> AlertFilter:
    """Turn raw query parameters into an ``AlertFilter`` or raise ``InvalidInput``."""

    center = _parse_center(latitude, longitude)
    radius = None
    if center is not None:
        radius = _parse_radius(radius_m, default_radius_m or get_settings().LIST_DEFAULT_RADIUS_M)
    return AlertFilter(
        kinds=_parse_choices("kind", kind, AlertKind),
        severities=_parse_choices("severity", severity, AlertSeverity),
        active=active,
        center=center,
        radius_m=radius,
    )


def get_alert(db: Session, alert_id: int) -> Alert:
    sweep_before_read(db)
    alert = get_alert_by_id(db, alert_id)
    if alert is None:
        raise NotFound("Alert not found.", details={"id": alert_id})
    return alert


def list_alerts(
    db: Session,
    filters: Mapping[str, Any] | None = None,
    *,
    page: int = 1,
    limit: int | None = None,
    geo_index: GeoIndex | None = None,
) -> dict[str, Any]:
    """Return one page of alerts matching ``filters``.

    ``filters`` keys: ``kind``, ``severity``, ``active`` (default ``True``,
    ``None`` for both states), ``lat``, ``lng`` and ``radius`` in meters.
    With a center the page is ordered nearest first, otherwise newest first.
    """

    settings = get_settings()
    raw = dict(filters or {})
    if limit is None:
        limit = settings.LIST_DEFAULT_LIMIT
    if page < 1 or limit < 1:
        raise InvalidInput("page and limit must be positive.", details={"page": page, "limit": limit})
    limit = min(limit, settings.LIST_MAX_LIMIT)

    criteria = build_filter(
        kind=raw.get("kind"),
        severity=raw.get("severity"),
        active=raw.get("active", True),
        latitude=raw.get("lat"),
        longitude=raw.get("lng"),
        radius_m=raw.get("radius"),
        default_radius_m=settings.LIST_DEFAULT_RADIUS_M,
    )

    sweep_before_read(db)
    items, total = find_alerts(db, criteria, limit=limit, offset=(page - 1) * limit, geo_index=geo_index)
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        },
    }


def nearby_alerts(
    db: Session,
    latitude: float | None,
    longitude: float | None,
    radius_m: float | None = None,
    limit: int | None = None,
    *,
    geo_index: GeoIndex | None = None,
) -> list[Alert]:
    """Active alerts within ``radius_m`` of the point, nearest first."""

    settings = get_settings()
    if latitude is None or longitude is None:
        raise InvalidInput("lat and lng are required.", details={"center": "missing"})
    max_results = settings.NEARBY_MAX_RESULTS
    if limit is not None:
        if limit < 1:
            raise InvalidInput("limit must be positive.", details={"limit": limit})
        max_results = min(limit, max_results)

    criteria = build_filter(
        active=True,
        latitude=latitude,
        longitude=longitude,
        radius_m=radius_m,
        default_radius_m=settings.NEARBY_DEFAULT_RADIUS_M,
    )

    sweep_before_read(db)
    items, _ = find_alerts(db, criteria, limit=max_results, geo_index=geo_index)
    return items


def alert_statistics(db: Session) -> dict[str, Any]:
    """Counts of active alerts per kind and per severity from one grouped query."""

    sweep_before_read(db)
    grouped = count_alerts_grouped(db, AlertFilter(active=True))

    per_kind = {kind.value: 0 for kind in AlertKind}
    per_severity = {severity.value: 0 for severity in AlertSeverity}
    for (kind, severity), count in grouped.items():
        per_kind[AlertKind(kind).value] += count
        per_severity[AlertSeverity(severity).value] += count
    return {"total": sum(grouped.values()), "per_kind": per_kind, "per_severity": per_severity}


__all__ = ["build_filter", "get_alert", "list_alerts", "nearby_alerts", "alert_statistics"]
