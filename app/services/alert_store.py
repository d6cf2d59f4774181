"""Alert persistence primitives.

Pure storage: field validation, inserts, patches, report appends and filtered
reads. Ownership and expiry rules live in the lifecycle and sweeper services.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import get_settings
from app.models.alert import Alert, AlertKind, AlertReport, AlertSeverity, ReportKind
from app.services.geo_index import GeoIndex, GeoPoint, default_geo_index
from app.utils.errors import StorageFailure, ValidationError
from app.utils.geo import is_valid_coordinate
from app.utils.time import ensure_utc, parse_iso_utc, utcnow

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
ADDRESS_MAX_LENGTH = 200
TAG_MAX_LENGTH = 50
USER_ID_MAX_LENGTH = 128
COMMENT_MAX_LENGTH = 500

PATCHABLE_FIELDS = frozenset(
    {"title", "description", "kind", "severity", "longitude", "latitude", "address", "active", "expires_at", "tags"}
)
CREATE_FIELDS = PATCHABLE_FIELDS | {"creator_id"}
REQUIRED_ON_CREATE = ("title", "description", "longitude", "latitude", "creator_id")


@dataclass(frozen=True)
class AlertFilter:
    """Criteria shared by listing, counting and aggregation.

    ``kinds``/``severities`` are OR-matched within their dimension; ``active``
    of ``None`` matches both states. ``center`` requires ``radius_m``.
    """

    kinds: tuple[AlertKind, ...] = ()
    severities: tuple[AlertSeverity, ...] = ()
    active: bool | None = True
    center: GeoPoint | None = None
    radius_m: float | None = None


# -------- validation --------


def _clean_text(
    errors: dict[str, str], field: str, value: Any, *, max_length: int, allow_empty: bool = False
) -> str | None:
    if value is None:
        if not allow_empty:
            errors[field] = f"{field} is required."
        return None
    if not isinstance(value, str):
        errors[field] = f"{field} must be a string."
        return None
    cleaned = value.strip()
    if not cleaned:
        if not allow_empty:
            errors[field] = f"{field} must not be blank."
        return None
    if len(cleaned) > max_length:
        errors[field] = f"{field} must be at most {max_length} characters."
        return None
    return cleaned


def _clean_enum(errors: dict[str, str], field: str, value: Any, enum_cls: type) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        errors[field] = f"{field} must be one of: {allowed}."
        return None


def _clean_coordinate(errors: dict[str, str], field: str, value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        errors[field] = f"{field} must be a finite number."
        return None
    return float(value)


def _clean_tags(errors: dict[str, str], value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set)):
        errors["tags"] = "tags must be a list of strings."
        return []
    tags: list[str] = []
    for raw in value:
        if not isinstance(raw, str):
            errors["tags"] = "tags must be a list of strings."
            return []
        tag = raw.strip()
        if not tag or tag in tags:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            errors["tags"] = f"each tag must be at most {TAG_MAX_LENGTH} characters."
            return []
        tags.append(tag)
    return tags


def _clean_datetime(errors: dict[str, str], field: str, value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return parse_iso_utc(value)
        except ValueError:
            pass
    errors[field] = f"{field} must be an ISO 8601 timestamp."
    return None


def validate_alert_fields(values: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    """Return cleaned column values or raise ``ValidationError`` listing every bad field.

    With ``partial=True`` only the supplied fields are checked, and the whole
    patch is rejected when any of them fails.
    """

    allowed = PATCHABLE_FIELDS if partial else CREATE_FIELDS
    errors: dict[str, str] = {}
    for field in sorted(set(values) - allowed):
        errors[field] = "field cannot be set."
    if not partial:
        for field in REQUIRED_ON_CREATE:
            if values.get(field) is None:
                errors[field] = f"{field} is required."

    cleaned: dict[str, Any] = {}
    if "title" in values:
        cleaned["title"] = _clean_text(errors, "title", values["title"], max_length=TITLE_MAX_LENGTH)
    if "description" in values:
        cleaned["description"] = _clean_text(
            errors, "description", values["description"], max_length=DESCRIPTION_MAX_LENGTH
        )
    if "creator_id" in values:
        cleaned["creator_id"] = _clean_text(errors, "creator_id", values["creator_id"], max_length=USER_ID_MAX_LENGTH)
    if "address" in values:
        cleaned["address"] = _clean_text(
            errors, "address", values["address"], max_length=ADDRESS_MAX_LENGTH, allow_empty=True
        )
    if partial:
        if "kind" in values:
            cleaned["kind"] = _clean_enum(errors, "kind", values["kind"], AlertKind)
        if "severity" in values:
            cleaned["severity"] = _clean_enum(errors, "severity", values["severity"], AlertSeverity)
    else:
        cleaned["kind"] = _clean_enum(errors, "kind", values.get("kind") or AlertKind.traffic, AlertKind)
        cleaned["severity"] = _clean_enum(
            errors, "severity", values.get("severity") or AlertSeverity.medium, AlertSeverity
        )
    if "tags" in values or not partial:
        cleaned["tags"] = _clean_tags(errors, values.get("tags"))
    if "active" in values:
        if isinstance(values["active"], bool):
            cleaned["active"] = values["active"]
        else:
            errors["active"] = "active must be a boolean."
    if values.get("expires_at") is not None:
        cleaned["expires_at"] = _clean_datetime(errors, "expires_at", values["expires_at"])
    elif "expires_at" in values and partial:
        errors["expires_at"] = "expires_at cannot be cleared."

    has_longitude, has_latitude = "longitude" in values, "latitude" in values
    if has_longitude != has_latitude:
        errors["location"] = "longitude and latitude must be updated together."
    elif has_longitude and (partial or (values["longitude"] is not None and values["latitude"] is not None)):
        longitude = _clean_coordinate(errors, "longitude", values["longitude"])
        latitude = _clean_coordinate(errors, "latitude", values["latitude"])
        if longitude is not None and latitude is not None:
            if is_valid_coordinate(longitude, latitude):
                cleaned["longitude"] = longitude
                cleaned["latitude"] = latitude
            else:
                errors["location"] = "coordinates must be [longitude, latitude] within valid bounds."

    if errors:
        raise ValidationError("Alert validation failed.", details=errors)
    return cleaned


# -------- transaction helpers --------


@contextmanager
def _storage_guard(db: Session, action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Alert store operation failed", extra={"action": action})
        raise StorageFailure(
            "The alert store is unavailable, try again later.", details={"action": action}
        ) from exc


def _load_for_write(db: Session, alert_id: int) -> Alert | None:
    # FOR UPDATE is a no-op on SQLite; the version column still catches races.
    return db.get(Alert, alert_id, with_for_update=True, populate_existing=True)


def _commit_with_retry(
    db: Session, apply: Callable[[], Alert | None], *, alert_id: int, attempts: int, action: str
) -> Alert | None:
    """Run read-modify-write ``apply`` and commit, retrying on version/unique conflicts."""

    last_conflict: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            alert = apply()
            if alert is None:
                return None
            db.commit()
            return alert
        except (StaleDataError, IntegrityError) as exc:
            db.rollback()
            last_conflict = exc
            logger.info(
                "Concurrent write on alert, retrying",
                extra={"alert_id": alert_id, "action": action, "attempt": attempt},
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Alert store operation failed", extra={"action": action, "alert_id": alert_id})
            raise StorageFailure(
                "The alert store is unavailable, try again later.", details={"action": action}
            ) from exc

    logger.warning(
        "Giving up on contended alert write", extra={"alert_id": alert_id, "action": action, "attempts": attempts}
    )
    raise StorageFailure(
        "Too many concurrent writes to this alert, try again.",
        details={"action": action, "alert_id": alert_id},
    ) from last_conflict


# -------- writes --------


def insert_alert(db: Session, values: Mapping[str, Any]) -> Alert:
    """Validate and persist a new alert; ``expires_at`` defaults to creation + TTL."""

    cleaned = validate_alert_fields(values, partial=False)
    now = utcnow()
    expires_at = cleaned.pop("expires_at", None) or now + timedelta(hours=get_settings().ALERT_DEFAULT_TTL_HOURS)
    cleaned.setdefault("active", True)
    alert = Alert(**cleaned, created_at=now, updated_at=now, expires_at=expires_at)

    with _storage_guard(db, "insert"):
        db.add(alert)
        db.commit()
        db.refresh(alert)
    return alert


def update_alert_patch(db: Session, alert_id: int, values: Mapping[str, Any]) -> Alert | None:
    """Apply a validated partial update; ``None`` when the alert does not exist."""

    cleaned = validate_alert_fields(values, partial=True)

    def _apply() -> Alert | None:
        alert = _load_for_write(db, alert_id)
        if alert is None:
            return None
        for field, value in cleaned.items():
            setattr(alert, field, value)
        alert.updated_at = utcnow()
        return alert

    return _commit_with_retry(
        db, _apply, alert_id=alert_id, attempts=get_settings().ALERT_WRITE_MAX_ATTEMPTS, action="update"
    )


def append_alert_report(
    db: Session, alert_id: int, *, user_id: str, comment: str, kind: ReportKind = ReportKind.confirmation
) -> Alert | None:
    """Append a report at the next position; ``None`` when the alert does not exist.

    Report timestamps are strictly increasing per alert, so concurrent appends
    landing in the same clock tick are still distinguishable.
    """

    errors: dict[str, str] = {}
    cleaned_user = _clean_text(errors, "user_id", user_id, max_length=USER_ID_MAX_LENGTH)
    cleaned_comment = _clean_text(errors, "comment", comment, max_length=COMMENT_MAX_LENGTH)
    report_kind = _clean_enum(errors, "kind", kind, ReportKind)
    if errors:
        raise ValidationError("Report validation failed.", details=errors)

    def _apply() -> Alert | None:
        alert = _load_for_write(db, alert_id)
        if alert is None:
            return None
        last = db.execute(
            select(AlertReport.position, AlertReport.created_at)
            .where(AlertReport.alert_id == alert_id)
            .order_by(AlertReport.position.desc())
            .limit(1)
        ).first()
        now = utcnow()
        position = 0
        if last is not None:
            position = last.position + 1
            previous = ensure_utc(last.created_at)
            if now <= previous:
                now = previous + timedelta(microseconds=1)
        alert.reports.append(
            AlertReport(
                position=position,
                user_id=cleaned_user,
                comment=cleaned_comment,
                kind=report_kind,
                created_at=now,
                updated_at=now,
            )
        )
        # Touching the parent row bumps its version, turning a racing append into a conflict.
        alert.updated_at = now
        return alert

    return _commit_with_retry(
        db, _apply, alert_id=alert_id, attempts=get_settings().ALERT_WRITE_MAX_ATTEMPTS, action="append_report"
    )


# -------- reads --------


def get_alert_by_id(db: Session, alert_id: int) -> Alert | None:
    with _storage_guard(db, "get"):
        return db.get(Alert, alert_id, populate_existing=True)


def _apply_filters(stmt: Select, filters: AlertFilter) -> Select:
    if filters.kinds:
        stmt = stmt.where(Alert.kind.in_(filters.kinds))
    if filters.severities:
        stmt = stmt.where(Alert.severity.in_(filters.severities))
    if filters.active is not None:
        stmt = stmt.where(Alert.active == filters.active)
    return stmt


def _geo_hits(db: Session, filters: AlertFilter, geo_index: GeoIndex | None):
    if filters.radius_m is None:
        raise ValueError("radius_m is required when filtering by center")
    index = geo_index or default_geo_index
    return index.within_radius(db, _apply_filters(select(Alert), filters), filters.center, filters.radius_m)


def find_alerts(
    db: Session,
    filters: AlertFilter,
    *,
    limit: int,
    offset: int = 0,
    geo_index: GeoIndex | None = None,
) -> tuple[list[Alert], int]:
    """Return one page of matching alerts and the total match count.

    Nearest first when ``filters.center`` is set, otherwise newest first.
    """

    with _storage_guard(db, "find"):
        if filters.center is not None:
            hits = _geo_hits(db, filters, geo_index)
            return [hit.alert for hit in hits[offset : offset + limit]], len(hits)

        total = count_alerts(db, filters)
        stmt = (
            _apply_filters(select(Alert), filters)
            .order_by(Alert.created_at.desc(), Alert.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(db.scalars(stmt).all()), total


def count_alerts(db: Session, filters: AlertFilter, *, geo_index: GeoIndex | None = None) -> int:
    with _storage_guard(db, "count"):
        if filters.center is not None:
            return len(_geo_hits(db, filters, geo_index))
        stmt = _apply_filters(select(func.count(Alert.id)), filters)
        return int(db.scalar(stmt) or 0)


def count_alerts_grouped(
    db: Session, filters: AlertFilter, *, geo_index: GeoIndex | None = None
) -> dict[tuple[AlertKind, AlertSeverity], int]:
    """Count matching alerts per ``(kind, severity)`` pair in a single query."""

    with _storage_guard(db, "aggregate"):
        if filters.center is not None:
            return dict(Counter((hit.alert.kind, hit.alert.severity) for hit in _geo_hits(db, filters, geo_index)))
        stmt = _apply_filters(
            select(Alert.kind, Alert.severity, func.count(Alert.id)), filters
        ).group_by(Alert.kind, Alert.severity)
        return {(kind, severity): int(count) for kind, severity, count in db.execute(stmt).all()}


__all__ = [
    "AlertFilter",
    "validate_alert_fields",
    "insert_alert",
    "update_alert_patch",
    "append_alert_report",
    "get_alert_by_id",
    "find_alerts",
    "count_alerts",
    "count_alerts_grouped",
]
