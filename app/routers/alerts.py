"""Community alert endpoints."""
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.alert import Alert
from app.schemas.alert import AlertCreate, AlertDeleted, AlertPage, AlertRead, AlertStats, AlertUpdate, ReportCreate
from app.security import require_user_id
from app.services import alert_queries
from app.services import alerts as alerts_service

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("", response_model=AlertPage, status_code=status.HTTP_200_OK)
def list_alerts(
    kind: list[str] | None = Query(default=None),
    severity: list[str] | None = Query(default=None),
    active: bool | None = Query(default=True),
    include_inactive: bool = Query(default=False, description="Return active and inactive alerts."),
    lat: float | None = Query(default=None),
    lng: float | None = Query(default=None),
    radius: float | None = Query(default=None, description="Meters; only used with lat/lng."),
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    filters = {
        "kind": kind,
        "severity": severity,
        "active": None if include_inactive else active,
        "lat": lat,
        "lng": lng,
        "radius": radius,
    }
    return alert_queries.list_alerts(db, filters, page=page, limit=limit)


@router.get("/stats", response_model=AlertStats, status_code=status.HTTP_200_OK)
def alert_statistics(db: Session = Depends(get_db)) -> dict[str, Any]:
    return alert_queries.alert_statistics(db)


@router.get("/nearby", response_model=list[AlertRead], status_code=status.HTTP_200_OK)
def nearby_alerts(
    lat: float | None = Query(default=None),
    lng: float | None = Query(default=None),
    radius: float | None = Query(default=None),
    limit: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Alert]:
    return alert_queries.nearby_alerts(db, lat, lng, radius, limit)


@router.get("/{alert_id}", response_model=AlertRead, status_code=status.HTTP_200_OK)
def get_alert(alert_id: int, db: Session = Depends(get_db)) -> Alert:
    return alert_queries.get_alert(db, alert_id)


@router.post("", response_model=AlertRead, status_code=status.HTTP_201_CREATED)
def create_alert(
    payload: AlertCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> Alert:
    return alerts_service.create_alert(db, payload, user_id)


@router.put("/{alert_id}", response_model=AlertRead, status_code=status.HTTP_200_OK)
def update_alert(
    alert_id: int,
    payload: AlertUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> Alert:
    return alerts_service.update_alert(db, alert_id, payload, user_id)


@router.delete("/{alert_id}", response_model=AlertDeleted, status_code=status.HTTP_200_OK)
def soft_delete_alert(
    alert_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> dict[str, Any]:
    return alerts_service.soft_delete_alert(db, alert_id, user_id)


@router.post("/{alert_id}/reports", response_model=AlertRead, status_code=status.HTTP_200_OK)
def append_report(
    alert_id: int,
    payload: ReportCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
) -> Alert:
    return alerts_service.append_report(db, alert_id, user_id, payload.comment, payload.kind)

