"""Alert and report ORM models."""
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SqlEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class AlertKind(str, enum.Enum):
    traffic = "traffic"
    natural = "natural"
    security = "security"


class AlertSeverity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class ReportKind(str, enum.Enum):
    confirmation = "confirmation"
    update = "update"
    resolution = "resolution"


class Alert(Base):
    """A geotagged hazard or event published by a community member."""

    __tablename__ = "alerts"
    __table_args__ = (
        CheckConstraint("longitude >= -180 AND longitude <= 180", name="longitude_range"),
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="latitude_range"),
        Index("ix_alerts_kind_severity", "kind", "severity"),
        Index("ix_alerts_created_at", "created_at"),
        Index("ix_alerts_active", "active"),
        Index("ix_alerts_active_expires_at", "active", "expires_at"),
        Index("ix_alerts_latitude_longitude", "latitude", "longitude"),
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    kind: Mapped[AlertKind] = mapped_column(
        SqlEnum(AlertKind, name="alert_kind"), nullable=False, default=AlertKind.traffic
    )
    severity: Mapped[AlertSeverity] = mapped_column(
        SqlEnum(AlertSeverity, name="alert_severity"), nullable=False, default=AlertSeverity.medium
    )
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str | None] = mapped_column(String(200), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    creator_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    reports: Mapped[list["AlertReport"]] = relationship(
        back_populates="alert",
        order_by="AlertReport.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}


class AlertReport(Base):
    """A confirmation, update or resolution note appended to an alert."""

    __tablename__ = "alert_reports"
    __table_args__ = (UniqueConstraint("alert_id", "position", name="uq_alert_reports_alert_id_position"),)

    alert_id: Mapped[int] = mapped_column(ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[ReportKind] = mapped_column(
        SqlEnum(ReportKind, name="report_kind"), nullable=False, default=ReportKind.confirmation
    )

    alert: Mapped[Alert] = relationship(back_populates="reports")
