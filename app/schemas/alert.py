"""Alert schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.models.alert import AlertKind, AlertSeverity, ReportKind
from app.utils.time import ensure_utc, humanize_elapsed, minutes_until, utcnow


def _coordinates_to_point(data: dict[str, Any]) -> dict[str, Any]:
    """Move a ``[lon, lat]`` pair into the store's ``longitude``/``latitude`` fields."""

    if "coordinates" in data:
        data["longitude"], data["latitude"] = data.pop("coordinates")
    return data


class AlertCreate(BaseModel):
    """Payload to publish an alert. Range checks happen in the store."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    kind: str | None = None
    severity: str | None = None
    coordinates: list[float] = Field(min_length=2, max_length=2, description="[longitude, latitude]")
    address: str | None = None
    expires_at: datetime | None = None
    tags: list[str] = Field(default_factory=list)

    def to_store_values(self) -> dict[str, Any]:
        return _coordinates_to_point(self.model_dump(exclude_none=True))


class AlertUpdate(BaseModel):
    """Partial update; only the supplied fields are touched."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str | None = None
    description: str | None = None
    kind: str | None = None
    severity: str | None = None
    coordinates: list[float] | None = Field(default=None, min_length=2, max_length=2)
    address: str | None = None
    expires_at: datetime | None = None
    tags: list[str] | None = None

    @field_validator("coordinates", "expires_at", mode="before")
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("cannot be null; omit the field to leave it unchanged")
        return value

    def to_store_values(self) -> dict[str, Any]:
        return _coordinates_to_point(self.model_dump(exclude_unset=True))


class ReportCreate(BaseModel):
    comment: str | None = None
    kind: str = ReportKind.confirmation.value


class GeoPointRead(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]


class ReportRead(BaseModel):
    position: int
    user_id: str
    comment: str
    kind: ReportKind
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class AlertRead(BaseModel):
    """Serialized alert; location and time-derived fields are computed, never stored."""

    id: int
    title: str
    description: str
    kind: AlertKind
    severity: AlertSeverity
    longitude: float = Field(exclude=True)
    latitude: float = Field(exclude=True)
    address: str | None
    active: bool
    creator_id: str
    tags: list[str]
    reports: list[ReportRead]
    created_at: datetime
    updated_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at", "expires_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def location(self) -> GeoPointRead:
        return GeoPointRead(coordinates=(self.longitude, self.latitude))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def elapsed(self) -> str:
        return humanize_elapsed(self.created_at)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def minutes_remaining(self) -> int:
        return minutes_until(self.expires_at)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_expired(self) -> bool:
        return self.expires_at < utcnow()


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AlertPage(BaseModel):
    items: list[AlertRead]
    pagination: PaginationMeta


class AlertStats(BaseModel):
    total: int
    per_kind: dict[AlertKind, int]
    per_severity: dict[AlertSeverity, int]


class AlertDeleted(BaseModel):
    id: int
    active: bool
    message: str
