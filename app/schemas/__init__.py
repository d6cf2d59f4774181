"""Schema package exports."""
from .alert import (
    AlertCreate,
    AlertDeleted,
    AlertPage,
    AlertRead,
    AlertStats,
    AlertUpdate,
    GeoPointRead,
    PaginationMeta,
    ReportCreate,
    ReportRead,
)

__all__ = [
    "AlertCreate",
    "AlertDeleted",
    "AlertPage",
    "AlertRead",
    "AlertStats",
    "AlertUpdate",
    "GeoPointRead",
    "PaginationMeta",
    "ReportCreate",
    "ReportRead",
]
