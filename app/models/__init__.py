"""ORM models package."""
from .alert import Alert, AlertKind, AlertReport, AlertSeverity, ReportKind
from .base import Base

__all__ = [
    "Alert",
    "AlertKind",
    "AlertReport",
    "AlertSeverity",
    "Base",
    "ReportKind",
]
