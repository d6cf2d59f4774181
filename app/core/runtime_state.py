"""Process-wide runtime flags shared across modules."""
from __future__ import annotations

from datetime import datetime

_scheduler_active = False
_last_sweep: dict[str, object] = {"at": None, "expired": 0, "ok": None}


def set_scheduler_active(active: bool) -> None:
    global _scheduler_active
    _scheduler_active = active


def is_scheduler_active() -> bool:
    return _scheduler_active


def record_sweep(at: datetime, *, expired: int, ok: bool) -> None:
    """Remember the outcome of the latest expiry sweep for health reporting."""

    _last_sweep.update({"at": at.isoformat(), "expired": expired, "ok": ok})


def last_sweep() -> dict[str, object]:
    return dict(_last_sweep)
