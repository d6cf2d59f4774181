"""Expiry sweep: flips alerts past their ``expires_at`` to inactive."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import db as database
from app.core.runtime_state import record_sweep
from app.models.alert import Alert
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def sweep_expired_alerts(db: Session, *, now: datetime | None = None) -> int:
    """Deactivate every active alert whose expiry has passed; returns the count.

    Idempotent: a second run with nothing expired updates no rows.
    """

    reference = now or utcnow()
    stmt = (
        update(Alert)
        .where(Alert.active.is_(True), Alert.expires_at < reference)
        .values(active=False, version=Alert.version + 1, updated_at=reference)
        .execution_options(synchronize_session=False)
    )
    expired = db.execute(stmt).rowcount or 0
    db.commit()
    record_sweep(reference, expired=expired, ok=True)
    if expired:
        # Instances already in the identity map still carry active=True.
        db.expire_all()
        logger.info("Expired alerts deactivated", extra={"count": expired})
    return expired


def sweep_before_read(db: Session) -> int:
    """Run the sweep ahead of a read without ever failing that read."""

    try:
        return sweep_expired_alerts(db)
    except SQLAlchemyError as exc:
        db.rollback()
        record_sweep(utcnow(), expired=0, ok=False)
        logger.warning("Expiry sweep failed; serving read without it", extra={"error": str(exc)})
        return 0


def sweep_expired_once() -> None:
    """Scheduled job body: sweep using a dedicated session."""

    session = database.get_sessionmaker()()
    try:
        sweep_before_read(session)
    finally:
        session.close()


__all__ = ["sweep_expired_alerts", "sweep_before_read", "sweep_expired_once"]
