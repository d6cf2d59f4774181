"""Alert lifecycle services: creation, owner-only edits, soft delete and reports."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.models.alert import Alert, ReportKind
from app.schemas.alert import AlertCreate, AlertUpdate
from app.services.alert_store import (
    COMMENT_MAX_LENGTH,
    append_alert_report,
    get_alert_by_id,
    insert_alert,
    update_alert_patch,
)
from app.services.expiry import sweep_before_read
from app.utils.errors import Forbidden, InvalidInput, NotFound

logger = logging.getLogger(__name__)

SOFT_DELETE_MESSAGE = "Alert marked as inactive."


def _pydantic_details(exc: PydanticValidationError) -> dict[str, str]:
    details: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        details.setdefault(field, error["msg"])
    return details


def _parse(model: type[BaseModel], payload: Mapping[str, Any] | BaseModel, message: str) -> Any:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, Mapping):
        raise InvalidInput(message, details={"body": "expected an object."})
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise InvalidInput(message, details=_pydantic_details(exc)) from exc


def _require_user(user_id: str | None, field: str = "user_id") -> str:
    cleaned = user_id.strip() if isinstance(user_id, str) else ""
    if not cleaned:
        raise InvalidInput("A requester id is required.", details={field: "missing"})
    return cleaned


def _owned_alert(db: Session, alert_id: int, requester_id: str) -> Alert:
    # An expired alert must read as inactive before any write decides on it.
    sweep_before_read(db)
    alert = get_alert_by_id(db, alert_id)
    if alert is None:
        raise NotFound("Alert not found.", details={"id": alert_id})
    if alert.creator_id != requester_id:
        logger.info(
            "Alert change refused for non-owner",
            extra={"alert_id": alert_id, "requester_id": requester_id},
        )
        raise Forbidden("Only the creator can modify this alert.")
    return alert


def create_alert(db: Session, fields: Mapping[str, Any] | AlertCreate, creator_id: str | None) -> Alert:
    """Publish a new alert owned by ``creator_id``.

    Missing or malformed inputs raise ``InvalidInput``; range and length
    violations surface from the store as ``ValidationError``.
    """

    creator = _require_user(creator_id, "creator_id")
    payload: AlertCreate = _parse(AlertCreate, fields, "Invalid alert payload.")
    values = payload.to_store_values()
    values["creator_id"] = creator

    alert = insert_alert(db, values)
    logger.info(
        "Alert created",
        extra={
            "alert_id": alert.id,
            "creator_id": creator,
            "kind": alert.kind.value,
            "severity": alert.severity.value,
        },
    )
    return alert


def update_alert(
    db: Session, alert_id: int, patch: Mapping[str, Any] | AlertUpdate, requester_id: str | None
) -> Alert:
    """Apply a partial update on behalf of the alert's creator."""

    requester = _require_user(requester_id)
    _owned_alert(db, alert_id, requester)
    payload: AlertUpdate = _parse(AlertUpdate, patch, "Invalid alert update.")
    values = payload.to_store_values()
    if not values:
        raise InvalidInput("The update does not change any field.")

    alert = update_alert_patch(db, alert_id, values)
    if alert is None:
        raise NotFound("Alert not found.", details={"id": alert_id})
    logger.info("Alert updated", extra={"alert_id": alert_id, "fields": sorted(values)})
    return alert


def soft_delete_alert(db: Session, alert_id: int, requester_id: str | None) -> dict[str, Any]:
    """Mark the alert inactive; repeating the call returns the same confirmation."""

    requester = _require_user(requester_id)
    alert = _owned_alert(db, alert_id, requester)
    if alert.active:
        if update_alert_patch(db, alert_id, {"active": False}) is None:
            raise NotFound("Alert not found.", details={"id": alert_id})
        logger.info("Alert soft-deleted", extra={"alert_id": alert_id, "requester_id": requester})
    return {"id": alert_id, "active": False, "message": SOFT_DELETE_MESSAGE}


def append_report(
    db: Session,
    alert_id: int,
    user_id: str | None,
    comment: str | None,
    kind: str | ReportKind = ReportKind.confirmation,
) -> Alert:
    """Append a community report to an alert. Any identified user may report."""

    reporter = _require_user(user_id)
    if not isinstance(comment, str) or not comment.strip():
        raise InvalidInput("A report comment is required.", details={"comment": "missing"})
    if len(comment.strip()) > COMMENT_MAX_LENGTH:
        raise InvalidInput(
            "The report comment is too long.",
            details={"comment": f"must be at most {COMMENT_MAX_LENGTH} characters."},
        )
    try:
        report_kind = ReportKind(kind)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in ReportKind)
        raise InvalidInput("Unknown report kind.", details={"kind": f"must be one of: {allowed}."}) from exc

    sweep_before_read(db)
    alert = append_alert_report(db, alert_id, user_id=reporter, comment=comment, kind=report_kind)
    if alert is None:
        raise NotFound("Alert not found.", details={"id": alert_id})
    logger.info(
        "Report appended",
        extra={"alert_id": alert_id, "user_id": reporter, "kind": report_kind.value, "reports": len(alert.reports)},
    )
    return alert


__all__ = ["create_alert", "update_alert", "soft_delete_alert", "append_report", "SOFT_DELETE_MESSAGE"]
