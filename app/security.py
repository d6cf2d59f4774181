"""Requester identity dependencies.

Authentication happens upstream; the gateway forwards the authenticated user
in the ``User-Id`` header and this service trusts it.
"""
from __future__ import annotations

from fastapi import Header, HTTPException, status

from app.utils.errors import error_response

USER_ID_HEADER = "User-Id"


def optional_user_id(user_id: str | None = Header(default=None, alias=USER_ID_HEADER)) -> str | None:
    """Return the forwarded user id, or ``None`` for anonymous reads."""

    if user_id is None:
        return None
    return user_id.strip() or None


def require_user_id(user_id: str | None = Header(default=None, alias=USER_ID_HEADER)) -> str:
    """Reject mutating calls that carry no requester identity."""

    cleaned = optional_user_id(user_id)
    if cleaned is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_response("USER_ID_REQUIRED", f"The {USER_ID_HEADER} header is required."),
        )
    return cleaned


__all__ = ["USER_ID_HEADER", "optional_user_id", "require_user_id"]
