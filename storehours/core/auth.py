"""
Caller identity for audit attribution.

Authentication itself belongs to an external identity provider; this
module only turns the incoming request into a `UserContext` so mutations
can record who made them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException
from .security import decode_access_token


SYSTEM_ACTOR = "system"


@dataclass
class UserContext:
    role: str
    user_id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None


def actor_for(user: UserContext | None) -> str:
    """Return the value recorded as `changed_by` for this caller."""
    if user is None:
        return SYSTEM_ACTOR
    return user.email or user.username or SYSTEM_ACTOR


def _auth_disabled() -> bool:
    return os.getenv("STORE_HOURS_AUTH_DISABLED", "true").lower() in {"1", "true", "yes"}


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def get_current_user(
    authorization: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
) -> UserContext:
    if _auth_disabled():
        return UserContext(role="ADMIN", username=x_user_name, email=x_user_email)
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = decode_access_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    role = str(claims.get("role") or "").strip().upper()
    username = str(claims.get("sub") or "").strip() or None
    user_id = str(claims.get("user_id") or "").strip() or None
    if not role or not username or not user_id:
        raise HTTPException(status_code=401, detail="Invalid token claims")
    email = str(claims.get("email") or "").strip() or None
    return UserContext(role=role, user_id=user_id, username=username, email=email)
