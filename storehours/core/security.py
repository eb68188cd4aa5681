"""
Verification of HS256 bearer tokens issued by the identity provider.

Tokens are minted elsewhere; this service only checks the signature and
expiry and hands the claims (``sub``, ``role``, ``user_id`` and the
optional ``email`` used for audit attribution) to the auth dependency.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
import time
from typing import Any


DEV_SECRET = "dev-jwt-secret-change-me"


def _segment(value: str) -> bytes:
    try:
        return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Malformed token segment") from exc


def _verification_secret() -> bytes:
    secret = (os.getenv("STORE_HOURS_JWT_SECRET") or "").strip()
    if not secret:
        env = (os.getenv("STORE_HOURS_ENV") or os.getenv("APP_ENV") or "dev").strip().lower()
        if env == "prod":
            raise ValueError("JWT secret not configured")
        secret = DEV_SECRET
    return secret.encode("utf-8")


def decode_access_token(token: str) -> dict[str, Any]:
    """Return the claims of a valid, unexpired token or raise ``ValueError``."""
    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise ValueError("Malformed token") from exc
    header = json.loads(_segment(header_b64) or b"{}")
    if not isinstance(header, dict) or header.get("alg") != "HS256":
        raise ValueError("Unsupported token algorithm")
    digest = hmac.new(_verification_secret(), f"{header_b64}.{payload_b64}".encode("ascii"), hashlib.sha256).digest()
    if not hmac.compare_digest(digest, _segment(signature_b64)):
        raise ValueError("Invalid signature")
    claims = json.loads(_segment(payload_b64))
    if not isinstance(claims, dict):
        raise ValueError("Invalid payload")
    try:
        expires_at = int(claims.get("exp") or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid exp") from exc
    if expires_at <= int(time.time()):
        raise ValueError("Token expired")
    email = claims.get("email")
    claims["email"] = (str(email).strip() or None) if email else None
    return claims
