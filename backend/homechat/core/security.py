"""
Security helpers for the site password and session tokens.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from homechat.core.config import Settings

_PBKDF2_ALGO = "pbkdf2_sha256"
_PBKDF2_ITERATIONS = 600_000
_JWT_ALGORITHM = "HS256"

# Fallback signing key when JWT_SECRET is not configured.
_PROCESS_SECRET = secrets.token_urlsafe(32)


def hash_password(password: str) -> str:
    """Hash the site password using PBKDF2-HMAC-SHA256."""
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    salt_b64 = base64.b64encode(salt).decode("ascii")
    digest_b64 = base64.b64encode(digest).decode("ascii")
    return f"{_PBKDF2_ALGO}${_PBKDF2_ITERATIONS}${salt_b64}${digest_b64}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a candidate password against the stored hash."""
    parts = (stored_hash or "").split("$")
    if len(parts) != 4 or parts[0] != _PBKDF2_ALGO:
        return False
    try:
        iterations = int(parts[1])
        salt = base64.b64decode(parts[2].encode("ascii"))
        digest = base64.b64decode(parts[3].encode("ascii"))
    except ValueError:
        return False
    computed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(computed, digest)


def get_jwt_secret(settings: Settings) -> str:
    return settings.JWT_SECRET or _PROCESS_SECRET


def create_access_token(settings: Settings, expires_minutes: int | None = None) -> str:
    """Create a signed session token for whoever knows the site password."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=expires_minutes or settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "authenticated": True,
        "timestamp": int(now.timestamp() * 1000),
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    return jwt.encode(payload, get_jwt_secret(settings), algorithm=_JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        jose.JWTError: signature, expiry or issuer mismatch
    """
    return jwt.decode(
        token,
        get_jwt_secret(settings),
        algorithms=[_JWT_ALGORITHM],
        issuer=settings.JWT_ISSUER or None,
        options={"verify_iss": bool(settings.JWT_ISSUER)},
    )
