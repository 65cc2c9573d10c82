"""
Site password authentication provider.

Anyone holding a valid token signed with the site secret is authenticated;
there are no user accounts.
"""

from __future__ import annotations

from datetime import datetime, timezone

from jose import JWTError

from homechat.core.config import Settings
from homechat.core.exceptions import AuthenticationError
from homechat.core.security import decode_access_token
from homechat.interfaces.auth_provider import IAuthProvider
from homechat.models.auth import SiteSession


class SitePasswordAuthProvider(IAuthProvider):
    """HMAC JWT validation for the shared site password."""

    def __init__(self, settings: Settings):
        self._settings = settings

    async def verify_token(self, token: str) -> SiteSession:
        try:
            claims = decode_access_token(token, self._settings)
        except JWTError as exc:
            raise AuthenticationError("Invalid or expired token") from exc
        if not claims.get("authenticated"):
            raise AuthenticationError("Invalid or expired token")
        issued_at = claims.get("iat")
        return SiteSession(
            authenticated=True,
            issued_at=(
                datetime.fromtimestamp(issued_at, tz=timezone.utc) if issued_at else None
            ),
        )

    def is_enabled(self) -> bool:
        return self._settings.AUTH_ENABLED
