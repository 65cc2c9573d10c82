"""
Site password authentication models.
"""

from datetime import datetime
from typing import Optional

from homechat.models.base import CamelModel


class PasswordRequest(CamelModel):
    password: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    new_password: Optional[str] = None


class TokenVerifyRequest(CamelModel):
    token: Optional[str] = None


class LoginResponse(CamelModel):
    success: bool = True
    token: str
    message: str = "Authentication successful"


class SiteSession(CamelModel):
    """Claims of a valid session token."""

    authenticated: bool = True
    issued_at: Optional[datetime] = None
