"""
Site password authentication endpoints (setup/login/verify).
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from homechat.api.deps import AuthProvider, CurrentSession, SettingRepo
from homechat.core.config import Settings, get_settings
from homechat.core.exceptions import AuthenticationError
from homechat.core.logger import setup_logger
from homechat.core.security import create_access_token, hash_password, verify_password
from homechat.models.auth import (
    ChangePasswordRequest,
    LoginResponse,
    PasswordRequest,
    TokenVerifyRequest,
)
from homechat.models.enums import SettingKey

router = APIRouter()
logger = setup_logger(__name__)


def _validate_new_password(password: str | None, settings: Settings, missing: str) -> str:
    if not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=missing)
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
        )
    return password


@router.get("/setup")
async def get_setup_status(repo: SettingRepo):
    """Whether a site password has been configured."""
    stored = await repo.get(SettingKey.AUTH_PASSWORD.value)
    return {"isSetup": bool(stored)}


@router.post("/setup")
async def setup_password(data: PasswordRequest, repo: SettingRepo):
    """Set the initial site password. Only allowed once."""
    settings = get_settings()
    password = _validate_new_password(data.password, settings, "Password is required")

    if await repo.get(SettingKey.AUTH_PASSWORD.value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Authentication is already configured",
        )

    await repo.set(SettingKey.AUTH_PASSWORD.value, hash_password(password))
    logger.info("Initial site password configured")
    return {"success": True, "message": "Initial password set successfully"}


@router.post("/login", response_model=LoginResponse)
async def login(data: PasswordRequest, repo: SettingRepo):
    if not data.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password is required",
        )

    stored = await repo.get(SettingKey.AUTH_PASSWORD.value)
    if not stored:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication not configured. Please contact your administrator.",
        )
    if not verify_password(data.password, stored):
        logger.info("Rejected login with an invalid password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )

    return LoginResponse(token=create_access_token(get_settings()))


@router.post("/verify")
async def verify_token(data: TokenVerifyRequest, auth_provider: AuthProvider):
    if not data.token:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"valid": False, "error": "No token provided"},
        )
    try:
        await auth_provider.verify_token(data.token)
    except AuthenticationError as exc:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"valid": False, "error": exc.message},
        )
    return {"valid": True}


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    _session: CurrentSession,
    repo: SettingRepo,
):
    settings = get_settings()
    password = _validate_new_password(data.new_password, settings, "New password is required")
    await repo.set(SettingKey.AUTH_PASSWORD.value, hash_password(password))
    logger.info("Site password changed")
    return {"success": True, "message": "Password updated successfully"}
