"""
Unit tests for site password hashing and session tokens.
"""

import pytest

from homechat.core.config import Settings
from homechat.core.exceptions import AuthenticationError
from homechat.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from homechat.infrastructure.auth.local_auth import SitePasswordAuthProvider


def _settings(**overrides) -> Settings:
    values = {"JWT_SECRET": "test-secret", "JWT_ISSUER": "homechat", "AUTH_ENABLED": True}
    values.update(overrides)
    return Settings(**values)


class TestPasswordHashing:
    """Tests for PBKDF2 password hashes."""

    def test_roundtrip(self):
        stored = hash_password("hunter22")
        assert stored.startswith("pbkdf2_sha256$")
        assert verify_password("hunter22", stored)
        assert not verify_password("hunter23", stored)

    def test_hashes_are_salted(self):
        assert hash_password("same-password") != hash_password("same-password")

    def test_malformed_hash_is_rejected(self):
        assert not verify_password("anything", "not-a-hash")
        assert not verify_password("anything", "")


class TestTokens:
    """Tests for JWT session tokens."""

    def test_token_claims(self):
        settings = _settings()
        claims = decode_access_token(create_access_token(settings), settings)

        assert claims["authenticated"] is True
        assert claims["iss"] == "homechat"
        assert claims["exp"] - claims["iat"] == settings.JWT_EXPIRE_MINUTES * 60

    @pytest.mark.asyncio
    async def test_provider_accepts_valid_token(self):
        settings = _settings()
        provider = SitePasswordAuthProvider(settings)

        session = await provider.verify_token(create_access_token(settings))

        assert session.authenticated is True
        assert session.issued_at is not None

    @pytest.mark.asyncio
    async def test_provider_rejects_other_secret(self):
        token = create_access_token(_settings(JWT_SECRET="other-secret"))
        provider = SitePasswordAuthProvider(_settings())

        with pytest.raises(AuthenticationError, match="Invalid or expired token"):
            await provider.verify_token(token)

    @pytest.mark.asyncio
    async def test_provider_rejects_expired_token(self):
        settings = _settings()
        provider = SitePasswordAuthProvider(settings)
        token = create_access_token(settings, expires_minutes=-1)

        with pytest.raises(AuthenticationError):
            await provider.verify_token(token)

    def test_provider_reports_enabled_flag(self):
        assert SitePasswordAuthProvider(_settings(AUTH_ENABLED=False)).is_enabled() is False
