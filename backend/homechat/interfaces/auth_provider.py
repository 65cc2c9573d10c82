"""
Auth provider interface.
"""

from abc import ABC, abstractmethod

from homechat.models.auth import SiteSession


class IAuthProvider(ABC):
    """Abstract interface for bearer token verification."""

    @abstractmethod
    async def verify_token(self, token: str) -> SiteSession:
        """
        Verify a bearer token.

        Raises:
            AuthenticationError: token is invalid or expired
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Check if authentication is required."""
        pass
