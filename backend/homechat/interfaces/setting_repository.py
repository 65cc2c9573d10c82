"""
Setting repository interface.

Settings are plain string key/value pairs edited from the UI.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class ISettingRepository(ABC):
    """Abstract interface for key/value settings."""

    @abstractmethod
    async def get_all(self) -> dict[str, str]:
        """Return every setting as a dict."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get one setting.

        Args:
            key: Setting key

        Returns:
            Stored value, None when unset
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Insert or replace one setting."""
        pass

    @abstractmethod
    async def set_many(self, values: dict[str, str]) -> dict[str, str]:
        """
        Insert or replace several settings in one transaction.

        Returns:
            The full settings dict after the write
        """
        pass
