"""
Message version (variant) repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from homechat.models.chat_session import ChatMessage, MessageVersion


class IMessageVersionRepository(ABC):
    """Abstract interface for variant persistence."""

    @abstractmethod
    async def list(self, message_id: int) -> list[MessageVersion]:
        """List variants of a message ordered by version."""
        pass

    @abstractmethod
    async def get(self, variant_id: int) -> Optional[MessageVersion]:
        """Get a variant by row ID."""
        pass

    @abstractmethod
    async def latest(self, message_id: int) -> Optional[MessageVersion]:
        """Get the variant with the highest version, if any."""
        pass

    @abstractmethod
    async def max_version(self, message_id: int) -> int:
        """Highest allocated version of a message, 0 when there are none."""
        pass

    @abstractmethod
    async def exists(self, message_id: int, version: int) -> bool:
        """Check whether (message_id, version) is already taken."""
        pass

    @abstractmethod
    async def create(
        self,
        message_id: int,
        content: str,
        version: int,
        is_active: bool = False,
    ) -> MessageVersion:
        """
        Insert a variant.

        Raises:
            ConflictError: (message_id, version) was taken concurrently
        """
        pass

    @abstractmethod
    async def update_content(self, variant_id: int, content: str) -> MessageVersion:
        """
        Edit a variant's text.

        Raises:
            NotFoundError: variant does not exist
        """
        pass

    @abstractmethod
    async def activate(
        self,
        message_id: int,
        variant_id: int,
    ) -> tuple[MessageVersion, ChatMessage]:
        """
        Commit a variant as the canonical message content.

        Marks every variant of the message inactive, marks ``variant_id``
        active and copies its content into the message, in one transaction.

        Returns:
            The activated variant and the updated message

        Raises:
            NotFoundError: variant does not belong to the message
        """
        pass

    @abstractmethod
    async def delete_all(self, message_id: int) -> int:
        """
        Delete every variant of a message.

        Returns:
            Number of rows deleted
        """
        pass
