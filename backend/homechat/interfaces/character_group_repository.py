"""
Character group repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from homechat.models.character import (
    CharacterGroup,
    CharacterGroupCreate,
    CharacterGroupUpdate,
)


class ICharacterGroupRepository(ABC):
    """Abstract interface for character group persistence."""

    @abstractmethod
    async def list(self) -> list[CharacterGroup]:
        """
        List groups with their characters.

        Returns:
            Groups ordered by sort_order, members ordered by sort_order
        """
        pass

    @abstractmethod
    async def get(self, group_id: int) -> Optional[CharacterGroup]:
        """Get a group with its characters."""
        pass

    @abstractmethod
    async def create(self, data: CharacterGroupCreate) -> CharacterGroup:
        """
        Create a group at the end of the list.

        Raises:
            DuplicateError: name already taken
        """
        pass

    @abstractmethod
    async def update(self, group_id: int, data: CharacterGroupUpdate) -> CharacterGroup:
        """
        Update a group. Only fields set on ``data`` change.

        Raises:
            NotFoundError: group does not exist
            DuplicateError: new name already taken
        """
        pass

    @abstractmethod
    async def delete(self, group_id: int) -> bool:
        """
        Delete a group. Its characters become ungrouped.

        Returns:
            True if deleted, False if not found
        """
        pass
