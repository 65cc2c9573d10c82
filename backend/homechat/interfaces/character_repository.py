"""
Character repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from homechat.models.character import Character, CharacterCreate, CharacterUpdate


class ICharacterRepository(ABC):
    """Abstract interface for character persistence."""

    @abstractmethod
    async def list(self) -> list[Character]:
        """
        List all characters with their group.

        Returns:
            Characters ordered by sort_order, then creation
        """
        pass

    @abstractmethod
    async def get(self, character_id: int) -> Optional[Character]:
        """
        Get a character by ID.

        Args:
            character_id: Character ID

        Returns:
            Character if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, data: CharacterCreate) -> Character:
        """
        Create a character.

        Raises:
            DuplicateError: (name, profile_name) already taken
        """
        pass

    @abstractmethod
    async def update(self, character_id: int, data: CharacterUpdate) -> Character:
        """
        Replace a character's fields.

        Raises:
            NotFoundError: character does not exist
            DuplicateError: (name, profile_name) already taken
        """
        pass

    @abstractmethod
    async def delete(self, character_id: int) -> bool:
        """
        Delete a character with its sessions, messages and variants.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def move(
        self,
        character_id: int,
        group_id: Optional[int],
        sort_order: Optional[int] = None,
    ) -> Character:
        """
        Move a character into a group, or out of all groups.

        Args:
            character_id: Character to move
            group_id: Target group, None for ungrouped
            sort_order: New position inside the group (unchanged when None)

        Raises:
            NotFoundError: character or group does not exist
        """
        pass
