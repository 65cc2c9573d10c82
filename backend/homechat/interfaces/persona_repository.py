"""
Persona repository interface.

Defines the contract for persona persistence.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from homechat.models.persona import Persona, PersonaCreate, PersonaUpdate


class IPersonaRepository(ABC):
    """Abstract interface for persona persistence."""

    @abstractmethod
    async def list(self) -> list[Persona]:
        """
        List all personas.

        Returns:
            Personas ordered by creation time
        """
        pass

    @abstractmethod
    async def get(self, persona_id: int) -> Optional[Persona]:
        """
        Get a persona by ID.

        Args:
            persona_id: Persona ID

        Returns:
            Persona if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, data: PersonaCreate) -> Persona:
        """
        Create a persona.

        Args:
            data: Persona fields

        Returns:
            Created persona

        Raises:
            DuplicateError: (name, profile_name) already taken
        """
        pass

    @abstractmethod
    async def update(self, persona_id: int, data: PersonaUpdate) -> Persona:
        """
        Replace a persona's fields.

        Raises:
            NotFoundError: persona does not exist
            DuplicateError: (name, profile_name) already taken
        """
        pass

    @abstractmethod
    async def delete(self, persona_id: int) -> bool:
        """
        Delete a persona with its sessions, messages and variants.

        Returns:
            True if deleted, False if not found
        """
        pass
