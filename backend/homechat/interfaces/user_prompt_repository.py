"""
User prompt repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from homechat.models.user_prompt import UserPrompt, UserPromptCreate, UserPromptUpdate


class IUserPromptRepository(ABC):
    """Abstract interface for user prompt persistence."""

    @abstractmethod
    async def list(self) -> list[UserPrompt]:
        """List prompts, newest first."""
        pass

    @abstractmethod
    async def get(self, prompt_id: int) -> Optional[UserPrompt]:
        """Get a prompt by ID."""
        pass

    @abstractmethod
    async def create(self, data: UserPromptCreate) -> UserPrompt:
        """Create a prompt."""
        pass

    @abstractmethod
    async def update(self, prompt_id: int, data: UserPromptUpdate) -> UserPrompt:
        """
        Update a prompt.

        Raises:
            NotFoundError: prompt does not exist
        """
        pass

    @abstractmethod
    async def delete(self, prompt_id: int) -> bool:
        """Delete a prompt. Returns False if not found."""
        pass
