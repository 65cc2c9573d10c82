"""
Chat session repository interface.

Defines the contract for sessions and their message history.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from homechat.models.chat_session import (
    ChatMessage,
    ChatSession,
    ChatSessionDetail,
    ChatSessionListItem,
    MessageInput,
)
from homechat.models.enums import MessageRole

_UNSET = object()


class IChatSessionRepository(ABC):
    """Abstract interface for chat session persistence."""

    UNSET = _UNSET

    # ===========================================
    # Sessions
    # ===========================================

    @abstractmethod
    async def list_sessions(self) -> list[ChatSessionListItem]:
        """
        List sessions with message counts and persona/character stubs.

        Returns:
            Sessions, newest first
        """
        pass

    @abstractmethod
    async def create_session(
        self,
        persona_id: int,
        character_id: int,
        first_message: Optional[str] = None,
    ) -> ChatSession:
        """
        Create a session, optionally seeded with a first assistant message.

        Args:
            persona_id: Persona ID
            character_id: Character ID
            first_message: Greeting stored as the first assistant message

        Returns:
            ChatSession
        """
        pass

    @abstractmethod
    async def get_session(self, session_id: int) -> Optional[ChatSession]:
        """Get a session without its messages."""
        pass

    @abstractmethod
    async def get_session_detail(self, session_id: int) -> Optional[ChatSessionDetail]:
        """
        Get a session with persona, character and messages.

        Messages are ordered by creation, their variants by version.
        """
        pass

    @abstractmethod
    async def update_session(
        self,
        session_id: int,
        *,
        summary=_UNSET,
        last_summary=_UNSET,
        description=_UNSET,
        notes=_UNSET,
        last_api_request=_UNSET,
    ) -> ChatSession:
        """
        Update selected session fields and touch ``updated_at``.

        Only arguments that are passed change; None is a valid value.

        Raises:
            NotFoundError: session does not exist
        """
        pass

    @abstractmethod
    async def touch_session(self, session_id: int) -> None:
        """Bump ``updated_at`` so the session sorts as recently used."""
        pass

    @abstractmethod
    async def get_last_api_request(self, session_id: int) -> Optional[str]:
        """Return the stored JSON of the last LLM request, if any."""
        pass

    @abstractmethod
    async def delete_session(self, session_id: int) -> bool:
        """
        Delete a session with its messages and variants.

        Returns:
            True if deleted, False if not found
        """
        pass

    # ===========================================
    # Messages
    # ===========================================

    @abstractmethod
    async def add_message(
        self,
        session_id: int,
        role: MessageRole,
        content: str,
    ) -> ChatMessage:
        """
        Append a message and touch the session.

        Raises:
            NotFoundError: session does not exist
        """
        pass

    @abstractmethod
    async def save_assistant_reply(self, session_id: int, content: str) -> ChatMessage:
        """
        Store a generated reply.

        When the newest message is already an assistant message (a
        "continue" request) the reply is appended to it after a blank line;
        otherwise a new assistant message is created.
        """
        pass

    @abstractmethod
    async def get_message(self, message_id: int) -> Optional[ChatMessage]:
        """Get a message by ID."""
        pass

    @abstractmethod
    async def list_messages(
        self,
        session_id: int,
        after_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> list[ChatMessage]:
        """
        List messages of a session in creation order.

        Args:
            session_id: Session ID
            after_id: Only messages with a larger id
            before_id: Only messages with a smaller id

        Returns:
            List of chat messages
        """
        pass

    @abstractmethod
    async def update_message(self, message_id: int, content: str) -> ChatMessage:
        """
        Replace a message's content and touch its session.

        Raises:
            NotFoundError: message does not exist
        """
        pass

    @abstractmethod
    async def replace_messages(
        self,
        session_id: int,
        messages: list[MessageInput],
    ) -> list[ChatMessage]:
        """
        Replace the whole history of a session (variants are dropped).

        Raises:
            NotFoundError: session does not exist
        """
        pass
