"""
Chat session, message and message version models.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from homechat.models.base import CamelModel
from homechat.models.character import Character, CharacterRef
from homechat.models.enums import MessageRole
from homechat.models.persona import Persona, PersonaRef


class MessageVersion(CamelModel):
    """An alternate completion (variant) of an assistant message."""

    id: int
    message_id: int
    content: str
    version: int
    is_active: bool = False
    created_at: datetime


class ChatMessage(CamelModel):
    """Chat message model."""

    id: int
    session_id: int
    role: MessageRole
    content: str
    created_at: datetime


class ChatMessageWithVersions(ChatMessage):
    """Chat message with its variants ordered by version."""

    versions: list[MessageVersion] = Field(default_factory=list)


class ChatSessionCreate(CamelModel):
    """Schema for starting a session."""

    persona_id: int
    character_id: int


class ChatSession(CamelModel):
    """Chat session model."""

    id: int
    persona_id: int
    character_id: int
    summary: str = ""
    last_summary: Optional[int] = Field(
        None, description="Id of the newest message covered by the summary"
    )
    description: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ChatSessionListItem(CamelModel):
    """Row of the session list."""

    id: int
    persona_id: int
    character_id: int
    updated_at: datetime
    summary: str = ""
    description: Optional[str] = None
    message_count: int = 0
    persona: PersonaRef
    character: CharacterRef


class ChatSessionDetail(ChatSession):
    """Session with persona, character and full message history."""

    persona: Persona
    character: Character
    messages: list[ChatMessageWithVersions] = Field(default_factory=list)


# ===========================================
# Request bodies
# ===========================================


class MessageInput(CamelModel):
    """One message in a bulk replace."""

    role: MessageRole
    content: str = ""


class SessionMessagesReplace(CamelModel):
    """Replace the whole message list of a session."""

    messages: list[MessageInput]


class SessionDescriptionUpdate(CamelModel):
    description: Optional[str] = None


class SessionNotes(CamelModel):
    notes: str


class SessionSummaryUpdate(CamelModel):
    summary: str


class SummaryUpdateResult(CamelModel):
    """Result of an incremental summary update."""

    summary: str
    generated_update: str
    last_summary: int
    new_messages_count: int


class MessageCreate(CamelModel):
    """Schema for appending a message to a session."""

    session_id: int
    role: MessageRole
    content: str = Field(..., max_length=100000)

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Content is required")
        return value


class MessageUpdate(CamelModel):
    """Schema for editing a message."""

    content: str = Field(..., max_length=100000)

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Content is required")
        return value
