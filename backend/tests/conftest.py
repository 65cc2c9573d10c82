"""
Shared fixtures: an in-memory database, repositories and a fake LLM.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from homechat.core.exceptions import LLMError
from homechat.infrastructure.local.backup_repository import SqliteBackupRepository
from homechat.infrastructure.local.character_group_repository import SqliteCharacterGroupRepository
from homechat.infrastructure.local.character_repository import SqliteCharacterRepository
from homechat.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
from homechat.infrastructure.local.database import init_db
from homechat.infrastructure.local.message_version_repository import SqliteMessageVersionRepository
from homechat.infrastructure.local.persona_repository import SqlitePersonaRepository
from homechat.infrastructure.local.setting_repository import SqliteSettingRepository
from homechat.infrastructure.local.user_prompt_repository import SqliteUserPromptRepository
from homechat.interfaces.llm_provider import ILLMProvider
from homechat.models.character import CharacterCreate
from homechat.models.enums import MessageRole, SettingKey
from homechat.models.persona import PersonaCreate


class FakeLLMProvider(ILLMProvider):
    """Scripted LLM: fixed reply, optional gate to pause mid-stream."""

    def __init__(self, reply: str = "Hello there", chunks: Optional[list[str]] = None):
        self.reply = reply
        self.chunks = chunks
        self.error: Optional[LLMError] = None
        self.payloads: list[dict[str, Any]] = []
        # When set, streaming waits on it after the first chunk
        self.gate: Optional[asyncio.Event] = None

    def get_model_name(self) -> str:
        return "fake-model"

    async def complete(self, payload: dict[str, Any], api_key: str) -> dict[str, Any]:
        self.payloads.append(payload)
        if self.error:
            raise self.error
        return {"choices": [{"message": {"role": "assistant", "content": self.reply}}]}

    async def stream(self, payload: dict[str, Any], api_key: str) -> AsyncIterator[str]:
        self.payloads.append(payload)
        chunks = self.chunks if self.chunks is not None else [self.reply]
        for position, chunk in enumerate(chunks):
            yield chunk
            if position == 0 and self.gate is not None:
                await self.gate.wait()
        if self.error:
            raise self.error


@dataclass
class Repos:
    personas: SqlitePersonaRepository
    characters: SqliteCharacterRepository
    groups: SqliteCharacterGroupRepository
    chats: SqliteChatSessionRepository
    versions: SqliteMessageVersionRepository
    prompts: SqliteUserPromptRepository
    settings: SqliteSettingRepository
    backup: SqliteBackupRepository


@dataclass
class SeededChat:
    persona_id: int
    character_id: int
    session_id: int
    user_message_id: int
    assistant_message_id: int


@pytest.fixture
async def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def repos(session_factory) -> Repos:
    return Repos(
        personas=SqlitePersonaRepository(session_factory=session_factory),
        characters=SqliteCharacterRepository(session_factory=session_factory),
        groups=SqliteCharacterGroupRepository(session_factory=session_factory),
        chats=SqliteChatSessionRepository(session_factory=session_factory),
        versions=SqliteMessageVersionRepository(session_factory=session_factory),
        prompts=SqliteUserPromptRepository(session_factory=session_factory),
        settings=SqliteSettingRepository(session_factory=session_factory),
        backup=SqliteBackupRepository(session_factory=session_factory),
    )


@pytest.fixture
def fake_llm() -> FakeLLMProvider:
    return FakeLLMProvider()


@pytest.fixture
async def seeded_chat(repos: Repos) -> SeededChat:
    """Persona, character and a session with greeting, user turn and reply."""
    persona = await repos.personas.create(
        PersonaCreate(name="Alex", profile="A curious traveller.")
    )
    character = await repos.characters.create(
        CharacterCreate(
            name="Mira",
            personality="{{char}} is a witty innkeeper who teases {{user}}.",
            scenario="A rainy evening at the inn.",
            first_message="Welcome, {{user}}!",
        )
    )
    session = await repos.chats.create_session(
        persona.id, character.id, first_message="Welcome, Alex!"
    )
    user_message = await repos.chats.add_message(session.id, MessageRole.USER, "Any rooms left?")
    reply = await repos.chats.add_message(
        session.id, MessageRole.ASSISTANT, "Just one, by the fire."
    )
    await repos.settings.set(SettingKey.API_KEY.value, "sk-test")
    return SeededChat(
        persona_id=persona.id,
        character_id=character.id,
        session_id=session.id,
        user_message_id=user_message.id,
        assistant_message_id=reply.id,
    )
