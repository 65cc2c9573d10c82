"""
Lookups shared by the chat, variant and summary services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from homechat.core.config import Settings
from homechat.core.exceptions import AuthenticationError, NotFoundError
from homechat.interfaces.character_repository import ICharacterRepository
from homechat.interfaces.chat_session_repository import IChatSessionRepository
from homechat.interfaces.persona_repository import IPersonaRepository
from homechat.interfaces.setting_repository import ISettingRepository
from homechat.interfaces.user_prompt_repository import IUserPromptRepository
from homechat.models.character import Character
from homechat.models.chat_session import ChatSession
from homechat.models.enums import SettingKey
from homechat.models.persona import Persona


@dataclass
class SessionContext:
    """A session with the persona and character it is played with."""

    session: ChatSession
    persona: Persona
    character: Character


async def resolve_api_key(setting_repo: ISettingRepository, settings: Settings) -> str:
    """
    API key for the LLM: the UI setting first, then LLM_API_KEY.

    Raises:
        AuthenticationError: no key configured anywhere
    """
    api_key = await setting_repo.get(SettingKey.API_KEY.value)
    api_key = (api_key or "").strip() or settings.LLM_API_KEY
    if not api_key:
        raise AuthenticationError("API key not configured in settings")
    return api_key


async def load_session_context(
    session_id: int,
    chat_repo: IChatSessionRepository,
    persona_repo: IPersonaRepository,
    character_repo: ICharacterRepository,
) -> SessionContext:
    """
    Raises:
        NotFoundError: session, persona or character missing
    """
    session = await chat_repo.get_session(session_id)
    if not session:
        raise NotFoundError("Session not found")
    persona = await persona_repo.get(session.persona_id)
    character = await character_repo.get(session.character_id)
    if not persona or not character:
        raise NotFoundError("Persona or character not found")
    return SessionContext(session=session, persona=persona, character=character)


async def load_prompt_body(
    prompt_repo: IUserPromptRepository,
    prompt_id: Optional[int | str],
) -> str:
    """Body of a user prompt, empty when unset or missing."""
    if prompt_id in (None, ""):
        return ""
    try:
        prompt = await prompt_repo.get(int(prompt_id))
    except (TypeError, ValueError):
        return ""
    return prompt.body if prompt else ""
