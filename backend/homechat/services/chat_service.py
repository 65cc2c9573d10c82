"""
Chat orchestration.

Stores the user turn, assembles the prompt, calls the LLM and saves the
reply. Streaming replies are relayed as events; if the client disconnects or
the upstream stream breaks, whatever text arrived is still saved.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from homechat.core.config import Settings, get_settings
from homechat.core.exceptions import LLMError, NotFoundError, ValidationError
from homechat.core.logger import setup_logger
from homechat.interfaces.character_repository import ICharacterRepository
from homechat.interfaces.chat_session_repository import IChatSessionRepository
from homechat.interfaces.llm_provider import ILLMProvider
from homechat.interfaces.persona_repository import IPersonaRepository
from homechat.interfaces.setting_repository import ISettingRepository
from homechat.interfaces.user_prompt_repository import IUserPromptRepository
from homechat.models.chat import ChatRequest
from homechat.models.chat_session import ChatSession
from homechat.models.enums import MessageRole
from homechat.services.prompt_builder import (
    CONTINUE_MESSAGE,
    build_chat_messages,
    build_payload,
    build_system_prompt,
    extract_completion_text,
    replace_placeholders,
)
from homechat.services.session_context import (
    load_prompt_body,
    load_session_context,
    resolve_api_key,
)
from homechat.services.sse import DONE

logger = setup_logger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


async def _never_disconnected() -> bool:
    return False


@dataclass
class PreparedChat:
    """Everything needed to call the LLM for one chat turn."""

    session_id: int
    payload: dict[str, Any]
    api_key: str


class ChatService:
    """Runs one chat turn against the LLM."""

    def __init__(
        self,
        chat_repo: IChatSessionRepository,
        persona_repo: IPersonaRepository,
        character_repo: ICharacterRepository,
        prompt_repo: IUserPromptRepository,
        setting_repo: ISettingRepository,
        llm_provider: ILLMProvider,
        settings: Optional[Settings] = None,
    ):
        self._chat_repo = chat_repo
        self._persona_repo = persona_repo
        self._character_repo = character_repo
        self._prompt_repo = prompt_repo
        self._setting_repo = setting_repo
        self._llm = llm_provider
        self._settings = settings or get_settings()

    async def _resolve_session_id(self, request: ChatRequest) -> int:
        if request.session_id:
            if not await self._chat_repo.get_session(request.session_id):
                raise NotFoundError("Session not found")
            return request.session_id

        if not request.persona_id or not request.character_id:
            raise ValidationError("Missing personaId or characterId")
        session = await self.start_session(request.persona_id, request.character_id, greet=False)
        return session.id

    async def start_session(
        self, persona_id: int, character_id: int, greet: bool = True
    ) -> ChatSession:
        """
        Create a session, seeded with the character's greeting unless
        ``greet`` is False.

        Raises:
            NotFoundError: persona or character missing
        """
        persona = await self._persona_repo.get(persona_id)
        character = await self._character_repo.get(character_id)
        if not persona or not character:
            raise NotFoundError("Persona or character not found")
        session = await self._chat_repo.create_session(
            persona.id,
            character.id,
            first_message=(
                replace_placeholders(character.first_message, persona.name, character.name)
                if greet
                else None
            ),
        )
        logger.info(f"Created chat session {session.id}")
        return session

    async def prepare(self, request: ChatRequest) -> PreparedChat:
        """
        Store the user turn and build the LLM request.

        Raises:
            AuthenticationError: no API key configured
            ValidationError: neither a session nor persona/character given
            NotFoundError: referenced session, persona or character missing
        """
        api_key = await resolve_api_key(self._setting_repo, self._settings)
        session_id = await self._resolve_session_id(request)

        user_message = request.user_message
        if user_message and user_message != CONTINUE_MESSAGE and not request.retry:
            await self._chat_repo.add_message(session_id, MessageRole.USER, user_message)

        context = await load_session_context(
            session_id, self._chat_repo, self._persona_repo, self._character_repo
        )
        prompt_body = await load_prompt_body(self._prompt_repo, request.user_prompt_id)
        system_prompt = build_system_prompt(
            context.persona,
            context.character,
            summary=context.session.summary,
            user_prompt=prompt_body,
        )
        history = await self._chat_repo.list_messages(session_id)
        payload = build_payload(
            model=self._llm.get_model_name(),
            messages=build_chat_messages(system_prompt, history, context.persona.name),
            temperature=request.temperature,
            stream=request.stream,
            max_tokens=request.max_tokens,
        )
        await self._chat_repo.update_session(session_id, last_api_request=json.dumps(payload))
        return PreparedChat(session_id=session_id, payload=payload, api_key=api_key)

    async def complete(self, prepared: PreparedChat) -> dict[str, Any]:
        """
        Non-streaming turn. Returns the upstream JSON.

        Raises:
            LLMError: upstream failure (carries the upstream status)
        """
        response = await self._llm.complete(prepared.payload, prepared.api_key)
        text = extract_completion_text(response)
        if text.strip():
            await self._chat_repo.save_assistant_reply(prepared.session_id, text)
        return response

    async def stream(
        self,
        prepared: PreparedChat,
        is_disconnected: DisconnectCheck = _never_disconnected,
    ) -> AsyncIterator[Union[dict[str, Any], str]]:
        """
        Streaming turn.

        Yields ``{"status": "connected"}``, ``{"content": delta}``... and
        ``"[DONE]"``. Upstream errors are reported as ``{"error": ...}``.
        """
        parts: list[str] = []
        completed = False
        try:
            yield {"status": "connected", "sessionId": prepared.session_id}
            async for delta in self._llm.stream(prepared.payload, prepared.api_key):
                parts.append(delta)
                yield {"content": delta}
                if await is_disconnected():
                    logger.info(f"Client left session {prepared.session_id} mid-stream")
                    break
            else:
                completed = True
                yield DONE
        except LLMError as exc:
            logger.warning(f"Chat stream failed for session {prepared.session_id}: {exc}")
            yield {"error": exc.message}
        finally:
            text = "".join(parts)
            if text.strip():
                if not completed:
                    logger.info(
                        f"Saving partial reply ({len(text)} chars) for session {prepared.session_id}"
                    )
                await asyncio.shield(
                    self._chat_repo.save_assistant_reply(prepared.session_id, text)
                )

    async def get_request_log(self, session_id: int) -> dict[str, Any]:
        """
        Last payload sent to the LLM for a session.

        Raises:
            NotFoundError: no request stored
        """
        raw = await self._chat_repo.get_last_api_request(session_id)
        if not raw:
            raise NotFoundError("No API request found for this session")
        return json.loads(raw)
