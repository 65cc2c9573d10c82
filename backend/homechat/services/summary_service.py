"""
Session summaries.

A session keeps a running summary plus a watermark (``last_summary``): the id
of the newest message the summary covers. ``generate`` summarises the whole
history; ``update`` summarises only messages after the watermark and appends.
"""

from __future__ import annotations

from typing import Any, Optional

from homechat.core.config import Settings, get_settings
from homechat.core.exceptions import LLMError, ValidationError
from homechat.core.logger import setup_logger
from homechat.interfaces.character_repository import ICharacterRepository
from homechat.interfaces.chat_session_repository import IChatSessionRepository
from homechat.interfaces.llm_provider import ILLMProvider
from homechat.interfaces.persona_repository import IPersonaRepository
from homechat.interfaces.setting_repository import ISettingRepository
from homechat.models.chat_session import ChatMessage, ChatSession, SummaryUpdateResult
from homechat.models.enums import SettingKey
from homechat.services.prompt_builder import (
    DEFAULT_SUMMARY_PROMPT,
    build_payload,
    build_system_prompt,
    extract_completion_text,
    replace_placeholders,
)
from homechat.services.session_context import (
    SessionContext,
    load_session_context,
    resolve_api_key,
)

logger = setup_logger(__name__)

SUMMARY_TEMPERATURE = 1.0


class SummaryService:
    """Saves, generates and incrementally updates session summaries."""

    def __init__(
        self,
        chat_repo: IChatSessionRepository,
        persona_repo: IPersonaRepository,
        character_repo: ICharacterRepository,
        setting_repo: ISettingRepository,
        llm_provider: ILLMProvider,
        settings: Optional[Settings] = None,
    ):
        self._chat_repo = chat_repo
        self._persona_repo = persona_repo
        self._character_repo = character_repo
        self._setting_repo = setting_repo
        self._llm = llm_provider
        self._settings = settings or get_settings()

    async def save_summary(self, session_id: int, summary: str) -> ChatSession:
        """Store a hand-written summary; the watermark is left alone."""
        await load_session_context(
            session_id, self._chat_repo, self._persona_repo, self._character_repo
        )
        return await self._chat_repo.update_session(session_id, summary=summary)

    async def _summary_instruction(self, context: SessionContext) -> str:
        prompt = await self._setting_repo.get(SettingKey.SUMMARY_PROMPT.value)
        prompt = (prompt or DEFAULT_SUMMARY_PROMPT).replace("\\n", "\n")
        return replace_placeholders(prompt, context.persona.name, context.character.name)

    async def _run(
        self,
        context: SessionContext,
        messages: list[ChatMessage],
        instruction: str,
        include_summary: bool,
    ) -> str:
        api_key = await resolve_api_key(self._setting_repo, self._settings)
        system_prompt = build_system_prompt(
            context.persona,
            context.character,
            summary=context.session.summary if include_summary else None,
        )
        payload = build_payload(
            model=self._llm.get_model_name(),
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": "."},
                *({"role": m.role.value, "content": m.content} for m in messages),
                {"role": "user", "content": instruction},
            ],
            temperature=SUMMARY_TEMPERATURE,
            stream=False,
        )
        response: dict[str, Any] = await self._llm.complete(payload, api_key)
        text = extract_completion_text(response).strip()
        if not text:
            raise LLMError("Invalid API response format")
        return text

    async def generate_summary(self, session_id: int) -> ChatSession:
        """
        Summarise the full history, replacing any previous summary.

        Raises:
            ValidationError: the session has no messages
        """
        context = await load_session_context(
            session_id, self._chat_repo, self._persona_repo, self._character_repo
        )
        messages = await self._chat_repo.list_messages(session_id)
        if not messages:
            raise ValidationError("No messages to summarize")

        instruction = f"[System: {await self._summary_instruction(context)}]"
        summary = await self._run(context, messages, instruction, include_summary=False)
        logger.info(f"Generated summary for session {session_id} over {len(messages)} messages")
        return await self._chat_repo.update_session(
            session_id, summary=summary, last_summary=messages[-1].id
        )

    async def update_summary(self, session_id: int) -> SummaryUpdateResult:
        """
        Summarise messages newer than the watermark and append.

        Raises:
            ValidationError: no watermark yet, or nothing new since it
        """
        context = await load_session_context(
            session_id, self._chat_repo, self._persona_repo, self._character_repo
        )
        watermark = context.session.last_summary
        if not watermark:
            raise ValidationError("No previous summary found. Use generate summary instead.")

        new_messages = await self._chat_repo.list_messages(session_id, after_id=watermark)
        if not new_messages:
            raise ValidationError("No new messages to summarize since last summary.")

        instruction = (
            f"[System: {await self._summary_instruction(context)}, this summary should keep "
            "in mind the context of the summary values in the initial system prompt.]"
        )
        update = await self._run(context, new_messages, instruction, include_summary=True)

        current = context.session.summary or ""
        summary = f"{current}\n\n{update}" if current else update
        newest_id = new_messages[-1].id
        await self._chat_repo.update_session(session_id, summary=summary, last_summary=newest_id)
        logger.info(
            f"Updated summary for session {session_id} with {len(new_messages)} new messages"
        )
        return SummaryUpdateResult(
            summary=summary,
            generated_update=update,
            last_summary=newest_id,
            new_messages_count=len(new_messages),
        )
