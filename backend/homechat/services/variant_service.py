"""
Variant generation and reconciliation, server side.

A variant is an alternate completion of an assistant message. Versions are
allocated optimistically (read max, probe, retry with backoff); the unique
(message_id, version) constraint is the final arbiter. Streamed variants are
saved only when upstream finished and the client is still connected.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union
from uuid import uuid4

from homechat.core.config import Settings, get_settings
from homechat.core.exceptions import (
    ConflictError,
    HomeChatError,
    InfrastructureError,
    LLMError,
    NotFoundError,
    ValidationError,
)
from homechat.core.logger import setup_logger
from homechat.interfaces.character_repository import ICharacterRepository
from homechat.interfaces.chat_session_repository import IChatSessionRepository
from homechat.interfaces.llm_provider import ILLMProvider
from homechat.interfaces.message_version_repository import IMessageVersionRepository
from homechat.interfaces.persona_repository import IPersonaRepository
from homechat.interfaces.setting_repository import ISettingRepository
from homechat.interfaces.user_prompt_repository import IUserPromptRepository
from homechat.interfaces.variant_backend import IVariantBackend, VariantEvent
from homechat.models.chat_session import ChatMessage, MessageVersion
from homechat.models.enums import MessageRole, SettingKey, VariantNotSavedReason
from homechat.services.prompt_builder import (
    build_chat_messages,
    build_payload,
    build_system_prompt,
    extract_completion_text,
)
from homechat.services.session_context import (
    load_prompt_body,
    load_session_context,
    resolve_api_key,
)
from homechat.services.sse import DONE

logger = setup_logger(__name__)

VARIANT_TEMPERATURE = 0.7
MAX_ALLOCATION_ATTEMPTS = 3
LATEST_POLL_ATTEMPTS = 3
LATEST_POLL_DELAY = 0.05

DisconnectCheck = Callable[[], Awaitable[bool]]


async def _never_disconnected() -> bool:
    return False


def _not_saved(reason: VariantNotSavedReason, message: str) -> dict[str, Any]:
    return {"status": "variant_not_saved", "reason": reason.value, "message": message}


class VariantService:
    """Generates, edits, commits and cleans up message variants."""

    def __init__(
        self,
        chat_repo: IChatSessionRepository,
        version_repo: IMessageVersionRepository,
        persona_repo: IPersonaRepository,
        character_repo: ICharacterRepository,
        prompt_repo: IUserPromptRepository,
        setting_repo: ISettingRepository,
        llm_provider: ILLMProvider,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._chat_repo = chat_repo
        self._version_repo = version_repo
        self._persona_repo = persona_repo
        self._character_repo = character_repo
        self._prompt_repo = prompt_repo
        self._setting_repo = setting_repo
        self._llm = llm_provider
        self._settings = settings or get_settings()
        self._sleep = sleep

    # ===========================================
    # Queries
    # ===========================================

    async def list_variants(self, message_id: int) -> list[MessageVersion]:
        return await self._version_repo.list(message_id)

    async def latest_variant(self, message_id: int) -> MessageVersion:
        """
        Newest variant, polling briefly in case a save is still in flight.

        Raises:
            NotFoundError: still no variant after the last attempt
        """
        for attempt in range(LATEST_POLL_ATTEMPTS):
            latest = await self._version_repo.latest(message_id)
            if latest:
                return latest
            if attempt < LATEST_POLL_ATTEMPTS - 1:
                await self._sleep(LATEST_POLL_DELAY)
        raise NotFoundError("No variants found for this message")

    # ===========================================
    # Generation
    # ===========================================

    async def _get_assistant_message(self, message_id: int) -> ChatMessage:
        message = await self._chat_repo.get_message(message_id)
        if not message:
            raise NotFoundError("Message not found")
        if message.role != MessageRole.ASSISTANT:
            raise ValidationError("Can only generate variants for assistant messages")
        return message

    async def allocate_version(self, message_id: int) -> int:
        """
        Pick the next free version number.

        Raises:
            InfrastructureError: every attempt collided with a concurrent writer
        """
        for attempt in range(MAX_ALLOCATION_ATTEMPTS):
            candidate = await self._version_repo.max_version(message_id) + 1
            if not await self._version_repo.exists(message_id, candidate):
                return candidate
            logger.debug(f"Version {candidate} of message {message_id} taken, retrying")
            await self._sleep((50 + attempt * 25) / 1000)
        raise InfrastructureError("Failed to allocate variant version due to concurrency")

    async def _build_payload(self, message: ChatMessage, stream: bool) -> dict[str, Any]:
        context = await load_session_context(
            message.session_id, self._chat_repo, self._persona_repo, self._character_repo
        )
        prompt_id = await self._setting_repo.get(SettingKey.DEFAULT_PROMPT_ID.value)
        prompt_body = await load_prompt_body(self._prompt_repo, prompt_id)
        system_prompt = build_system_prompt(
            context.persona,
            context.character,
            summary=context.session.summary,
            user_prompt=prompt_body,
            include_conversation_line=False,
        )
        history = await self._chat_repo.list_messages(message.session_id, before_id=message.id)
        payload = build_payload(
            model=self._llm.get_model_name(),
            messages=build_chat_messages(system_prompt, history, context.persona.name),
            temperature=VARIANT_TEMPERATURE,
            stream=stream,
        )
        await self._chat_repo.update_session(
            message.session_id, last_api_request=json.dumps(payload)
        )
        return payload

    async def prepare_generation(
        self,
        message_id: int,
        stream: bool,
    ) -> tuple[ChatMessage, int, dict[str, Any], str]:
        """
        Validate the target and build the request before any output is sent.

        Returns:
            (message, allocated version, payload, api key)
        """
        message = await self._get_assistant_message(message_id)
        version = await self.allocate_version(message_id)
        api_key = await resolve_api_key(self._setting_repo, self._settings)
        payload = await self._build_payload(message, stream)
        return message, version, payload, api_key

    async def generate_variant(self, message_id: int) -> MessageVersion:
        """
        Generate and store one variant without streaming.

        Raises:
            ConflictError: the allocated version was taken meanwhile
            LLMError: upstream failure or empty completion
        """
        message, version, payload, api_key = await self.prepare_generation(
            message_id, stream=False
        )
        response = await self._llm.complete(payload, api_key)
        content = extract_completion_text(response)
        if not content:
            raise LLMError("No content received from LLM")
        variant = await self._version_repo.create(message_id, content, version)
        await self._chat_repo.touch_session(message.session_id)
        logger.info(f"Saved variant v{version} of message {message_id}")
        return variant

    async def stream_variant(
        self,
        message: ChatMessage,
        version: int,
        payload: dict[str, Any],
        api_key: str,
        is_disconnected: DisconnectCheck = _never_disconnected,
    ) -> AsyncIterator[Union[dict[str, Any], str]]:
        """
        Relay a streamed variant and decide whether to keep it.

        Call ``prepare_generation`` first. The last event is always a
        ``variant_saved`` or ``variant_not_saved`` status unless the consumer
        stops iterating, in which case nothing is saved.
        """
        request_id = uuid4().hex[:8]
        log_prefix = f"[variant {request_id}] message={message.id} v{version}"
        parts: list[str] = []
        completed = False
        disconnected = False

        yield {"status": "connected", "variantId": version}
        try:
            async for delta in self._llm.stream(payload, api_key):
                if await is_disconnected():
                    disconnected = True
                    break
                parts.append(delta)
                yield {"content": delta}
            else:
                completed = True
        except LLMError as exc:
            logger.warning(f"{log_prefix} upstream failed: {exc}")
            yield {"error": exc.message}
            yield _not_saved(
                VariantNotSavedReason.UPSTREAM_ERROR, "Variant not saved due to upstream error"
            )
            return

        if completed:
            yield DONE
            disconnected = await is_disconnected()

        if disconnected or not completed:
            logger.info(f"{log_prefix} client disconnected, discarding {len(parts)} chunks")
            yield _not_saved(
                VariantNotSavedReason.CLIENT_DISCONNECTED,
                "Variant generation was stopped and not saved",
            )
            return

        content = "".join(parts)
        if not content.strip():
            yield _not_saved(VariantNotSavedReason.NO_CONTENT, "No content to save")
            return

        try:
            if await self._version_repo.exists(message.id, version):
                raise ConflictError("Version taken during generation")
            variant = await self._version_repo.create(message.id, content, version)
            await self._chat_repo.touch_session(message.session_id)
        except ConflictError:
            logger.warning(f"{log_prefix} lost the version race")
            yield _not_saved(
                VariantNotSavedReason.RACE_CONDITION, "Variant not saved due to race condition"
            )
            return
        except HomeChatError as exc:
            logger.error(f"{log_prefix} save failed: {exc}")
            yield _not_saved(
                VariantNotSavedReason.DATABASE_ERROR, "Variant not saved due to error"
            )
            return

        logger.info(f"{log_prefix} saved ({len(content)} chars)")
        yield {
            "status": "variant_saved",
            "variantId": version,
            "message": "Variant successfully saved",
            "variant": variant.model_dump(by_alias=True, mode="json"),
        }

    # ===========================================
    # Edit / commit / cleanup
    # ===========================================

    async def _get_owned_variant(self, message_id: int, variant_id: Optional[int]) -> MessageVersion:
        if not variant_id:
            raise ValidationError("Variant ID is required")
        variant = await self._version_repo.get(variant_id)
        if not variant or variant.message_id != message_id:
            raise NotFoundError("Variant not found for this message")
        return variant

    async def _touch_for_message(self, message_id: int) -> None:
        message = await self._chat_repo.get_message(message_id)
        if message:
            await self._chat_repo.touch_session(message.session_id)

    async def edit_variant(
        self,
        message_id: int,
        variant_id: Optional[int],
        content: str,
    ) -> MessageVersion:
        """Replace a variant's text (trimmed)."""
        await self._get_owned_variant(message_id, variant_id)
        content = content.strip()
        if not content:
            raise ValidationError("Content is required")
        variant = await self._version_repo.update_content(variant_id, content)
        await self._touch_for_message(message_id)
        return variant

    async def commit_variant(self, message_id: int, variant_id: Optional[int]) -> MessageVersion:
        """Make a variant active and copy its content into the message."""
        await self._get_owned_variant(message_id, variant_id)
        variant, message = await self._version_repo.activate(message_id, variant_id)
        await self._chat_repo.touch_session(message.session_id)
        logger.info(f"Committed variant v{variant.version} of message {message_id}")
        return variant

    async def update_variant(
        self,
        message_id: int,
        variant_id: Optional[int],
        content: Optional[str] = None,
    ) -> MessageVersion:
        """Edit when ``content`` is given, otherwise commit."""
        if content is not None:
            return await self.edit_variant(message_id, variant_id, content)
        return await self.commit_variant(message_id, variant_id)

    async def cleanup_variants(self, message_id: int) -> int:
        deleted = await self._version_repo.delete_all(message_id)
        await self._touch_for_message(message_id)
        if deleted:
            logger.info(f"Deleted {deleted} variants of message {message_id}")
        return deleted

    async def rollback_stopped_variant(self, message_id: int) -> list[MessageVersion]:
        """
        Authoritative variants after a stopped generation.

        Stopped streams are never persisted, so there is nothing to delete.
        """
        return await self._version_repo.list(message_id)


class LocalVariantBackend(IVariantBackend):
    """In-process variant backend for the reconciler."""

    def __init__(self, service: VariantService, chat_repo: IChatSessionRepository):
        self._service = service
        self._chat_repo = chat_repo

    async def list_variants(self, message_id: int) -> list[MessageVersion]:
        return await self._service.list_variants(message_id)

    async def generate_variant(self, message_id: int) -> MessageVersion:
        return await self._service.generate_variant(message_id)

    async def stream_variant(self, message_id: int) -> AsyncIterator[VariantEvent]:
        message, version, payload, api_key = await self._service.prepare_generation(
            message_id, stream=True
        )
        async for event in self._service.stream_variant(message, version, payload, api_key):
            yield event

    async def edit_variant(self, message_id: int, variant_id: int, content: str) -> MessageVersion:
        return await self._service.edit_variant(message_id, variant_id, content)

    async def commit_variant(self, message_id: int, variant_id: int) -> MessageVersion:
        return await self._service.commit_variant(message_id, variant_id)

    async def edit_message(self, message_id: int, content: str) -> ChatMessage:
        return await self._chat_repo.update_message(message_id, content.strip())

    async def cleanup_variants(self, message_id: int) -> int:
        return await self._service.cleanup_variants(message_id)
