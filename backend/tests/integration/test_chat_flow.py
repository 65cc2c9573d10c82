"""
Integration tests for ChatService: storing turns, streaming and request logs.
"""

import pytest

from homechat.core.exceptions import LLMError, NotFoundError, ValidationError
from homechat.models.chat import ChatRequest
from homechat.models.enums import MessageRole
from homechat.services.chat_service import ChatService
from homechat.services.prompt_builder import CONTINUE_MESSAGE
from tests.conftest import FakeLLMProvider

pytestmark = pytest.mark.integration


def _service(repos, llm: FakeLLMProvider) -> ChatService:
    return ChatService(
        repos.chats,
        repos.personas,
        repos.characters,
        repos.prompts,
        repos.settings,
        llm,
    )


async def _contents(repos, session_id: int) -> list[tuple[str, str]]:
    messages = await repos.chats.list_messages(session_id)
    return [(MessageRole(m.role).value, m.content) for m in messages]


class TestPrepare:
    """Tests for building one chat turn."""

    @pytest.mark.asyncio
    async def test_user_message_is_stored(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="A room, please.")
        )

        contents = await _contents(repos, seeded_chat.session_id)
        assert contents[-1] == ("user", "A room, please.")
        assert prepared.payload["messages"][-1]["content"] == "Alex: A room, please."
        assert prepared.api_key == "sk-test"

    @pytest.mark.asyncio
    async def test_continue_marker_is_not_stored(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message=CONTINUE_MESSAGE)
        )

        contents = await _contents(repos, seeded_chat.session_id)
        assert all(content != CONTINUE_MESSAGE for _, content in contents)
        assert len(contents) == 3

    @pytest.mark.asyncio
    async def test_retry_does_not_store_user_message(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Again", retry=True)
        )

        assert len(await _contents(repos, seeded_chat.session_id)) == 3

    @pytest.mark.asyncio
    async def test_new_session_from_persona_and_character_is_bare(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        prepared = await service.prepare(
            ChatRequest(
                persona_id=seeded_chat.persona_id,
                character_id=seeded_chat.character_id,
                user_message="Hello",
            )
        )

        assert prepared.session_id != seeded_chat.session_id
        contents = await _contents(repos, prepared.session_id)
        assert contents == [("user", "Hello")]

    @pytest.mark.asyncio
    async def test_requires_session_or_pair(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        with pytest.raises(ValidationError):
            await service.prepare(ChatRequest(persona_id=seeded_chat.persona_id))
        with pytest.raises(NotFoundError):
            await service.prepare(ChatRequest(session_id=9999))

    @pytest.mark.asyncio
    async def test_request_log(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Hi", temperature=0.3)
        )

        log = await service.get_request_log(seeded_chat.session_id)
        assert log == prepared.payload
        assert log["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_request_log_missing(self, repos, seeded_chat):
        with pytest.raises(NotFoundError):
            await _service(repos, FakeLLMProvider()).get_request_log(seeded_chat.session_id)


class TestCompletion:
    """Tests for saving replies."""

    @pytest.mark.asyncio
    async def test_non_streaming_reply_is_saved(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(reply="Here is your key."))
        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Thanks")
        )

        response = await service.complete(prepared)

        assert response["choices"][0]["message"]["content"] == "Here is your key."
        contents = await _contents(repos, seeded_chat.session_id)
        assert contents[-1] == ("assistant", "Here is your key.")

    @pytest.mark.asyncio
    async def test_continue_appends_to_last_reply(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(reply="It has a view."))
        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message=CONTINUE_MESSAGE)
        )

        await service.complete(prepared)

        contents = await _contents(repos, seeded_chat.session_id)
        assert contents[-1] == ("assistant", "Just one, by the fire.\n\nIt has a view.")

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, repos, seeded_chat):
        llm = FakeLLMProvider()
        llm.error = LLMError("Rate limited", status_code=429)
        service = _service(repos, llm)
        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Hi")
        )

        with pytest.raises(LLMError):
            await service.complete(prepared)


class TestStreaming:
    """Tests for streamed replies."""

    @pytest.mark.asyncio
    async def test_stream_saves_full_reply(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(chunks=["The key ", "is yours."]))
        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Thanks", stream=True)
        )

        events = [event async for event in service.stream(prepared)]

        assert events[0] == {"status": "connected", "sessionId": seeded_chat.session_id}
        assert events[-1] == "[DONE]"
        contents = await _contents(repos, seeded_chat.session_id)
        assert contents[-1] == ("assistant", "The key is yours.")

    @pytest.mark.asyncio
    async def test_disconnect_saves_partial_reply(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(chunks=["Par", "tial"]))
        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Go on", stream=True)
        )

        async def is_disconnected() -> bool:
            return True

        events = [event async for event in service.stream(prepared, is_disconnected)]

        assert "[DONE]" not in events
        contents = await _contents(repos, seeded_chat.session_id)
        assert contents[-1] == ("assistant", "Par")

    @pytest.mark.asyncio
    async def test_upstream_error_mid_stream_keeps_text(self, repos, seeded_chat):
        llm = FakeLLMProvider(chunks=["Half a"])
        llm.error = LLMError("Stream broke")
        service = _service(repos, llm)
        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Go on", stream=True)
        )

        events = [event async for event in service.stream(prepared)]

        assert events[-1] == {"error": "Stream broke"}
        contents = await _contents(repos, seeded_chat.session_id)
        assert contents[-1] == ("assistant", "Half a")

    @pytest.mark.asyncio
    async def test_whitespace_reply_is_not_saved(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(chunks=["  ", "\n"]))
        prepared = await service.prepare(
            ChatRequest(session_id=seeded_chat.session_id, user_message="Hello?", stream=True)
        )

        events = [event async for event in service.stream(prepared)]

        assert events[-1] == "[DONE]"
        contents = await _contents(repos, seeded_chat.session_id)
        assert contents[-1] == ("user", "Hello?")
