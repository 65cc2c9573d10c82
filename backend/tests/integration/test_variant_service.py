"""
Integration tests for VariantService and the reconciler over real
repositories with a scripted LLM.
"""

import pytest

from homechat.core.exceptions import AuthenticationError, NotFoundError, ValidationError
from homechat.models.enums import SettingKey
from homechat.models.user_prompt import UserPromptCreate
from homechat.services.variant_reconciler import VariantReconciler
from homechat.services.variant_service import LocalVariantBackend, VariantService
from tests.conftest import FakeLLMProvider

pytestmark = pytest.mark.integration


async def _no_sleep(_seconds: float) -> None:
    return None


def _service(repos, llm: FakeLLMProvider) -> VariantService:
    return VariantService(
        repos.chats,
        repos.versions,
        repos.personas,
        repos.characters,
        repos.prompts,
        repos.settings,
        llm,
        sleep=_no_sleep,
    )


async def _stream(service: VariantService, message_id: int, is_disconnected=None) -> list:
    message, version, payload, api_key = await service.prepare_generation(message_id, stream=True)
    kwargs = {"is_disconnected": is_disconnected} if is_disconnected else {}
    return [
        event
        async for event in service.stream_variant(message, version, payload, api_key, **kwargs)
    ]


class TestGeneration:
    """Tests for generating variants."""

    @pytest.mark.asyncio
    async def test_non_streaming_variant_is_saved_inactive(self, repos, seeded_chat):
        llm = FakeLLMProvider(reply="Two rooms, actually.")
        service = _service(repos, llm)

        variant = await service.generate_variant(seeded_chat.assistant_message_id)

        assert variant.version == 1
        assert variant.is_active is False
        assert variant.content == "Two rooms, actually."

    @pytest.mark.asyncio
    async def test_payload_uses_history_before_message_and_default_prompt(
        self, repos, seeded_chat
    ):
        prompt = await repos.prompts.create(UserPromptCreate(title="Style", body="Be poetic."))
        await repos.settings.set(SettingKey.DEFAULT_PROMPT_ID.value, str(prompt.id))
        llm = FakeLLMProvider()

        await _service(repos, llm).generate_variant(seeded_chat.assistant_message_id)

        messages = llm.payloads[0]["messages"]
        system = messages[0]["content"]
        assert system.endswith("Be poetic.")
        assert "The following is a conversation" not in system
        assert [m["content"] for m in messages[1:]] == [".", "Welcome, Alex!", "Alex: Any rooms left?"]
        assert llm.payloads[0]["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_versions_increment(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        await service.generate_variant(seeded_chat.assistant_message_id)
        second = await service.generate_variant(seeded_chat.assistant_message_id)

        assert second.version == 2

    @pytest.mark.asyncio
    async def test_only_assistant_messages(self, repos, seeded_chat):
        with pytest.raises(ValidationError):
            await _service(repos, FakeLLMProvider()).generate_variant(seeded_chat.user_message_id)

    @pytest.mark.asyncio
    async def test_missing_message(self, repos, seeded_chat):
        with pytest.raises(NotFoundError):
            await _service(repos, FakeLLMProvider()).generate_variant(9999)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, repos, seeded_chat, monkeypatch):
        await repos.settings.set(SettingKey.API_KEY.value, "")
        service = _service(repos, FakeLLMProvider())
        monkeypatch.setattr(service._settings, "LLM_API_KEY", "")

        with pytest.raises(AuthenticationError):
            await service.generate_variant(seeded_chat.assistant_message_id)


class TestStreaming:
    """Tests for streamed generation and the save decision."""

    @pytest.mark.asyncio
    async def test_completed_stream_is_saved(self, repos, seeded_chat):
        llm = FakeLLMProvider(chunks=["Two ", "rooms."])
        service = _service(repos, llm)

        events = await _stream(service, seeded_chat.assistant_message_id)

        assert events[0] == {"status": "connected", "variantId": 1}
        assert events[1:3] == [{"content": "Two "}, {"content": "rooms."}]
        assert events[3] == "[DONE]"
        assert events[4]["status"] == "variant_saved"
        assert events[4]["variant"]["content"] == "Two rooms."
        assert len(await repos.versions.list(seeded_chat.assistant_message_id)) == 1

    @pytest.mark.asyncio
    async def test_aborted_stream_persists_nothing(self, repos, seeded_chat):
        llm = FakeLLMProvider(chunks=["Two ", "rooms."])
        service = _service(repos, llm)
        message, version, payload, api_key = await service.prepare_generation(
            seeded_chat.assistant_message_id, stream=True
        )

        events = service.stream_variant(message, version, payload, api_key)
        async for event in events:
            if "content" in event:
                break
        await events.aclose()

        assert await repos.versions.list(seeded_chat.assistant_message_id) == []

    @pytest.mark.asyncio
    async def test_disconnect_mid_stream_is_not_saved(self, repos, seeded_chat):
        llm = FakeLLMProvider(chunks=["Two ", "rooms."])
        calls = {"n": 0}

        async def is_disconnected() -> bool:
            calls["n"] += 1
            return calls["n"] > 1

        events = await _stream(
            _service(repos, llm), seeded_chat.assistant_message_id, is_disconnected
        )

        assert events[-1]["status"] == "variant_not_saved"
        assert events[-1]["reason"] == "client_disconnected"
        assert "[DONE]" not in events
        assert await repos.versions.list(seeded_chat.assistant_message_id) == []

    @pytest.mark.asyncio
    async def test_disconnect_after_done_still_discards(self, repos, seeded_chat):
        llm = FakeLLMProvider(chunks=["Two ", "rooms."])
        calls = {"n": 0}

        async def is_disconnected() -> bool:
            calls["n"] += 1
            return calls["n"] > 2

        events = await _stream(
            _service(repos, llm), seeded_chat.assistant_message_id, is_disconnected
        )

        assert "[DONE]" in events
        assert events[-1]["reason"] == "client_disconnected"
        assert await repos.versions.list(seeded_chat.assistant_message_id) == []

    @pytest.mark.asyncio
    async def test_empty_stream(self, repos, seeded_chat):
        events = await _stream(
            _service(repos, FakeLLMProvider(chunks=[" "])), seeded_chat.assistant_message_id
        )

        assert events[-1]["reason"] == "no_content"

    @pytest.mark.asyncio
    async def test_version_taken_during_stream(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(chunks=["late"]))
        message, version, payload, api_key = await service.prepare_generation(
            seeded_chat.assistant_message_id, stream=True
        )
        await repos.versions.create(message.id, "first", version)

        events = [e async for e in service.stream_variant(message, version, payload, api_key)]

        assert events[-1]["reason"] == "race_condition"


class TestEditCommitCleanup:
    """Tests for editing, committing and removing variants."""

    @pytest.mark.asyncio
    async def test_edit_trims_content(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())
        variant = await service.generate_variant(seeded_chat.assistant_message_id)

        edited = await service.update_variant(
            seeded_chat.assistant_message_id, variant.id, "  Edited  "
        )

        assert edited.content == "Edited"

    @pytest.mark.asyncio
    async def test_commit_copies_content_and_marks_active(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(reply="Better reply"))
        variant = await service.generate_variant(seeded_chat.assistant_message_id)

        committed = await service.update_variant(seeded_chat.assistant_message_id, variant.id)

        assert committed.is_active is True
        message = await repos.chats.get_message(seeded_chat.assistant_message_id)
        assert message.content == "Better reply"

    @pytest.mark.asyncio
    async def test_variant_must_belong_to_message(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())
        variant = await service.generate_variant(seeded_chat.assistant_message_id)

        with pytest.raises(NotFoundError):
            await service.update_variant(seeded_chat.user_message_id, variant.id)
        with pytest.raises(ValidationError):
            await service.update_variant(seeded_chat.assistant_message_id, None)

    @pytest.mark.asyncio
    async def test_latest_variant_polls_then_404(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())

        with pytest.raises(NotFoundError):
            await service.latest_variant(seeded_chat.assistant_message_id)

        await service.generate_variant(seeded_chat.assistant_message_id)
        latest = await service.latest_variant(seeded_chat.assistant_message_id)
        assert latest.version == 1

    @pytest.mark.asyncio
    async def test_reconciler_commit_then_cleanup_leaves_no_versions(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(reply="Variant text"))
        reconciler = VariantReconciler(
            LocalVariantBackend(service, repos.chats), session_id=seeded_chat.session_id
        )
        message = await repos.chats.get_message(seeded_chat.assistant_message_id)
        await reconciler.load(message)

        await reconciler.generate(message.id, stream=True)
        await reconciler.commit(message.id)
        await reconciler.cleanup(message.id)

        assert await repos.versions.list(message.id) == []
        stored = await repos.chats.get_message(message.id)
        assert stored.content == "Variant text"

    @pytest.mark.asyncio
    async def test_rollback_returns_authoritative_list(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider())
        await service.generate_variant(seeded_chat.assistant_message_id)

        variants = await service.rollback_stopped_variant(seeded_chat.assistant_message_id)

        assert [v.version for v in variants] == [1]

    @pytest.mark.asyncio
    async def test_reconciler_navigation_wraps_over_saved_variants(self, repos, seeded_chat):
        service = _service(repos, FakeLLMProvider(reply="Another take"))
        await service.generate_variant(seeded_chat.assistant_message_id)
        reconciler = VariantReconciler(
            LocalVariantBackend(service, repos.chats), session_id=seeded_chat.session_id
        )
        message = await repos.chats.get_message(seeded_chat.assistant_message_id)
        state = await reconciler.load(message)
        assert state.index == 1
        assert state.display_content == "Another take"

        state = reconciler.navigate(message.id, "next")

        assert state.index == 0
        assert state.display_content == "Just one, by the fire."
