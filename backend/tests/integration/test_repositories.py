"""
Integration tests for the SQLite repositories.
"""

import pytest
from sqlalchemy import func, select

from homechat.core.exceptions import DuplicateError, NotFoundError
from homechat.infrastructure.local.database import ChatMessageORM, ChatSessionORM, CharacterORM
from homechat.models.character import CharacterCreate, CharacterGroupCreate, CharacterGroupUpdate
from homechat.models.chat_session import MessageInput
from homechat.models.enums import MessageRole
from homechat.models.persona import PersonaCreate

pytestmark = pytest.mark.integration


async def _count(session_factory, model) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


class TestPersonasAndCharacters:
    """Tests for uniqueness and cascades."""

    @pytest.mark.asyncio
    async def test_duplicate_character_creates_no_row(self, repos, session_factory):
        await repos.characters.create(CharacterCreate(name="Mira", profile_name="Inn"))

        with pytest.raises(DuplicateError):
            await repos.characters.create(CharacterCreate(name="Mira", profile_name="Inn"))

        assert await _count(session_factory, CharacterORM) == 1

    @pytest.mark.asyncio
    async def test_same_name_with_other_profile_is_allowed(self, repos):
        await repos.characters.create(CharacterCreate(name="Mira"))
        other = await repos.characters.create(CharacterCreate(name="Mira", profile_name="Alt"))

        assert other.profile_name == "Alt"

    @pytest.mark.asyncio
    async def test_duplicate_persona_without_profile_name(self, repos):
        await repos.personas.create(PersonaCreate(name="Alex", profile="one"))

        with pytest.raises(DuplicateError):
            await repos.personas.create(PersonaCreate(name="Alex", profile="two"))

    @pytest.mark.asyncio
    async def test_character_defaults(self, repos):
        character = await repos.characters.create(CharacterCreate(name="Blank", first_message=""))

        assert character.scenario == ""
        assert character.personality == ""
        assert character.example_dialogue == ""
        assert character.first_message == "You didn't enter a first message for this character :("

    @pytest.mark.asyncio
    async def test_deleting_persona_cascades_sessions_and_messages(
        self, repos, session_factory, seeded_chat
    ):
        assert await _count(session_factory, ChatMessageORM) == 3

        assert await repos.personas.delete(seeded_chat.persona_id) is True

        assert await _count(session_factory, ChatSessionORM) == 0
        assert await _count(session_factory, ChatMessageORM) == 0
        assert await repos.characters.get(seeded_chat.character_id) is not None


class TestCharacterGroups:
    """Tests for groups and moving characters between them."""

    @pytest.mark.asyncio
    async def test_new_groups_are_appended(self, repos):
        first = await repos.groups.create(CharacterGroupCreate(name="Fantasy"))
        second = await repos.groups.create(CharacterGroupCreate(name="Sci-fi"))

        assert second.sort_order == first.sort_order + 1
        assert [group.name for group in await repos.groups.list()] == ["Fantasy", "Sci-fi"]

    @pytest.mark.asyncio
    async def test_duplicate_group_name(self, repos):
        await repos.groups.create(CharacterGroupCreate(name="Fantasy"))

        with pytest.raises(DuplicateError):
            await repos.groups.create(CharacterGroupCreate(name="Fantasy"))

    @pytest.mark.asyncio
    async def test_move_and_ungroup_on_delete(self, repos):
        group = await repos.groups.create(CharacterGroupCreate(name="Fantasy"))
        character = await repos.characters.create(CharacterCreate(name="Mira"))

        moved = await repos.characters.move(character.id, group.id, 3)
        assert moved.group_id == group.id
        assert moved.sort_order == 3
        assert moved.group.name == "Fantasy"

        listed = await repos.groups.get(group.id)
        assert [member.id for member in listed.characters] == [character.id]

        await repos.groups.delete(group.id)
        assert (await repos.characters.get(character.id)).group_id is None

    @pytest.mark.asyncio
    async def test_move_to_unknown_group(self, repos):
        character = await repos.characters.create(CharacterCreate(name="Mira"))

        with pytest.raises(NotFoundError, match="Group not found"):
            await repos.characters.move(character.id, 999)

    @pytest.mark.asyncio
    async def test_partial_group_update(self, repos):
        group = await repos.groups.create(CharacterGroupCreate(name="Fantasy"))

        updated = await repos.groups.update(group.id, CharacterGroupUpdate(is_collapsed=True))

        assert updated.is_collapsed is True
        assert updated.name == "Fantasy"


class TestChatSessions:
    """Tests for sessions and messages."""

    @pytest.mark.asyncio
    async def test_list_sessions_counts_messages(self, repos, seeded_chat):
        sessions = await repos.chats.list_sessions()

        assert len(sessions) == 1
        assert sessions[0].message_count == 3
        assert sessions[0].persona.name == "Alex"
        assert sessions[0].character.name == "Mira"

    @pytest.mark.asyncio
    async def test_reply_is_appended_to_trailing_assistant_message(self, repos, seeded_chat):
        message = await repos.chats.save_assistant_reply(seeded_chat.session_id, "More text.")

        assert message.id == seeded_chat.assistant_message_id
        assert message.content == "Just one, by the fire.\n\nMore text."

    @pytest.mark.asyncio
    async def test_reply_after_user_turn_is_new_message(self, repos, seeded_chat):
        await repos.chats.add_message(seeded_chat.session_id, MessageRole.USER, "Great")

        message = await repos.chats.save_assistant_reply(seeded_chat.session_id, "Follow me.")

        assert message.id != seeded_chat.assistant_message_id
        assert message.role == MessageRole.ASSISTANT

    @pytest.mark.asyncio
    async def test_replace_messages(self, repos, seeded_chat):
        await repos.chats.replace_messages(
            seeded_chat.session_id,
            [MessageInput(role=MessageRole.ASSISTANT, content="Only this")],
        )

        messages = await repos.chats.list_messages(seeded_chat.session_id)
        assert [m.content for m in messages] == ["Only this"]

    @pytest.mark.asyncio
    async def test_list_messages_window(self, repos, seeded_chat):
        newer = await repos.chats.list_messages(
            seeded_chat.session_id, after_id=seeded_chat.user_message_id
        )
        older = await repos.chats.list_messages(
            seeded_chat.session_id, before_id=seeded_chat.user_message_id
        )

        assert [m.id for m in newer] == [seeded_chat.assistant_message_id]
        assert [m.content for m in older] == ["Welcome, Alex!"]
