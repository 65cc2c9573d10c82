"""
Unit tests for the character and chat importers.
"""

import pytest

from homechat.services.import_service import (
    ImportParseError,
    ImportSlot,
    detect_character_name,
    parse_character_import,
    parse_chat_import,
)

CHARACTER_SYSTEM = (
    "<character_to_import>I am Seraphina, guardian of the forest. Sam is my friend."
    "<scenario>Sam wanders into the glade.</scenario>"
    "<example_dialogs>Seraphina: Hello, Sam.</example_dialogs>"
    "<UserPersona>A lost hiker.</UserPersona>"
)


def _request(system: str, *turns: tuple[str, str]) -> dict:
    messages = [{"role": "system", "content": system}]
    messages.extend({"role": role, "content": content} for role, content in turns)
    return {"messages": messages}


class TestCharacterImport:
    """Tests for <character_to_import> parsing."""

    def test_parses_sections_and_replaces_persona_name(self):
        data, logs = parse_character_import(
            _request(
                CHARACTER_SYSTEM,
                ("assistant", "  Welcome, Sam.  "),
                ("user", "Sam: Where am I?"),
            )
        )

        assert data["name"] == "Seraphina"
        assert data["personality"] == "I am Seraphina, guardian of the forest. {{user}} is my friend."
        assert data["scenario"] == "{{user}} wanders into the glade."
        assert data["exampleDialogue"] == "Seraphina: Hello, {{user}}."
        assert data["firstMessage"] == "Welcome, {{user}}."
        assert logs[-1] == "Character data parsing completed successfully!"

    def test_missing_marker(self):
        with pytest.raises(ImportParseError) as exc_info:
            parse_character_import(_request("Just a system prompt"))

        assert "No <character_to_import> marker found" in exc_info.value.message
        assert exc_info.value.logs[-1].startswith("ERROR:")

    def test_missing_section_tags(self):
        with pytest.raises(ImportParseError) as exc_info:
            parse_character_import(_request("<character_to_import>Only personality"))

        assert exc_info.value.message == "No <scenario>, <example_dialogs>, or <UserPersona> tag found"

    def test_missing_messages(self):
        with pytest.raises(ImportParseError) as exc_info:
            parse_character_import({"model": "x"})

        assert exc_info.value.message == "Invalid request format: missing messages array"

    def test_missing_system_message(self):
        with pytest.raises(ImportParseError) as exc_info:
            parse_character_import({"messages": [{"role": "user", "content": "hi"}]})

        assert exc_info.value.message == "No system message found"

    def test_content_parts_are_rejected(self):
        request = {"messages": [{"role": "system", "content": [{"type": "text", "text": CHARACTER_SYSTEM}]}]}

        with pytest.raises(ImportParseError) as exc_info:
            parse_character_import(request)

        assert exc_info.value.message == "Unsupported message content"
        assert exc_info.value.logs[-1] == "ERROR: Unsupported message content"


class TestChatImport:
    """Tests for <chat_to_import> parsing."""

    def test_keeps_placeholders_and_skips_first_two_messages(self):
        system = (
            "<chat_to_import>{{char}} is a pirate captain.<scenario>{{user}} boards the ship.</scenario>"
            "<summary>They set sail.</summary>"
        )
        data, _ = parse_chat_import(
            _request(
                system,
                ("user", "."),
                ("assistant", "Ahoy!"),
                ("user", "Sam: Hello captain"),
                ("assistant", "Welcome aboard."),
            )
        )

        assert data["characterData"]["name"] == ""
        assert data["characterData"]["personality"] == "{{char}} is a pirate captain."
        assert data["characterData"]["firstMessage"] == "Ahoy!"
        assert data["summary"] == "They set sail."
        assert data["detectedPersonaName"] == "Sam"
        assert [m["content"] for m in data["chatMessages"]] == [
            "Ahoy!",
            "Sam: Hello captain",
            "Welcome aboard.",
        ]

    def test_detects_name_without_placeholders(self):
        data, _ = parse_chat_import(
            _request("<chat_to_import>My name is Bob, a baker.<UserPersona>x</UserPersona>")
        )

        assert data["characterData"]["name"] == "Bob"

    def test_non_text_chat_message_is_rejected(self):
        with pytest.raises(ImportParseError) as exc_info:
            parse_chat_import(
                _request(
                    "<chat_to_import>{{char}} bakes.<scenario>x</scenario>",
                    ("user", "."),
                    ("assistant", {"text": "Hi"}),
                )
            )

        assert exc_info.value.logs[-1] == "ERROR: Unsupported message content"


def test_detect_character_name_patterns():
    assert detect_character_name("Call me Ishmael.") == "Ishmael"
    assert detect_character_name("Luna is a moon spirit") == "Luna"
    assert detect_character_name("a quiet figure") == ""


class TestImportSlot:
    """Tests for the latest-import slot."""

    @pytest.mark.asyncio
    async def test_empty_slot(self):
        slot = ImportSlot("character")
        assert await slot.take() == {"imported": False, "logs": []}

    @pytest.mark.asyncio
    async def test_success_is_cleared_after_read(self):
        slot = ImportSlot("chat", include_timestamp=True)
        await slot.store({"summary": ""}, ["ok"])

        first = await slot.take()
        assert first["imported"] is True
        assert first["chat"] == {"summary": ""}
        assert "timestamp" in first

        assert await slot.take() == {"imported": False, "logs": []}

    @pytest.mark.asyncio
    async def test_failure_logs_stay_available(self):
        slot = ImportSlot("character")
        await slot.store_failure(["ERROR: broken"])

        assert await slot.take() == {"imported": False, "logs": ["ERROR: broken"]}
        assert await slot.take() == {"imported": False, "logs": ["ERROR: broken"]}
