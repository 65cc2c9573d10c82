"""
Character and chat importers.

An external chat front-end whose custom prompt is set to
``<character_to_import>`` or ``<chat_to_import>`` posts its OpenAI-style
request here. The system message is parsed into character fields and the
result is parked in a single in-memory slot until the UI picks it up.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Any, Optional

from homechat.core.exceptions import ValidationError
from homechat.core.logger import setup_logger

logger = setup_logger(__name__)

CHARACTER_MARKER = "<character_to_import>"
CHAT_MARKER = "<chat_to_import>"

_SECTION_TAGS = ("scenario", "example_dialogs", "UserPersona")

_NAME_PATTERNS = (
    re.compile(r"(?:I am|I'm|My name is|Call me)\s+([A-Z][a-zA-Z\s]+?)(?:\.|,|\n|$)", re.IGNORECASE),
    re.compile(r"^([A-Z][a-zA-Z\s]+?)(?:\s+is|,)"),
)


class ImportParseError(ValidationError):
    """Parsing failed; carries the log collected up to the failure."""

    def __init__(self, message: str, logs: list[str]):
        super().__init__(message, {"logs": logs})
        self.logs = logs


def _preview(text: str, length: int = 50) -> str:
    return f'"{text[:length]}..."'


def _extract_tag(content: str, tag: str) -> str:
    match = re.search(rf"<{tag}>(.*?)</{tag}>", content, re.DOTALL)
    return match.group(1).strip() if match else ""


def _persona_prefix(content: str) -> str:
    """Name before the first ``": "`` of a user turn, if any."""
    colon = content.find(": ")
    return content[:colon] if colon > 0 else ""


def detect_character_name(personality: str) -> str:
    """Guess a character name from "I am X" style phrases; empty when none."""
    for pattern in _NAME_PATTERNS:
        match = pattern.search(personality)
        if match and match.group(1):
            return match.group(1).strip()
    return ""


def _system_content(request_data: Any, logs: list[str]) -> tuple[list[dict[str, Any]], str]:
    messages = request_data.get("messages") if isinstance(request_data, dict) else None
    if not isinstance(messages, list):
        raise ValueError("Invalid request format: missing messages array")
    messages = [m for m in messages if isinstance(m, dict)]
    logs.append(f"Found {len(messages)} messages in request")
    if any(not isinstance(m.get("content") or "", str) for m in messages):
        raise ValueError("Unsupported message content")

    system = next((m for m in messages if m.get("role") == "system"), None)
    if system is None:
        raise ValueError("No system message found")
    content = system.get("content") or ""
    logs.append("Found system message")
    logs.append(f"System content length: {len(content)} characters")
    return messages, content


def _parse_sections(content: str, marker: str, logs: list[str]) -> dict[str, str]:
    marker_index = content.find(marker)
    if marker_index == -1:
        raise ValueError(
            f"No {marker} marker found. Please set your custom prompt to "
            f'"{marker}" for import to work.'
        )
    logs.append(f"Found {marker} marker")

    body = content[marker_index + len(marker):]
    logs.append(f"Content after marker: {_preview(body, 100)}")

    positions = sorted(
        (body.find(f"<{tag}>"), tag) for tag in _SECTION_TAGS if body.find(f"<{tag}>") != -1
    )
    if not positions:
        raise ValueError("No <scenario>, <example_dialogs>, or <UserPersona> tag found")
    end, first_tag = positions[0]
    logs.append(f"Found {first_tag} tag first at index {end}")

    sections = {
        "personality": body[:end].strip(),
        "scenario": _extract_tag(body, "scenario"),
        "userPersona": _extract_tag(body, "UserPersona"),
        "exampleDialogue": _extract_tag(body, "example_dialogs"),
        "summary": _extract_tag(body, "summary"),
    }
    logs.append(f"Extracted personality: {_preview(sections['personality'])}")
    logs.append(f"Extracted scenario: {_preview(sections['scenario'])}")
    logs.append(f"Extracted user persona: {_preview(sections['userPersona'])}")
    logs.append(f"Extracted example dialogue: {_preview(sections['exampleDialogue'])}")
    return sections


def parse_character_import(request_data: Any) -> tuple[dict[str, str], list[str]]:
    """
    Parse a ``<character_to_import>`` request.

    The persona name found on the last user turn is replaced with
    ``{{user}}`` throughout the character fields.

    Returns:
        (character fields, parse log)

    Raises:
        ImportParseError: the request cannot be parsed
    """
    logs = ["Starting character data parsing..."]
    try:
        messages, content = _system_content(request_data, logs)

        assistant = next((m for m in messages if m.get("role") == "assistant"), None)
        first_message = (assistant.get("content") or "") if assistant else ""
        logs.append(f"Found assistant message: {_preview(first_message)}")

        user_turns = [m for m in messages if m.get("role") == "user"]
        persona_name = _persona_prefix(user_turns[-1].get("content") or "") if user_turns else ""
        if persona_name:
            logs.append(f"Detected persona name from user message: {persona_name}")
        else:
            logs.append("No persona name detected from user messages")

        sections = _parse_sections(content, CHARACTER_MARKER, logs)
    except ValueError as exc:
        logs.append(f"ERROR: {exc}")
        raise ImportParseError(str(exc), logs) from exc

    name = detect_character_name(sections["personality"])
    if name:
        logs.append(f"Detected character name from personality: {name}")
    else:
        logs.append("No character name detected - user will need to provide one")

    fields = {
        "personality": sections["personality"],
        "scenario": sections["scenario"],
        "exampleDialogue": sections["exampleDialogue"],
        "firstMessage": first_message.strip(),
    }
    if persona_name.strip():
        pattern = re.compile(re.escape(persona_name), re.IGNORECASE)
        fields = {key: pattern.sub("{{user}}", value) for key, value in fields.items()}
        logs.append(f'Converted persona name "{persona_name}" to {{{{user}}}} in character data')
    else:
        logs.append("No persona name conversion applied - using original character data")

    logs.append("Character data parsing completed successfully!")
    return {"name": name, **fields}, logs


def parse_chat_import(request_data: Any) -> tuple[dict[str, Any], list[str]]:
    """
    Parse a ``<chat_to_import>`` request.

    The first two messages (system prompt and the ``.`` opener) are dropped;
    everything after is the conversation. ``{{char}}``/``{{user}}``
    placeholders are left intact.

    Raises:
        ImportParseError: the request cannot be parsed
    """
    logs = ["Starting chat data parsing..."]
    try:
        messages, content = _system_content(request_data, logs)
        sections = _parse_sections(content, CHAT_MARKER, logs)
    except ValueError as exc:
        logs.append(f"ERROR: {exc}")
        raise ImportParseError(str(exc), logs) from exc

    summary = sections["summary"]
    logs.append(f"Found summary: {_preview(summary)}" if summary else "No summary tag found")

    templated = (sections["personality"], sections["scenario"], sections["exampleDialogue"])
    name = ""
    if any("{{char}}" in text or "{{user}}" in text for text in templated):
        logs.append("Found {{char}} or {{user}} placeholders - preserving for multi-persona use")
    else:
        name = detect_character_name(sections["personality"])
        if name:
            logs.append(f"Detected character name from personality: {name}")
        else:
            logs.append("No character name detected - user will need to provide one")

    chat_messages = messages[2:]
    logs.append(f"Found {len(chat_messages)} chat messages to import")

    assistant = next((m for m in chat_messages if m.get("role") == "assistant"), None)
    first_message = (assistant.get("content") or "") if assistant else ""
    logs.append(f"Assistant first message: {_preview(first_message)}")

    user_turns = [m for m in chat_messages if m.get("role") == "user"]
    persona_name = _persona_prefix(user_turns[0].get("content") or "") if user_turns else ""
    if persona_name:
        logs.append(f"Detected persona name: {persona_name}")

    logs.append("Chat data parsing completed successfully!")
    data = {
        "characterData": {
            "name": name,
            "personality": sections["personality"],
            "scenario": sections["scenario"],
            "exampleDialogue": sections["exampleDialogue"],
            "firstMessage": first_message.strip(),
        },
        "chatMessages": chat_messages,
        "detectedPersonaName": persona_name,
        "userPersona": sections["userPersona"],
        "summary": summary,
    }
    return data, logs


class ImportSlot:
    """Holds the most recent import result until it is collected once."""

    def __init__(self, kind: str, include_timestamp: bool = False) -> None:
        self.kind = kind
        self._include_timestamp = include_timestamp
        self._latest: Optional[dict[str, Any]] = None
        self._lock = asyncio.Lock()

    async def store(self, data: dict[str, Any], logs: list[str]) -> None:
        async with self._lock:
            self._latest = {
                "imported": True,
                self.kind: data,
                "timestamp": int(time.time() * 1000),
                "logs": logs,
            }
        logger.info(f"Stored {self.kind} import")

    async def store_failure(self, logs: list[str]) -> None:
        async with self._lock:
            self._latest = {
                "imported": False,
                "timestamp": int(time.time() * 1000),
                "logs": logs,
            }

    async def take(self) -> dict[str, Any]:
        """
        Return the pending result. A successful import is cleared on read;
        a failure log stays until the next POST.
        """
        async with self._lock:
            latest = self._latest
            if latest is None:
                return {"imported": False, "logs": []}
            if not latest["imported"]:
                return {"imported": False, "logs": latest["logs"]}
            self._latest = None

        result = {"imported": True, self.kind: latest[self.kind], "logs": latest["logs"]}
        if self._include_timestamp:
            result["timestamp"] = latest["timestamp"]
        return result


character_import_slot = ImportSlot("character")
chat_import_slot = ImportSlot("chat", include_timestamp=True)
