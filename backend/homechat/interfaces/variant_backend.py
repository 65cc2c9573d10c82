"""
Variant backend interface.

The variant reconciler talks to the server through this contract. It can be
backed by the in-process VariantService or by the HTTP API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Union

from homechat.models.chat_session import ChatMessage, MessageVersion

# A decoded SSE event: a JSON object, or the literal "[DONE]" marker.
VariantEvent = Union[dict[str, Any], str]


class IVariantBackend(ABC):
    """Server operations needed to reconcile variants."""

    @abstractmethod
    async def list_variants(self, message_id: int) -> list[MessageVersion]:
        """Authoritative variants of a message, ordered by version."""
        pass

    @abstractmethod
    async def generate_variant(self, message_id: int) -> MessageVersion:
        """Generate and persist one variant without streaming."""
        pass

    @abstractmethod
    def stream_variant(self, message_id: int) -> AsyncIterator[VariantEvent]:
        """
        Generate a variant while streaming.

        Yields:
            ``{"status": "connected", ...}``, ``{"content": delta}``...,
            ``"[DONE]"`` and a final ``variant_saved`` / ``variant_not_saved``
            status event.
        """
        pass

    @abstractmethod
    async def edit_variant(self, message_id: int, variant_id: int, content: str) -> MessageVersion:
        """Replace a variant's content."""
        pass

    @abstractmethod
    async def commit_variant(self, message_id: int, variant_id: int) -> MessageVersion:
        """Make a variant the canonical content of its message."""
        pass

    @abstractmethod
    async def edit_message(self, message_id: int, content: str) -> ChatMessage:
        """Replace the original message content."""
        pass

    @abstractmethod
    async def cleanup_variants(self, message_id: int) -> int:
        """Delete all variants of a message, returning the count."""
        pass
