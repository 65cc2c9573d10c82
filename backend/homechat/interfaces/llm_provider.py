"""
LLM provider interface.

Defines the contract for access to an OpenAI-compatible chat completions API.
Payloads are the JSON bodies sent upstream (``model``, ``messages``,
``temperature``, ...), so they can also be stored as the session request log.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator


class ILLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def get_model_name(self) -> str:
        """
        Get the model identifier sent upstream.

        Returns:
            Model name string (e.g. "deepseek-chat")
        """
        pass

    @abstractmethod
    async def complete(self, payload: dict[str, Any], api_key: str) -> dict[str, Any]:
        """
        Run a non-streaming completion.

        Args:
            payload: Request body
            api_key: Bearer key for the upstream API

        Returns:
            Parsed upstream JSON response

        Raises:
            LLMError: upstream returned an error status or was unreachable
        """
        pass

    @abstractmethod
    def stream(self, payload: dict[str, Any], api_key: str) -> AsyncIterator[str]:
        """
        Run a streaming completion.

        Args:
            payload: Request body (``stream`` is forced on)
            api_key: Bearer key for the upstream API

        Yields:
            Content deltas in arrival order. Iteration ends when upstream
            sends ``[DONE]``.

        Raises:
            LLMError: upstream returned an error status or was unreachable
        """
        pass
