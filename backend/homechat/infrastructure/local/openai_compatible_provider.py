"""
OpenAI-compatible chat completions provider.

Talks to DeepSeek by default; any endpoint that accepts the OpenAI
``/chat/completions`` body and streams ``data:`` lines works.
"""

import json
from typing import Any, AsyncIterator, Optional

import httpx

from homechat.core.config import get_settings
from homechat.core.exceptions import LLMError
from homechat.core.logger import logger
from homechat.interfaces.llm_provider import ILLMProvider


def _error_message(status_code: int, body: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return body[:500] or f"LLM API returned HTTP {status_code}"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return error.get("message") or json.dumps(error)
    if error:
        return str(error)
    return f"LLM API returned HTTP {status_code}"


class OpenAICompatibleProvider(ILLMProvider):
    """httpx-based provider for OpenAI-style chat completion APIs."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize provider.

        Args:
            model_name: Model identifier (defaults to LLM_MODEL)
            api_url: Full chat completions URL (defaults to LLM_API_URL)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        settings = get_settings()
        self._model_name = model_name or settings.LLM_MODEL
        self._api_url = api_url or settings.LLM_API_URL
        self._timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport

    def get_model_name(self) -> str:
        return self._model_name

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    async def complete(self, payload: dict[str, Any], api_key: str) -> dict[str, Any]:
        body = {"model": self._model_name, **payload, "stream": False}
        try:
            async with self._client() as client:
                response = await client.post(
                    self._api_url, json=body, headers=self._headers(api_key)
                )
        except httpx.HTTPError as exc:
            logger.error(f"LLM request failed: {exc}")
            raise LLMError(f"Failed to reach LLM API: {exc}") from exc

        if response.status_code >= 400:
            message = _error_message(response.status_code, response.text)
            logger.warning(f"LLM API error {response.status_code}: {message}")
            raise LLMError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise LLMError("LLM API returned invalid JSON") from exc

    async def stream(self, payload: dict[str, Any], api_key: str) -> AsyncIterator[str]:
        body = {"model": self._model_name, **payload, "stream": True}
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", self._api_url, json=body, headers=self._headers(api_key)
                ) as response:
                    if response.status_code >= 400:
                        raw = (await response.aread()).decode("utf-8", errors="replace")
                        message = _error_message(response.status_code, raw)
                        logger.warning(f"LLM API error {response.status_code}: {message}")
                        raise LLMError(message, status_code=response.status_code)

                    async for line in response.aiter_lines():
                        line = line.strip()
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            return
                        try:
                            chunk = json.loads(data)
                        except ValueError:
                            logger.debug(f"Skipping malformed stream chunk: {data[:200]}")
                            continue
                        choices = chunk.get("choices") or []
                        delta = (choices[0].get("delta") or {}).get("content") if choices else None
                        if delta:
                            yield delta
        except httpx.HTTPError as exc:
            logger.error(f"LLM stream failed: {exc}")
            raise LLMError(f"LLM stream interrupted: {exc}") from exc
