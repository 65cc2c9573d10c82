"""
Unit tests for the OpenAI-compatible LLM provider.
"""

import json

import httpx
import pytest

from homechat.core.exceptions import LLMError
from homechat.infrastructure.local.openai_compatible_provider import OpenAICompatibleProvider

API_URL = "https://llm.test/chat/completions"


def _provider(handler) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        model_name="deepseek-chat",
        api_url=API_URL,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def _sse(*chunks: str) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": chunk}}]})
        for chunk in chunks
    ]
    lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


@pytest.mark.asyncio
async def test_complete_sends_bearer_key_and_disables_stream():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Hi"}}]})

    response = await _provider(handler).complete({"messages": [], "stream": True}, "sk-test")

    assert response["choices"][0]["message"]["content"] == "Hi"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["stream"] is False
    assert seen["body"]["model"] == "deepseek-chat"


@pytest.mark.asyncio
async def test_complete_carries_upstream_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Authentication Fails"}})

    with pytest.raises(LLMError) as exc_info:
        await _provider(handler).complete({"messages": []}, "bad-key")

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Authentication Fails"


@pytest.mark.asyncio
async def test_stream_yields_deltas_until_done():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=_sse("Hel", "lo") + b"data: " + json.dumps({"choices": [{"delta": {"content": "ignored"}}]}).encode(),
            headers={"Content-Type": "text/event-stream"},
        )

    deltas = [delta async for delta in _provider(handler).stream({"messages": []}, "sk-test")]

    assert deltas == ["Hel", "lo"]


@pytest.mark.asyncio
async def test_stream_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="rate limited")

    with pytest.raises(LLMError) as exc_info:
        async for _ in _provider(handler).stream({"messages": []}, "sk-test"):
            pass

    assert exc_info.value.status_code == 429
