"""
Variant backend over the HTTP API.

Lets a VariantReconciler run outside the server process (a script or a
separate UI process) against ``/api/messages/{id}/variants``.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Optional

import httpx

from homechat.core.exceptions import (
    AuthenticationError,
    ConflictError,
    HomeChatError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from homechat.interfaces.variant_backend import IVariantBackend, VariantEvent
from homechat.models.chat_session import ChatMessage, MessageVersion
from homechat.services.sse import parse_sse_data

_ERRORS_BY_STATUS: dict[int, type[HomeChatError]] = {
    400: ValidationError,
    401: AuthenticationError,
    404: NotFoundError,
    409: ConflictError,
}


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        message = response.json().get("error") or response.text
    except ValueError:
        message = response.text
    error_cls = _ERRORS_BY_STATUS.get(response.status_code, InfrastructureError)
    raise error_cls(message or f"HTTP {response.status_code}")


class HttpVariantBackend(IVariantBackend):
    """httpx client for the variant endpoints."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Server root, e.g. ``http://localhost:8000``
            token: Site JWT sent as a Bearer token
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use ASGITransport)
        """
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        async with self._client() as client:
            response = await client.request(method, path, **kwargs)
        _raise_for_status(response)
        return response.json()

    async def list_variants(self, message_id: int) -> list[MessageVersion]:
        rows = await self._request("GET", f"/api/messages/{message_id}/variants")
        return [MessageVersion.model_validate(row) for row in rows]

    async def generate_variant(self, message_id: int) -> MessageVersion:
        row = await self._request(
            "POST", f"/api/messages/{message_id}/variants", json={"stream": False}
        )
        return MessageVersion.model_validate(row)

    async def stream_variant(self, message_id: int) -> AsyncIterator[VariantEvent]:
        async with self._client() as client:
            async with client.stream(
                "POST",
                f"/api/messages/{message_id}/variants",
                json={"stream": True},
            ) as response:
                if not response.is_success:
                    await response.aread()
                    _raise_for_status(response)
                async for line in response.aiter_lines():
                    event = parse_sse_data(line)
                    if event is not None:
                        yield event

    async def edit_variant(self, message_id: int, variant_id: int, content: str) -> MessageVersion:
        row = await self._request(
            "PUT",
            f"/api/messages/{message_id}/variants",
            json={"variantId": variant_id, "content": content},
        )
        return MessageVersion.model_validate(row)

    async def commit_variant(self, message_id: int, variant_id: int) -> MessageVersion:
        row = await self._request(
            "PUT",
            f"/api/messages/{message_id}/variants",
            json={"variantId": variant_id},
        )
        return MessageVersion.model_validate(row)

    async def edit_message(self, message_id: int, content: str) -> ChatMessage:
        row = await self._request("PUT", f"/api/messages/{message_id}", json={"content": content})
        return ChatMessage.model_validate(row)

    async def cleanup_variants(self, message_id: int) -> int:
        result = await self._request("DELETE", f"/api/messages/{message_id}/variants")
        return int(result.get("deleted", 0))
