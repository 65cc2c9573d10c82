"""
Server-Sent Events helpers.
"""

import json
from typing import Any, AsyncIterator, Union

from fastapi.responses import StreamingResponse

DONE = "[DONE]"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable buffering for nginx
}


def format_sse(event: Union[dict[str, Any], str]) -> str:
    """Encode one event as a ``data:`` frame."""
    if isinstance(event, str):
        return f"data: {event}\n\n"
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def parse_sse_data(line: str) -> Union[dict[str, Any], str, None]:
    """Decode a ``data:`` line; returns None for anything else."""
    line = line.strip()
    if not line.startswith("data:"):
        return None
    data = line[len("data:"):].strip()
    if data == DONE:
        return DONE
    try:
        return json.loads(data)
    except ValueError:
        return None


def sse_response(events: AsyncIterator[Union[dict[str, Any], str]]) -> StreamingResponse:
    """Wrap an event iterator in a text/event-stream response."""

    async def event_generator() -> AsyncIterator[str]:
        try:
            async for event in events:
                yield format_sse(event)
        finally:
            # Close the producer so its finally block runs on disconnect.
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
