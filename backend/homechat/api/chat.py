"""
Chat API endpoints.

One POST runs a full turn: store the user message, build the prompt, call
the LLM and save the reply. ``stream`` switches the response to SSE.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from homechat.api.deps import ChatServiceDep, CurrentSession
from homechat.models.chat import ChatRequest
from homechat.services.sse import sse_response

router = APIRouter()


@router.post("")
async def chat(
    data: ChatRequest,
    request: Request,
    _session: CurrentSession,
    chat_service: ChatServiceDep,
):
    prepared = await chat_service.prepare(data)

    if data.stream:
        return sse_response(
            chat_service.stream(prepared, is_disconnected=request.is_disconnected)
        )

    response = await chat_service.complete(prepared)
    return JSONResponse(content=response)


@router.get("/request-log/{session_id}")
async def get_request_log(
    session_id: int,
    _session: CurrentSession,
    chat_service: ChatServiceDep,
):
    """The last payload sent to the LLM for a session."""
    return await chat_service.get_request_log(session_id)
