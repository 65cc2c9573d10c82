"""
Chat sessions API endpoints.

Covers the session list, full history reads and writes, notes and the
running summary.
"""

from fastapi import APIRouter, HTTPException, Response, status

from homechat.api.deps import ChatRepo, ChatServiceDep, CurrentSession, SummaryServiceDep
from homechat.models.chat_session import (
    ChatSession,
    ChatSessionCreate,
    ChatSessionDetail,
    ChatSessionListItem,
    SessionDescriptionUpdate,
    SessionMessagesReplace,
    SessionNotes,
    SessionSummaryUpdate,
    SummaryUpdateResult,
)

router = APIRouter()


def _session_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Session not found",
    )


@router.get("", response_model=list[ChatSessionListItem])
async def list_sessions(_session: CurrentSession, repo: ChatRepo):
    """Sessions newest first, with message counts."""
    return await repo.list_sessions()


@router.post("", response_model=ChatSession, status_code=status.HTTP_201_CREATED)
async def create_session(
    data: ChatSessionCreate,
    _session: CurrentSession,
    chat_service: ChatServiceDep,
):
    """Start a session; the character's greeting becomes the first message."""
    return await chat_service.start_session(data.persona_id, data.character_id)


@router.get("/{session_id}", response_model=ChatSessionDetail)
async def get_session(session_id: int, _session: CurrentSession, repo: ChatRepo):
    detail = await repo.get_session_detail(session_id)
    if not detail:
        raise _session_not_found()
    return detail


@router.put("/{session_id}")
async def replace_messages(
    session_id: int,
    data: SessionMessagesReplace,
    _session: CurrentSession,
    repo: ChatRepo,
):
    """Replace the whole message list (used after edits and deletions)."""
    await repo.replace_messages(session_id, data.messages)
    return {"success": True}


@router.patch("/{session_id}", response_model=ChatSession)
async def update_description(
    session_id: int,
    data: SessionDescriptionUpdate,
    _session: CurrentSession,
    repo: ChatRepo,
):
    return await repo.update_session(session_id, description=data.description)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: int, _session: CurrentSession, repo: ChatRepo):
    if not await repo.delete_session(session_id):
        raise _session_not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===========================================
# Notes
# ===========================================


@router.get("/{session_id}/notes")
async def get_notes(session_id: int, _session: CurrentSession, repo: ChatRepo):
    session = await repo.get_session(session_id)
    if not session:
        raise _session_not_found()
    return {"notes": session.notes or ""}


@router.post("/{session_id}/notes")
async def save_notes(
    session_id: int,
    data: SessionNotes,
    _session: CurrentSession,
    repo: ChatRepo,
):
    await repo.update_session(session_id, notes=data.notes)
    return {"success": True}


# ===========================================
# Summary
# ===========================================


@router.post("/{session_id}/summary", response_model=ChatSession)
async def save_summary(
    session_id: int,
    data: SessionSummaryUpdate,
    _session: CurrentSession,
    summary_service: SummaryServiceDep,
):
    return await summary_service.save_summary(session_id, data.summary)


@router.post("/{session_id}/generate-summary", response_model=ChatSession)
async def generate_summary(
    session_id: int,
    _session: CurrentSession,
    summary_service: SummaryServiceDep,
):
    """Summarise the whole conversation and reset the watermark."""
    return await summary_service.generate_summary(session_id)


@router.post("/{session_id}/update-summary", response_model=SummaryUpdateResult)
async def update_summary(
    session_id: int,
    _session: CurrentSession,
    summary_service: SummaryServiceDep,
):
    """Fold messages newer than the watermark into the summary."""
    return await summary_service.update_summary(session_id)
