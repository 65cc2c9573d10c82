"""
Messages API endpoints.
"""

from fastapi import APIRouter, status

from homechat.api.deps import ChatRepo, CurrentSession
from homechat.models.chat_session import ChatMessage, MessageCreate, MessageUpdate

router = APIRouter()


@router.post("", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def create_message(data: MessageCreate, _session: CurrentSession, repo: ChatRepo):
    return await repo.add_message(data.session_id, data.role, data.content)


@router.put("/{message_id}", response_model=ChatMessage)
async def update_message(
    message_id: int,
    data: MessageUpdate,
    _session: CurrentSession,
    repo: ChatRepo,
):
    return await repo.update_message(message_id, data.content)
