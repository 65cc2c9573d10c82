"""
Chat completion request model.
"""

from typing import Optional

from pydantic import Field

from homechat.models.base import CamelModel


class ChatRequest(CamelModel):
    """
    Body of ``POST /api/chat``.

    Either ``session_id`` or both ``persona_id`` and ``character_id`` must be
    given. ``retry`` regenerates the last reply without storing a new user
    message.
    """

    session_id: Optional[int] = None
    persona_id: Optional[int] = None
    character_id: Optional[int] = None
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    stream: bool = False
    max_tokens: Optional[int] = Field(None, gt=0)
    user_message: Optional[str] = None
    user_prompt_id: Optional[int] = None
    retry: bool = False
