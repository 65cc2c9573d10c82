"""
User prompt models.

A user prompt is a reusable instruction block appended to the system prompt.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from homechat.models.base import CamelModel


class UserPromptCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=100000)


class UserPromptUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    body: Optional[str] = Field(None, min_length=1, max_length=100000)


class UserPrompt(UserPromptCreate):
    id: int
    created_at: datetime
    updated_at: datetime
