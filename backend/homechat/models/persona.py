"""
Persona models.

A persona is the user-side identity in a conversation.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from homechat.models.base import CamelModel


class PersonaBase(CamelModel):
    """Base persona fields."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    profile_name: Optional[str] = Field(
        None, max_length=200, description="Disambiguates personas sharing a name"
    )
    profile: str = Field(..., min_length=1, max_length=100000, description="Persona description")

    @field_validator("profile_name", mode="before")
    @classmethod
    def _blank_profile_name_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PersonaCreate(PersonaBase):
    """Schema for creating a persona."""

    pass


class PersonaUpdate(PersonaBase):
    """Schema for replacing a persona."""

    pass


class Persona(PersonaBase):
    """Persona model."""

    id: int
    created_at: datetime
    updated_at: datetime


class PersonaRef(CamelModel):
    """Short persona reference embedded in session listings."""

    id: int
    name: str
    profile_name: Optional[str] = None
