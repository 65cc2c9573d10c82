"""
Character and character group models.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from homechat.models.base import CamelModel

DEFAULT_FIRST_MESSAGE = "You didn't enter a first message for this character :("
DEFAULT_GROUP_COLOR = "#6366f1"


class CharacterBase(CamelModel):
    """Base character fields."""

    name: str = Field(..., min_length=1, max_length=200)
    profile_name: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = Field(None, max_length=100000)
    scenario: str = Field("", max_length=100000)
    personality: str = Field("", max_length=100000)
    first_message: str = Field(DEFAULT_FIRST_MESSAGE, max_length=100000)
    example_dialogue: str = Field("", max_length=100000)

    @field_validator("profile_name", mode="before")
    @classmethod
    def _blank_profile_name_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("scenario", "personality", "example_dialogue", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return "" if value is None else value

    @field_validator("first_message", mode="before")
    @classmethod
    def _default_first_message(cls, value):
        return value or DEFAULT_FIRST_MESSAGE


class CharacterCreate(CharacterBase):
    """Schema for creating a character."""

    pass


class CharacterUpdate(CharacterBase):
    """Schema for replacing a character (same shape as create)."""

    pass


class CharacterGroupRef(CamelModel):
    """Group summary embedded in a character."""

    id: int
    name: str
    color: str = DEFAULT_GROUP_COLOR
    is_collapsed: bool = False
    sort_order: int = 0


class Character(CharacterBase):
    """Character model."""

    id: int
    group_id: Optional[int] = None
    sort_order: int = 0
    created_at: datetime
    updated_at: datetime
    group: Optional[CharacterGroupRef] = None


class CharacterRef(CamelModel):
    """Short character reference embedded in session listings."""

    id: int
    name: str
    profile_name: Optional[str] = None


class CharacterMove(CamelModel):
    """Move a character into a group (or out of all groups)."""

    character_id: int
    group_id: Optional[int] = None
    new_sort_order: Optional[int] = None

    @field_validator("group_id", mode="before")
    @classmethod
    def _falsy_group_is_none(cls, value):
        return value or None


class CharacterGroupBase(CamelModel):
    """Base group fields."""

    name: str = Field(..., max_length=200)
    color: str = Field(DEFAULT_GROUP_COLOR, max_length=20)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class CharacterGroupCreate(CharacterGroupBase):
    """Schema for creating a group."""

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Group name is required")
        return value

    @field_validator("color", mode="before")
    @classmethod
    def _default_color(cls, value):
        return value or DEFAULT_GROUP_COLOR


class CharacterGroupUpdate(CamelModel):
    """Schema for updating a group. Omitted fields are left unchanged."""

    name: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, max_length=20)
    is_collapsed: Optional[bool] = None
    sort_order: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class CharacterGroup(CharacterGroupBase):
    """Character group with its members ordered by sort order."""

    id: int
    is_collapsed: bool = False
    sort_order: int = 0
    created_at: datetime
    updated_at: datetime
    characters: list[Character] = Field(default_factory=list)
