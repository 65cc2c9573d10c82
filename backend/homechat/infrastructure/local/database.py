"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from functools import lru_cache

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from homechat.core.config import get_settings
from homechat.utils.datetime_utils import utcnow_naive


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class PersonaORM(Base):
    """Persona ORM model."""

    __tablename__ = "personas"
    __table_args__ = (
        UniqueConstraint("name", "profile_name", name="uq_personas_name_profile"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    profile_name = Column(String(200), nullable=True)
    profile = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow_naive)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)


class CharacterGroupORM(Base):
    """Character group ORM model."""

    __tablename__ = "character_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True)
    color = Column(String(20), nullable=False, default="#6366f1")
    is_collapsed = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime, default=utcnow_naive)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)


class CharacterORM(Base):
    """Character ORM model."""

    __tablename__ = "characters"
    __table_args__ = (
        UniqueConstraint("name", "profile_name", name="uq_characters_name_profile"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    profile_name = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    scenario = Column(Text, nullable=False, default="")
    personality = Column(Text, nullable=False, default="")
    first_message = Column(Text, nullable=False, default="")
    example_dialogue = Column(Text, nullable=False, default="")
    group_id = Column(
        Integer,
        ForeignKey("character_groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow_naive)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)


class ChatSessionORM(Base):
    """Chat session ORM model."""

    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    persona_id = Column(
        Integer, ForeignKey("personas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    character_id = Column(
        Integer, ForeignKey("characters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    summary = Column(Text, nullable=False, default="")
    last_summary = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    # JSON text of the last payload sent to the LLM API
    last_api_request = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow_naive, index=True)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)


class ChatMessageORM(Base):
    """Chat message ORM model."""

    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(
        Integer, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow_naive, index=True)


class MessageVersionORM(Base):
    """Message variant ORM model."""

    __tablename__ = "message_versions"
    __table_args__ = (
        UniqueConstraint("message_id", "version", name="uq_message_versions_message_version"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(
        Integer, ForeignKey("chat_messages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False, default="")
    version = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow_naive)


class UserPromptORM(Base):
    """User prompt ORM model."""

    __tablename__ = "user_prompts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow_naive, index=True)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)


class SettingORM(Base):
    """Key/value setting ORM model."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(Text, nullable=False, default="")


# ===========================================
# Database Session Management
# ===========================================


@lru_cache()
def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

