"""
Query helpers shared by the SQLite repositories.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select

from homechat.infrastructure.local.database import (
    ChatMessageORM,
    ChatSessionORM,
    MessageVersionORM,
)


def name_profile_clause(model, name: str, profile_name: Optional[str]):
    """WHERE clause matching a (name, profile_name) pair, NULL-aware."""
    if profile_name is None:
        return (model.name == name) & model.profile_name.is_(None)
    return (model.name == name) & (model.profile_name == profile_name)


async def delete_sessions_cascade(session, session_ids_query) -> None:
    """Delete variants, messages and sessions selected by ``session_ids_query``."""
    message_ids = select(ChatMessageORM.id).where(
        ChatMessageORM.session_id.in_(session_ids_query)
    )
    await session.execute(
        delete(MessageVersionORM).where(MessageVersionORM.message_id.in_(message_ids))
    )
    await session.execute(
        delete(ChatMessageORM).where(ChatMessageORM.session_id.in_(session_ids_query))
    )
    await session.execute(
        delete(ChatSessionORM).where(ChatSessionORM.id.in_(session_ids_query))
    )
