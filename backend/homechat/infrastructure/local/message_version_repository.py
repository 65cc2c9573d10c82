"""
SQLite implementation of Message version repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from homechat.core.exceptions import ConflictError, NotFoundError
from homechat.infrastructure.local.database import (
    ChatMessageORM,
    MessageVersionORM,
    get_session_factory,
)
from homechat.interfaces.message_version_repository import IMessageVersionRepository
from homechat.models.chat_session import ChatMessage, MessageVersion
from homechat.models.enums import MessageRole


def version_orm_to_model(orm: MessageVersionORM) -> MessageVersion:
    """Convert ORM object to Pydantic model."""
    return MessageVersion(
        id=orm.id,
        message_id=orm.message_id,
        content=orm.content,
        version=orm.version,
        is_active=bool(orm.is_active),
        created_at=orm.created_at,
    )


class SqliteMessageVersionRepository(IMessageVersionRepository):
    """SQLite implementation of message version repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def list(self, message_id: int) -> list[MessageVersion]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MessageVersionORM)
                .where(MessageVersionORM.message_id == message_id)
                .order_by(MessageVersionORM.version)
            )
            return [version_orm_to_model(orm) for orm in result.scalars().all()]

    async def get(self, variant_id: int) -> Optional[MessageVersion]:
        async with self._session_factory() as session:
            orm = await session.get(MessageVersionORM, variant_id)
            return version_orm_to_model(orm) if orm else None

    async def latest(self, message_id: int) -> Optional[MessageVersion]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MessageVersionORM)
                .where(MessageVersionORM.message_id == message_id)
                .order_by(MessageVersionORM.version.desc())
                .limit(1)
            )
            orm = result.scalar_one_or_none()
            return version_orm_to_model(orm) if orm else None

    async def max_version(self, message_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.max(MessageVersionORM.version)).where(
                    MessageVersionORM.message_id == message_id
                )
            )
            return result.scalar() or 0

    async def exists(self, message_id: int, version: int) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MessageVersionORM.id)
                .where(
                    MessageVersionORM.message_id == message_id,
                    MessageVersionORM.version == version,
                )
                .limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def create(
        self,
        message_id: int,
        content: str,
        version: int,
        is_active: bool = False,
    ) -> MessageVersion:
        async with self._session_factory() as session:
            orm = MessageVersionORM(
                message_id=message_id,
                content=content,
                version=version,
                is_active=is_active,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(
                    "Variant version conflict due to concurrent request",
                    details={"message_id": message_id, "version": version},
                ) from exc
            await session.refresh(orm)
            return version_orm_to_model(orm)

    async def update_content(self, variant_id: int, content: str) -> MessageVersion:
        async with self._session_factory() as session:
            orm = await session.get(MessageVersionORM, variant_id)
            if not orm:
                raise NotFoundError("Variant not found")
            orm.content = content
            await session.commit()
            await session.refresh(orm)
            return version_orm_to_model(orm)

    async def activate(
        self,
        message_id: int,
        variant_id: int,
    ) -> tuple[MessageVersion, ChatMessage]:
        async with self._session_factory() as session:
            variant = await session.get(MessageVersionORM, variant_id)
            if not variant or variant.message_id != message_id:
                raise NotFoundError("Variant not found for this message")
            message = await session.get(ChatMessageORM, message_id)
            if not message:
                raise NotFoundError("Message not found")

            await session.execute(
                update(MessageVersionORM)
                .where(MessageVersionORM.message_id == message_id)
                .values(is_active=False)
            )
            variant.is_active = True
            message.content = variant.content
            await session.commit()
            await session.refresh(variant)
            await session.refresh(message)
            return (
                version_orm_to_model(variant),
                ChatMessage(
                    id=message.id,
                    session_id=message.session_id,
                    role=MessageRole(message.role),
                    content=message.content,
                    created_at=message.created_at,
                ),
            )

    async def delete_all(self, message_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(MessageVersionORM).where(MessageVersionORM.message_id == message_id)
            )
            await session.commit()
            return result.rowcount or 0
