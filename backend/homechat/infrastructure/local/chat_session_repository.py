"""
SQLite implementation of Chat session repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select

from homechat.core.exceptions import NotFoundError
from homechat.infrastructure.local.character_repository import character_orm_to_model
from homechat.infrastructure.local.database import (
    CharacterGroupORM,
    CharacterORM,
    ChatMessageORM,
    ChatSessionORM,
    MessageVersionORM,
    PersonaORM,
    get_session_factory,
)
from homechat.infrastructure.local.message_version_repository import version_orm_to_model
from homechat.infrastructure.local.queries import delete_sessions_cascade
from homechat.interfaces.chat_session_repository import IChatSessionRepository
from homechat.models.character import CharacterRef
from homechat.models.chat_session import (
    ChatMessage,
    ChatMessageWithVersions,
    ChatSession,
    ChatSessionDetail,
    ChatSessionListItem,
    MessageInput,
)
from homechat.models.enums import MessageRole
from homechat.models.persona import Persona, PersonaRef
from homechat.utils.datetime_utils import utcnow_naive


def message_orm_to_model(orm: ChatMessageORM) -> ChatMessage:
    """Convert message ORM object to Pydantic model."""
    return ChatMessage(
        id=orm.id,
        session_id=orm.session_id,
        role=MessageRole(orm.role),
        content=orm.content,
        created_at=orm.created_at,
    )


class SqliteChatSessionRepository(IChatSessionRepository):
    """SQLite implementation of chat session repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _session_orm_to_model(self, orm: ChatSessionORM) -> ChatSession:
        """Convert session ORM object to Pydantic model."""
        return ChatSession(
            id=orm.id,
            persona_id=orm.persona_id,
            character_id=orm.character_id,
            summary=orm.summary or "",
            last_summary=orm.last_summary,
            description=orm.description,
            notes=orm.notes,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def _get_session_orm(self, session, session_id: int) -> ChatSessionORM:
        orm = await session.get(ChatSessionORM, session_id)
        if not orm:
            raise NotFoundError("Session not found")
        return orm

    # ===========================================
    # Sessions
    # ===========================================

    async def list_sessions(self) -> list[ChatSessionListItem]:
        async with self._session_factory() as session:
            counts = (
                select(
                    ChatMessageORM.session_id.label("session_id"),
                    func.count(ChatMessageORM.id).label("message_count"),
                )
                .group_by(ChatMessageORM.session_id)
                .subquery()
            )
            result = await session.execute(
                select(ChatSessionORM, PersonaORM, CharacterORM, counts.c.message_count)
                .join(PersonaORM, ChatSessionORM.persona_id == PersonaORM.id)
                .join(CharacterORM, ChatSessionORM.character_id == CharacterORM.id)
                .outerjoin(counts, counts.c.session_id == ChatSessionORM.id)
                .order_by(ChatSessionORM.created_at.desc(), ChatSessionORM.id.desc())
            )
            return [
                ChatSessionListItem(
                    id=orm.id,
                    persona_id=orm.persona_id,
                    character_id=orm.character_id,
                    updated_at=orm.updated_at,
                    summary=orm.summary or "",
                    description=orm.description,
                    message_count=message_count or 0,
                    persona=PersonaRef(
                        id=persona.id, name=persona.name, profile_name=persona.profile_name
                    ),
                    character=CharacterRef(
                        id=character.id,
                        name=character.name,
                        profile_name=character.profile_name,
                    ),
                )
                for orm, persona, character, message_count in result.all()
            ]

    async def create_session(
        self,
        persona_id: int,
        character_id: int,
        first_message: Optional[str] = None,
    ) -> ChatSession:
        async with self._session_factory() as session:
            orm = ChatSessionORM(persona_id=persona_id, character_id=character_id)
            session.add(orm)
            await session.flush()
            if first_message:
                session.add(
                    ChatMessageORM(
                        session_id=orm.id,
                        role=MessageRole.ASSISTANT.value,
                        content=first_message,
                    )
                )
            await session.commit()
            await session.refresh(orm)
            return self._session_orm_to_model(orm)

    async def get_session(self, session_id: int) -> Optional[ChatSession]:
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, session_id)
            return self._session_orm_to_model(orm) if orm else None

    async def get_session_detail(self, session_id: int) -> Optional[ChatSessionDetail]:
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, session_id)
            if not orm:
                return None
            persona = await session.get(PersonaORM, orm.persona_id)
            character = await session.get(CharacterORM, orm.character_id)
            if not persona or not character:
                return None
            group = (
                await session.get(CharacterGroupORM, character.group_id)
                if character.group_id
                else None
            )

            result = await session.execute(
                select(ChatMessageORM)
                .where(ChatMessageORM.session_id == session_id)
                .order_by(ChatMessageORM.id)
            )
            messages = result.scalars().all()

            versions: dict[int, list] = {message.id: [] for message in messages}
            if messages:
                result = await session.execute(
                    select(MessageVersionORM)
                    .where(MessageVersionORM.message_id.in_(list(versions)))
                    .order_by(MessageVersionORM.version)
                )
                for version in result.scalars().all():
                    versions[version.message_id].append(version_orm_to_model(version))

            base = self._session_orm_to_model(orm)
            return ChatSessionDetail(
                **base.model_dump(),
                persona=Persona(
                    id=persona.id,
                    name=persona.name,
                    profile_name=persona.profile_name,
                    profile=persona.profile,
                    created_at=persona.created_at,
                    updated_at=persona.updated_at,
                ),
                character=character_orm_to_model(character, group),
                messages=[
                    ChatMessageWithVersions(
                        **message_orm_to_model(message).model_dump(),
                        versions=versions[message.id],
                    )
                    for message in messages
                ],
            )

    async def update_session(
        self,
        session_id: int,
        *,
        summary=IChatSessionRepository.UNSET,
        last_summary=IChatSessionRepository.UNSET,
        description=IChatSessionRepository.UNSET,
        notes=IChatSessionRepository.UNSET,
        last_api_request=IChatSessionRepository.UNSET,
    ) -> ChatSession:
        changes = {
            "summary": summary,
            "last_summary": last_summary,
            "description": description,
            "notes": notes,
            "last_api_request": last_api_request,
        }
        async with self._session_factory() as session:
            orm = await self._get_session_orm(session, session_id)
            for field, value in changes.items():
                if value is not self.UNSET:
                    setattr(orm, field, value)
            orm.updated_at = utcnow_naive()
            await session.commit()
            await session.refresh(orm)
            return self._session_orm_to_model(orm)

    async def touch_session(self, session_id: int) -> None:
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, session_id)
            if orm:
                orm.updated_at = utcnow_naive()
                await session.commit()

    async def get_last_api_request(self, session_id: int) -> Optional[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSessionORM.last_api_request).where(ChatSessionORM.id == session_id)
            )
            return result.scalar_one_or_none()

    async def delete_session(self, session_id: int) -> bool:
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, session_id)
            if not orm:
                return False
            await delete_sessions_cascade(
                session, select(ChatSessionORM.id).where(ChatSessionORM.id == session_id)
            )
            await session.commit()
            return True

    # ===========================================
    # Messages
    # ===========================================

    async def add_message(
        self,
        session_id: int,
        role: MessageRole,
        content: str,
    ) -> ChatMessage:
        async with self._session_factory() as session:
            session_orm = await self._get_session_orm(session, session_id)
            session_orm.updated_at = utcnow_naive()
            orm = ChatMessageORM(
                session_id=session_id,
                role=MessageRole(role).value,
                content=content or "",
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return message_orm_to_model(orm)

    async def save_assistant_reply(self, session_id: int, content: str) -> ChatMessage:
        async with self._session_factory() as session:
            session_orm = await self._get_session_orm(session, session_id)
            session_orm.updated_at = utcnow_naive()

            result = await session.execute(
                select(ChatMessageORM)
                .where(ChatMessageORM.session_id == session_id)
                .order_by(ChatMessageORM.id.desc())
                .limit(1)
            )
            last = result.scalar_one_or_none()
            if last and last.role == MessageRole.ASSISTANT.value:
                last.content = f"{last.content}\n\n{content}"
                orm = last
            else:
                orm = ChatMessageORM(
                    session_id=session_id,
                    role=MessageRole.ASSISTANT.value,
                    content=content,
                )
                session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return message_orm_to_model(orm)

    async def get_message(self, message_id: int) -> Optional[ChatMessage]:
        async with self._session_factory() as session:
            orm = await session.get(ChatMessageORM, message_id)
            return message_orm_to_model(orm) if orm else None

    async def list_messages(
        self,
        session_id: int,
        after_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> list[ChatMessage]:
        async with self._session_factory() as session:
            query = select(ChatMessageORM).where(ChatMessageORM.session_id == session_id)
            if after_id is not None:
                query = query.where(ChatMessageORM.id > after_id)
            if before_id is not None:
                query = query.where(ChatMessageORM.id < before_id)
            result = await session.execute(query.order_by(ChatMessageORM.id))
            return [message_orm_to_model(orm) for orm in result.scalars().all()]

    async def update_message(self, message_id: int, content: str) -> ChatMessage:
        async with self._session_factory() as session:
            orm = await session.get(ChatMessageORM, message_id)
            if not orm:
                raise NotFoundError("Message not found")
            orm.content = content
            session_orm = await session.get(ChatSessionORM, orm.session_id)
            if session_orm:
                session_orm.updated_at = utcnow_naive()
            await session.commit()
            await session.refresh(orm)
            return message_orm_to_model(orm)

    async def replace_messages(
        self,
        session_id: int,
        messages: list[MessageInput],
    ) -> list[ChatMessage]:
        async with self._session_factory() as session:
            session_orm = await self._get_session_orm(session, session_id)
            old_ids = select(ChatMessageORM.id).where(ChatMessageORM.session_id == session_id)
            await session.execute(
                delete(MessageVersionORM).where(MessageVersionORM.message_id.in_(old_ids))
            )
            await session.execute(
                delete(ChatMessageORM).where(ChatMessageORM.session_id == session_id)
            )

            created = []
            for message in messages:
                orm = ChatMessageORM(
                    session_id=session_id,
                    role=MessageRole(message.role).value,
                    content=message.content,
                )
                session.add(orm)
                created.append(orm)
            session_orm.updated_at = utcnow_naive()
            await session.commit()
            return [message_orm_to_model(orm) for orm in created]
