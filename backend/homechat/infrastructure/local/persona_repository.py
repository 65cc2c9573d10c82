"""
SQLite implementation of Persona repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from homechat.core.exceptions import DuplicateError, NotFoundError
from homechat.infrastructure.local.database import ChatSessionORM, PersonaORM, get_session_factory
from homechat.infrastructure.local.queries import delete_sessions_cascade, name_profile_clause
from homechat.interfaces.persona_repository import IPersonaRepository
from homechat.models.persona import Persona, PersonaCreate, PersonaUpdate
from homechat.utils.datetime_utils import utcnow_naive

DUPLICATE_PERSONA_MESSAGE = "A persona with this name and profile name combination already exists"


class SqlitePersonaRepository(IPersonaRepository):
    """SQLite implementation of persona repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: PersonaORM) -> Persona:
        """Convert ORM object to Pydantic model."""
        return Persona(
            id=orm.id,
            name=orm.name,
            profile_name=orm.profile_name,
            profile=orm.profile,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def _ensure_unique(
        self,
        session,
        name: str,
        profile_name: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> None:
        query = select(PersonaORM.id).where(name_profile_clause(PersonaORM, name, profile_name))
        if exclude_id is not None:
            query = query.where(PersonaORM.id != exclude_id)
        result = await session.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            raise DuplicateError(DUPLICATE_PERSONA_MESSAGE)

    async def list(self) -> list[Persona]:
        async with self._session_factory() as session:
            result = await session.execute(select(PersonaORM).order_by(PersonaORM.id))
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def get(self, persona_id: int) -> Optional[Persona]:
        async with self._session_factory() as session:
            orm = await session.get(PersonaORM, persona_id)
            return self._orm_to_model(orm) if orm else None

    async def create(self, data: PersonaCreate) -> Persona:
        async with self._session_factory() as session:
            await self._ensure_unique(session, data.name, data.profile_name)
            orm = PersonaORM(
                name=data.name,
                profile_name=data.profile_name,
                profile=data.profile,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateError(DUPLICATE_PERSONA_MESSAGE) from exc
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def update(self, persona_id: int, data: PersonaUpdate) -> Persona:
        async with self._session_factory() as session:
            orm = await session.get(PersonaORM, persona_id)
            if not orm:
                raise NotFoundError(f"Persona {persona_id} not found")
            await self._ensure_unique(session, data.name, data.profile_name, exclude_id=persona_id)

            orm.name = data.name
            orm.profile_name = data.profile_name
            orm.profile = data.profile
            orm.updated_at = utcnow_naive()
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateError(DUPLICATE_PERSONA_MESSAGE) from exc
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, persona_id: int) -> bool:
        async with self._session_factory() as session:
            orm = await session.get(PersonaORM, persona_id)
            if not orm:
                return False
            session_ids = select(ChatSessionORM.id).where(ChatSessionORM.persona_id == persona_id)
            await delete_sessions_cascade(session, session_ids)
            await session.delete(orm)
            await session.commit()
            return True
