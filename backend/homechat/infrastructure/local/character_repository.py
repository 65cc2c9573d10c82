"""
SQLite implementation of Character repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from homechat.core.exceptions import DuplicateError, NotFoundError
from homechat.infrastructure.local.database import (
    CharacterGroupORM,
    CharacterORM,
    ChatSessionORM,
    get_session_factory,
)
from homechat.infrastructure.local.queries import delete_sessions_cascade, name_profile_clause
from homechat.interfaces.character_repository import ICharacterRepository
from homechat.models.character import (
    Character,
    CharacterCreate,
    CharacterGroupRef,
    CharacterUpdate,
)
from homechat.utils.datetime_utils import utcnow_naive

DUPLICATE_CHARACTER_MESSAGE = (
    "A character with this name and profile name combination already exists"
)


def character_orm_to_model(
    orm: CharacterORM,
    group: Optional[CharacterGroupORM] = None,
) -> Character:
    """Convert ORM object to Pydantic model."""
    return Character(
        id=orm.id,
        name=orm.name,
        profile_name=orm.profile_name,
        bio=orm.bio,
        scenario=orm.scenario or "",
        personality=orm.personality or "",
        first_message=orm.first_message,
        example_dialogue=orm.example_dialogue or "",
        group_id=orm.group_id,
        sort_order=orm.sort_order or 0,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
        group=(
            CharacterGroupRef(
                id=group.id,
                name=group.name,
                color=group.color,
                is_collapsed=group.is_collapsed,
                sort_order=group.sort_order,
            )
            if group
            else None
        ),
    )


class SqliteCharacterRepository(ICharacterRepository):
    """SQLite implementation of character repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def _ensure_unique(
        self,
        session,
        name: str,
        profile_name: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> None:
        query = select(CharacterORM.id).where(
            name_profile_clause(CharacterORM, name, profile_name)
        )
        if exclude_id is not None:
            query = query.where(CharacterORM.id != exclude_id)
        result = await session.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            raise DuplicateError(DUPLICATE_CHARACTER_MESSAGE)

    async def _load(self, session, character_id: int) -> Optional[Character]:
        result = await session.execute(
            select(CharacterORM, CharacterGroupORM)
            .outerjoin(CharacterGroupORM, CharacterORM.group_id == CharacterGroupORM.id)
            .where(CharacterORM.id == character_id)
        )
        row = result.first()
        if not row:
            return None
        return character_orm_to_model(row[0], row[1])

    async def list(self) -> list[Character]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CharacterORM, CharacterGroupORM)
                .outerjoin(CharacterGroupORM, CharacterORM.group_id == CharacterGroupORM.id)
                .order_by(CharacterORM.sort_order, CharacterORM.id)
            )
            return [character_orm_to_model(orm, group) for orm, group in result.all()]

    async def get(self, character_id: int) -> Optional[Character]:
        async with self._session_factory() as session:
            return await self._load(session, character_id)

    async def create(self, data: CharacterCreate) -> Character:
        async with self._session_factory() as session:
            await self._ensure_unique(session, data.name, data.profile_name)
            orm = CharacterORM(
                name=data.name,
                profile_name=data.profile_name,
                bio=data.bio,
                scenario=data.scenario,
                personality=data.personality,
                first_message=data.first_message,
                example_dialogue=data.example_dialogue,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateError(DUPLICATE_CHARACTER_MESSAGE) from exc
            await session.refresh(orm)
            return character_orm_to_model(orm)

    async def update(self, character_id: int, data: CharacterUpdate) -> Character:
        async with self._session_factory() as session:
            orm = await session.get(CharacterORM, character_id)
            if not orm:
                raise NotFoundError(f"Character {character_id} not found")
            await self._ensure_unique(
                session, data.name, data.profile_name, exclude_id=character_id
            )

            orm.name = data.name
            orm.profile_name = data.profile_name
            orm.bio = data.bio
            orm.scenario = data.scenario
            orm.personality = data.personality
            orm.first_message = data.first_message
            orm.example_dialogue = data.example_dialogue
            orm.updated_at = utcnow_naive()
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateError(DUPLICATE_CHARACTER_MESSAGE) from exc
            return await self._load(session, character_id)

    async def delete(self, character_id: int) -> bool:
        async with self._session_factory() as session:
            orm = await session.get(CharacterORM, character_id)
            if not orm:
                return False
            session_ids = select(ChatSessionORM.id).where(
                ChatSessionORM.character_id == character_id
            )
            await delete_sessions_cascade(session, session_ids)
            await session.delete(orm)
            await session.commit()
            return True

    async def move(
        self,
        character_id: int,
        group_id: Optional[int],
        sort_order: Optional[int] = None,
    ) -> Character:
        async with self._session_factory() as session:
            orm = await session.get(CharacterORM, character_id)
            if not orm:
                raise NotFoundError("Character not found")
            if group_id is not None and not await session.get(CharacterGroupORM, group_id):
                raise NotFoundError("Group not found")

            orm.group_id = group_id
            if sort_order is not None:
                orm.sort_order = sort_order
            orm.updated_at = utcnow_naive()
            await session.commit()
            return await self._load(session, character_id)
