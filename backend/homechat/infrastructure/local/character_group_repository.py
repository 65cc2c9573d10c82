"""
SQLite implementation of Character group repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from homechat.core.exceptions import DuplicateError, NotFoundError, ValidationError
from homechat.infrastructure.local.character_repository import character_orm_to_model
from homechat.infrastructure.local.database import (
    CharacterGroupORM,
    CharacterORM,
    get_session_factory,
)
from homechat.interfaces.character_group_repository import ICharacterGroupRepository
from homechat.models.character import (
    CharacterGroup,
    CharacterGroupCreate,
    CharacterGroupUpdate,
)
from homechat.utils.datetime_utils import utcnow_naive

DUPLICATE_GROUP_MESSAGE = "A group with this name already exists"


class SqliteCharacterGroupRepository(ICharacterGroupRepository):
    """SQLite implementation of character group repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(
        self,
        orm: CharacterGroupORM,
        members: list[CharacterORM],
    ) -> CharacterGroup:
        """Convert ORM object (and its members) to Pydantic model."""
        return CharacterGroup(
            id=orm.id,
            name=orm.name,
            color=orm.color,
            is_collapsed=orm.is_collapsed,
            sort_order=orm.sort_order,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
            characters=[character_orm_to_model(member) for member in members],
        )

    async def _members(self, session, group_ids: list[int]) -> dict[int, list[CharacterORM]]:
        members: dict[int, list[CharacterORM]] = {group_id: [] for group_id in group_ids}
        if not group_ids:
            return members
        result = await session.execute(
            select(CharacterORM)
            .where(CharacterORM.group_id.in_(group_ids))
            .order_by(CharacterORM.sort_order, CharacterORM.id)
        )
        for orm in result.scalars().all():
            members[orm.group_id].append(orm)
        return members

    async def _name_taken(self, session, name: str, exclude_id: Optional[int] = None) -> bool:
        query = select(CharacterGroupORM.id).where(CharacterGroupORM.name == name)
        if exclude_id is not None:
            query = query.where(CharacterGroupORM.id != exclude_id)
        result = await session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list(self) -> list[CharacterGroup]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CharacterGroupORM).order_by(
                    CharacterGroupORM.sort_order, CharacterGroupORM.id
                )
            )
            groups = result.scalars().all()
            members = await self._members(session, [group.id for group in groups])
            return [self._orm_to_model(group, members[group.id]) for group in groups]

    async def get(self, group_id: int) -> Optional[CharacterGroup]:
        async with self._session_factory() as session:
            orm = await session.get(CharacterGroupORM, group_id)
            if not orm:
                return None
            members = await self._members(session, [orm.id])
            return self._orm_to_model(orm, members[orm.id])

    async def create(self, data: CharacterGroupCreate) -> CharacterGroup:
        async with self._session_factory() as session:
            if await self._name_taken(session, data.name):
                raise DuplicateError(DUPLICATE_GROUP_MESSAGE)

            result = await session.execute(select(func.max(CharacterGroupORM.sort_order)))
            last_order = result.scalar()
            orm = CharacterGroupORM(
                name=data.name,
                color=data.color,
                sort_order=(last_order if last_order is not None else -1) + 1,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateError(DUPLICATE_GROUP_MESSAGE) from exc
            await session.refresh(orm)
            return self._orm_to_model(orm, [])

    async def update(self, group_id: int, data: CharacterGroupUpdate) -> CharacterGroup:
        async with self._session_factory() as session:
            orm = await session.get(CharacterGroupORM, group_id)
            if not orm:
                raise NotFoundError("Group not found")

            if data.name is not None:
                if not data.name:
                    raise ValidationError("Group name is required")
                if await self._name_taken(session, data.name, exclude_id=group_id):
                    raise DuplicateError(DUPLICATE_GROUP_MESSAGE)
                orm.name = data.name
            if data.color is not None:
                orm.color = data.color
            if data.is_collapsed is not None:
                orm.is_collapsed = data.is_collapsed
            if data.sort_order is not None:
                orm.sort_order = data.sort_order
            orm.updated_at = utcnow_naive()

            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateError(DUPLICATE_GROUP_MESSAGE) from exc
            members = await self._members(session, [orm.id])
            return self._orm_to_model(orm, members[orm.id])

    async def delete(self, group_id: int) -> bool:
        async with self._session_factory() as session:
            orm = await session.get(CharacterGroupORM, group_id)
            if not orm:
                return False
            await session.execute(
                update(CharacterORM)
                .where(CharacterORM.group_id == group_id)
                .values(group_id=None)
            )
            await session.delete(orm)
            await session.commit()
            return True
