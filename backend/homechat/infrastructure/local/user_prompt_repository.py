"""
SQLite implementation of User prompt repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from homechat.core.exceptions import NotFoundError
from homechat.infrastructure.local.database import UserPromptORM, get_session_factory
from homechat.interfaces.user_prompt_repository import IUserPromptRepository
from homechat.models.user_prompt import UserPrompt, UserPromptCreate, UserPromptUpdate
from homechat.utils.datetime_utils import utcnow_naive


class SqliteUserPromptRepository(IUserPromptRepository):
    """SQLite implementation of user prompt repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: UserPromptORM) -> UserPrompt:
        return UserPrompt(
            id=orm.id,
            title=orm.title,
            body=orm.body,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def list(self) -> list[UserPrompt]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserPromptORM).order_by(
                    UserPromptORM.created_at.desc(), UserPromptORM.id.desc()
                )
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def get(self, prompt_id: int) -> Optional[UserPrompt]:
        async with self._session_factory() as session:
            orm = await session.get(UserPromptORM, prompt_id)
            return self._orm_to_model(orm) if orm else None

    async def create(self, data: UserPromptCreate) -> UserPrompt:
        async with self._session_factory() as session:
            orm = UserPromptORM(title=data.title, body=data.body)
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def update(self, prompt_id: int, data: UserPromptUpdate) -> UserPrompt:
        async with self._session_factory() as session:
            orm = await session.get(UserPromptORM, prompt_id)
            if not orm:
                raise NotFoundError("Prompt not found")
            for field, value in data.model_dump(exclude_unset=True).items():
                if value is not None:
                    setattr(orm, field, value)
            orm.updated_at = utcnow_naive()
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, prompt_id: int) -> bool:
        async with self._session_factory() as session:
            orm = await session.get(UserPromptORM, prompt_id)
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True
