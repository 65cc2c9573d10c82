"""
SQLite implementation of Setting repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from homechat.infrastructure.local.database import SettingORM, get_session_factory
from homechat.interfaces.setting_repository import ISettingRepository


class SqliteSettingRepository(ISettingRepository):
    """SQLite implementation of the key/value settings store."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def _upsert(self, session, key: str, value: str) -> None:
        result = await session.execute(select(SettingORM).where(SettingORM.key == key))
        orm = result.scalar_one_or_none()
        if orm:
            orm.value = value
        else:
            session.add(SettingORM(key=key, value=value))

    async def get_all(self) -> dict[str, str]:
        async with self._session_factory() as session:
            result = await session.execute(select(SettingORM).order_by(SettingORM.id))
            return {orm.key: orm.value for orm in result.scalars().all()}

    async def get(self, key: str) -> Optional[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SettingORM.value).where(SettingORM.key == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            await self._upsert(session, key, value)
            await session.commit()

    async def set_many(self, values: dict[str, str]) -> dict[str, str]:
        async with self._session_factory() as session:
            for key, value in values.items():
                await self._upsert(session, key, value)
            await session.commit()
        return await self.get_all()
