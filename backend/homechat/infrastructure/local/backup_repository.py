"""
SQLite implementation of Backup repository.

Export dumps every table as camelCase rows. Import merges rows into the
current database in dependency order, remapping primary keys and skipping
rows whose natural key already exists.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from homechat.core.exceptions import InfrastructureError
from homechat.core.logger import setup_logger
from homechat.infrastructure.local.database import (
    CharacterGroupORM,
    CharacterORM,
    ChatMessageORM,
    ChatSessionORM,
    MessageVersionORM,
    PersonaORM,
    SettingORM,
    UserPromptORM,
    get_session_factory,
)
from homechat.infrastructure.local.queries import name_profile_clause
from homechat.interfaces.backup_repository import BACKUP_TABLES, IBackupRepository
from homechat.models.character import CharacterCreate
from homechat.models.enums import SettingKey
from homechat.models.persona import PersonaCreate
from homechat.utils.datetime_utils import parse_iso_datetime

logger = setup_logger(__name__)

_TABLE_MODELS = {
    "characterGroups": CharacterGroupORM,
    "personas": PersonaORM,
    "characters": CharacterORM,
    "userPrompts": UserPromptORM,
    "settings": SettingORM,
    "chatSessions": ChatSessionORM,
    "chatMessages": ChatMessageORM,
    "messageVersions": MessageVersionORM,
}

_DATETIME_COLUMNS = {"created_at", "updated_at"}


def _row_to_dict(orm) -> dict[str, Any]:
    row: dict[str, Any] = {}
    for column in orm.__table__.columns:
        value = getattr(orm, column.name)
        if isinstance(value, datetime):
            value = value.isoformat()
        row[to_camel(column.name)] = value
    return row


def _field(row: dict[str, Any], name: str, default: Any = None) -> Any:
    """Read a column from an exported row (camelCase, snake_case accepted)."""
    if to_camel(name) in row:
        return row[to_camel(name)]
    return row.get(name, default)


def _is_valid(schema, row: dict[str, Any]) -> bool:
    """Whether a row satisfies the create-time rules of its API model."""
    try:
        schema.model_validate(row)
    except SchemaValidationError:
        return False
    return True


def _new_orm(model, row: dict[str, Any], **overrides):
    """Build an ORM object from a row, without its primary key."""
    values: dict[str, Any] = {}
    for column in model.__table__.columns:
        if column.name == "id":
            continue
        value = _field(row, column.name)
        if value is None:
            continue
        if column.name in _DATETIME_COLUMNS:
            value = parse_iso_datetime(value)
            if value is None:
                continue
        values[column.name] = value
    values.update(overrides)
    return model(**values)


class SqliteBackupRepository(IBackupRepository):
    """SQLite implementation of backup export/import."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def export_tables(self) -> dict[str, list[dict[str, Any]]]:
        tables: dict[str, list[dict[str, Any]]] = {}
        async with self._session_factory() as session:
            for name in BACKUP_TABLES:
                model = _TABLE_MODELS[name]
                result = await session.execute(select(model).order_by(model.id))
                tables[name] = [_row_to_dict(orm) for orm in result.scalars().all()]
        return tables

    async def import_tables(
        self,
        tables: dict[str, list[dict[str, Any]]],
    ) -> dict[str, dict[str, int]]:
        imported = {name: 0 for name in BACKUP_TABLES}
        skipped = {name: 0 for name in BACKUP_TABLES}
        id_maps: dict[str, dict[Any, int]] = {name: {} for name in BACKUP_TABLES}
        # Sessions/messages created by this import; children of pre-existing
        # rows are skipped so a repeated import does not duplicate history.
        new_sessions: set[int] = set()
        new_messages: set[int] = set()

        async def first_id(session, query) -> Optional[int]:
            result = await session.execute(query.limit(1))
            return result.scalar_one_or_none()

        async def insert(session, table: str, row: dict[str, Any], orm) -> int:
            session.add(orm)
            await session.flush()
            id_maps[table][_field(row, "id")] = orm.id
            imported[table] += 1
            return orm.id

        async with self._session_factory() as session:
            try:
                for row in tables.get("characterGroups", []):
                    name = (_field(row, "name") or "").strip()
                    existing = await first_id(
                        session,
                        select(CharacterGroupORM.id).where(CharacterGroupORM.name == name),
                    )
                    if not name or existing is not None:
                        if existing is not None:
                            id_maps["characterGroups"][_field(row, "id")] = existing
                        skipped["characterGroups"] += 1
                        continue
                    await insert(session, "characterGroups", row, _new_orm(CharacterGroupORM, row))

                for table, model, schema in (
                    ("personas", PersonaORM, PersonaCreate),
                    ("characters", CharacterORM, CharacterCreate),
                ):
                    for row in tables.get(table, []):
                        name = _field(row, "name")
                        profile_name = _field(row, "profile_name") or None
                        existing = await first_id(
                            session,
                            select(model.id).where(name_profile_clause(model, name, profile_name)),
                        )
                        if not name or existing is not None:
                            if existing is not None:
                                id_maps[table][_field(row, "id")] = existing
                            skipped[table] += 1
                            continue
                        if not _is_valid(schema, row):
                            logger.warning(f"Skipping invalid {table} row {_field(row, 'id')}")
                            skipped[table] += 1
                            continue
                        overrides: dict[str, Any] = {"profile_name": profile_name}
                        if model is CharacterORM:
                            overrides["group_id"] = id_maps["characterGroups"].get(
                                _field(row, "group_id")
                            )
                        await insert(session, table, row, _new_orm(model, row, **overrides))

                for row in tables.get("userPrompts", []):
                    existing = await first_id(
                        session,
                        select(UserPromptORM.id).where(
                            UserPromptORM.title == _field(row, "title"),
                            UserPromptORM.body == _field(row, "body"),
                        ),
                    )
                    if existing is not None:
                        id_maps["userPrompts"][_field(row, "id")] = existing
                        skipped["userPrompts"] += 1
                        continue
                    await insert(session, "userPrompts", row, _new_orm(UserPromptORM, row))

                for row in tables.get("settings", []):
                    key = _field(row, "key")
                    existing = await first_id(
                        session, select(SettingORM.id).where(SettingORM.key == key)
                    )
                    if not key or key == SettingKey.AUTH_PASSWORD.value or existing is not None:
                        skipped["settings"] += 1
                        continue
                    value = _field(row, "value")
                    await insert(
                        session,
                        "settings",
                        row,
                        SettingORM(key=key, value="" if value is None else str(value)),
                    )

                for row in tables.get("chatSessions", []):
                    persona_id = id_maps["personas"].get(_field(row, "persona_id"))
                    character_id = id_maps["characters"].get(_field(row, "character_id"))
                    if persona_id is None or character_id is None:
                        skipped["chatSessions"] += 1
                        continue
                    created_at = parse_iso_datetime(_field(row, "created_at"))
                    existing = None
                    if created_at is not None:
                        existing = await first_id(
                            session,
                            select(ChatSessionORM.id).where(
                                ChatSessionORM.persona_id == persona_id,
                                ChatSessionORM.character_id == character_id,
                                ChatSessionORM.created_at == created_at,
                            ),
                        )
                    if existing is not None:
                        skipped["chatSessions"] += 1
                        continue
                    new_id = await insert(
                        session,
                        "chatSessions",
                        row,
                        _new_orm(
                            ChatSessionORM,
                            row,
                            persona_id=persona_id,
                            character_id=character_id,
                            last_summary=None,
                        ),
                    )
                    new_sessions.add(new_id)

                for row in tables.get("chatMessages", []):
                    session_id = id_maps["chatSessions"].get(_field(row, "session_id"))
                    if session_id not in new_sessions:
                        skipped["chatMessages"] += 1
                        continue
                    new_id = await insert(
                        session,
                        "chatMessages",
                        row,
                        _new_orm(ChatMessageORM, row, session_id=session_id),
                    )
                    new_messages.add(new_id)

                for row in tables.get("messageVersions", []):
                    message_id = id_maps["chatMessages"].get(_field(row, "message_id"))
                    if message_id not in new_messages:
                        skipped["messageVersions"] += 1
                        continue
                    await insert(
                        session,
                        "messageVersions",
                        row,
                        _new_orm(MessageVersionORM, row, message_id=message_id),
                    )

                # Summary watermarks point at message ids, remap them last.
                for row in tables.get("chatSessions", []):
                    new_id = id_maps["chatSessions"].get(_field(row, "id"))
                    old_watermark = _field(row, "last_summary")
                    if new_id in new_sessions and old_watermark is not None:
                        orm = await session.get(ChatSessionORM, new_id)
                        orm.last_summary = id_maps["chatMessages"].get(old_watermark)

                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(f"Backup import failed: {exc}")
                raise InfrastructureError("Failed to import database", details=str(exc)) from exc

        logger.info(f"Backup import finished: imported={imported} skipped={skipped}")
        return {"imported": imported, "skipped": skipped}
