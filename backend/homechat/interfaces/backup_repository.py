"""
Backup repository interface.

Works on plain table rows (dicts with camelCase keys, ISO timestamps) so the
bundle format stays independent of the ORM.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

BACKUP_TABLES = (
    "characterGroups",
    "personas",
    "characters",
    "userPrompts",
    "settings",
    "chatSessions",
    "chatMessages",
    "messageVersions",
)


class IBackupRepository(ABC):
    """Abstract interface for whole-database export and import."""

    @abstractmethod
    async def export_tables(self) -> dict[str, list[dict[str, Any]]]:
        """
        Dump every table.

        Returns:
            Mapping of table name (see BACKUP_TABLES) to rows
        """
        pass

    @abstractmethod
    async def import_tables(
        self,
        tables: dict[str, list[dict[str, Any]]],
    ) -> dict[str, dict[str, int]]:
        """
        Merge exported rows into the database, keeping existing data.

        Rows whose natural key already exists are skipped; ids are remapped
        so imported children point at the right parents.

        Returns:
            ``{"imported": {table: n}, "skipped": {table: n}}``
        """
        pass
