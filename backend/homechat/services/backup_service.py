"""
Whole-database backup bundles.

A bundle is ``metadata`` plus one row list per table. As JSON it is a single
object; as ZIP it is ``metadata.json`` plus ``<table>.json`` per table.
"""

from __future__ import annotations

import io
import json
import zipfile
from dataclasses import dataclass
from typing import Any, Literal, Optional

from homechat import __version__
from homechat.core.config import Settings, get_settings
from homechat.core.exceptions import ValidationError
from homechat.core.logger import setup_logger
from homechat.interfaces.backup_repository import BACKUP_TABLES, IBackupRepository
from homechat.utils.datetime_utils import export_date_stamp, now_utc

logger = setup_logger(__name__)

BackupFormat = Literal["zip", "json"]

METADATA_FILE = "metadata.json"


@dataclass
class ExportFile:
    filename: str
    media_type: str
    content: bytes


class BackupService:
    """Builds and reads backup bundles."""

    def __init__(self, backup_repo: IBackupRepository, settings: Optional[Settings] = None):
        self._repo = backup_repo
        self._settings = settings or get_settings()

    async def export(self, fmt: BackupFormat = "zip") -> ExportFile:
        tables = await self._repo.export_tables()
        metadata = {
            "version": __version__,
            "exported_at": now_utc().isoformat(),
            "counts": {name: len(tables.get(name, [])) for name in BACKUP_TABLES},
        }
        stem = f"homechat-export-{export_date_stamp()}"
        logger.info(f"Exporting database as {fmt}: {metadata['counts']}")

        if fmt == "json":
            bundle = {"metadata": metadata, **tables}
            return ExportFile(
                filename=f"{stem}.json",
                media_type="application/json",
                content=json.dumps(bundle, ensure_ascii=False, indent=2).encode("utf-8"),
            )

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(METADATA_FILE, json.dumps(metadata, indent=2))
            for name in BACKUP_TABLES:
                archive.writestr(
                    f"{name}.json",
                    json.dumps(tables.get(name, []), ensure_ascii=False, indent=2),
                )
        return ExportFile(
            filename=f"{stem}.zip",
            media_type="application/zip",
            content=buffer.getvalue(),
        )

    def parse_bundle(self, filename: str, content: bytes) -> dict[str, list[dict[str, Any]]]:
        """
        Read the table rows out of an uploaded bundle.

        Raises:
            ValidationError: unsupported type, oversized or malformed file
        """
        if len(content) > self._settings.MAX_IMPORT_BYTES:
            raise ValidationError("File too large")

        name = (filename or "").lower()
        try:
            if name.endswith(".json"):
                bundle = json.loads(content.decode("utf-8"))
                if not isinstance(bundle, dict):
                    raise ValidationError("Invalid backup file")
                tables = {table: bundle.get(table) or [] for table in BACKUP_TABLES}
            elif name.endswith(".zip"):
                tables = {}
                with zipfile.ZipFile(io.BytesIO(content)) as archive:
                    members = set(archive.namelist())
                    for table in BACKUP_TABLES:
                        member = f"{table}.json"
                        tables[table] = (
                            json.loads(archive.read(member).decode("utf-8"))
                            if member in members
                            else []
                        )
            else:
                raise ValidationError("Unsupported file type. Upload a .zip or .json export")
        except (ValueError, zipfile.BadZipFile) as exc:
            raise ValidationError("Invalid backup file", details=str(exc)) from exc

        for table, rows in tables.items():
            if not isinstance(rows, list):
                raise ValidationError(f"Invalid backup file: {table} is not a list")
            if not all(isinstance(row, dict) for row in rows):
                raise ValidationError(f"Invalid backup file: {table} rows must be objects")
        return tables

    async def import_bundle(self, filename: str, content: bytes) -> dict[str, Any]:
        tables = self.parse_bundle(filename, content)
        results = await self._repo.import_tables(tables)
        logger.info(f"Imported backup {filename}: {results}")
        return {"success": True, "results": results}
