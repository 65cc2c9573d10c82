"""
Backup endpoints: export the whole database, merge an export back in.
"""

from typing import Literal

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.responses import Response

from homechat.api.deps import BackupServiceDep, CurrentSession

router = APIRouter()


@router.get("/export")
async def export_database(
    _session: CurrentSession,
    backup_service: BackupServiceDep,
    format: Literal["zip", "json"] = Query("zip"),
):
    export = await backup_service.export(format)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.post("/import")
async def import_database(
    _session: CurrentSession,
    backup_service: BackupServiceDep,
    file: UploadFile = File(...),
):
    """Merge a .zip or .json export; existing rows are kept."""
    content = await file.read()
    return await backup_service.import_bundle(file.filename or "", content)
