"""
Importer endpoints.

An external chat front-end posts its completion request here instead of to
an LLM. These routes are open (no site token) and allow any origin, since
the caller is another website.
"""

from typing import Any, Callable

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from homechat.core.logger import setup_logger
from homechat.services.import_service import (
    ImportParseError,
    ImportSlot,
    character_import_slot,
    chat_import_slot,
    parse_character_import,
    parse_chat_import,
)

router = APIRouter()
logger = setup_logger(__name__)

IMPORTER_PATHS = frozenset({"/api/character/importer", "/api/chat/importer"})

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Requested-With, Accept, Origin",
    "Access-Control-Max-Age": "86400",
}


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


async def _handle_import(
    request: Request,
    slot: ImportSlot,
    parse: Callable[[Any], tuple[dict[str, Any], list[str]]],
    label: str,
) -> JSONResponse:
    try:
        data, logs = parse(await _read_body(request))
    except ImportParseError as exc:
        logger.warning(f"{label.capitalize()} import failed: {exc.message}")
        await slot.store_failure(exc.logs)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": f"Failed to parse {label} data",
                "details": exc.message,
                "logs": exc.logs,
            },
            headers=CORS_HEADERS,
        )

    await slot.store(data, logs)
    return JSONResponse(
        content={
            "success": True,
            "message": f"{label.capitalize()} data received and parsed successfully",
            slot.kind: data,
        },
        headers=CORS_HEADERS,
    )


@router.options("/character/importer")
@router.options("/chat/importer")
async def importer_preflight():
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/character/importer")
async def import_character(request: Request):
    return await _handle_import(request, character_import_slot, parse_character_import, "character")


@router.get("/character/importer")
async def poll_character_import():
    """Return (and clear) the latest parsed character."""
    return JSONResponse(content=await character_import_slot.take(), headers=CORS_HEADERS)


@router.post("/chat/importer")
async def import_chat(request: Request):
    return await _handle_import(request, chat_import_slot, parse_chat_import, "chat")


@router.get("/chat/importer")
async def poll_chat_import():
    """Return (and clear) the latest parsed chat."""
    return JSONResponse(content=await chat_import_slot.take(), headers=CORS_HEADERS)
