"""
HomeChat - Main Application Entry Point

Self-hosted role-play chat against an OpenAI-compatible LLM.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from homechat import __version__
from homechat.api.importers import IMPORTER_PATHS
from homechat.core.config import get_settings
from homechat.core.exceptions import HomeChatError
from homechat.core.logger import logger

_MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short"}


class AppCORSMiddleware(CORSMiddleware):
    """CORS for the UI origins; importer routes answer any origin themselves."""

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"] in IMPORTER_PATHS:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    logger.info(f"Starting HomeChat in {settings.ENVIRONMENT} mode...")

    from homechat.infrastructure.local.database import init_db

    await init_db()

    yield

    logger.info("Shutting down HomeChat...")


def _validation_message(exc: RequestValidationError) -> str:
    missing: list[str] = []
    messages: list[str] = []
    for error in exc.errors():
        field = str(error["loc"][-1]) if error.get("loc") else ""
        if error.get("type") in _MISSING_ERROR_TYPES and field and field != "body":
            if field not in missing:
                missing.append(field)
            continue
        msg = str(error.get("msg", "Invalid request"))
        messages.append(msg.removeprefix("Value error, "))
    if missing:
        return f"Missing {' or '.join(missing)}"
    return messages[0] if messages else "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"error": message}``."""

    @app.exception_handler(HomeChatError)
    async def homechat_error_handler(request: Request, exc: HomeChatError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="HomeChat",
        description="Characters, personas and chat sessions backed by an OpenAI-compatible LLM",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        AppCORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    from homechat.api import (
        auth,
        character_groups,
        characters,
        chat,
        database,
        importers,
        messages,
        personas,
        sessions,
        settings as settings_api,
        user_prompts,
        variants,
    )

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(importers.router, prefix="/api", tags=["importers"])
    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
    app.include_router(personas.router, prefix="/api/personas", tags=["personas"])
    app.include_router(characters.router, prefix="/api/characters", tags=["characters"])
    app.include_router(
        character_groups.router, prefix="/api/character-groups", tags=["character_groups"]
    )
    app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
    app.include_router(messages.router, prefix="/api/messages", tags=["messages"])
    app.include_router(variants.router, prefix="/api/messages", tags=["variants"])
    app.include_router(settings_api.router, prefix="/api/settings", tags=["settings"])
    app.include_router(user_prompts.router, prefix="/api/user-prompts", tags=["user_prompts"])
    app.include_router(database.router, prefix="/api/database", tags=["database"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": __version__,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "homechat.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
