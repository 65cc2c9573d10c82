"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the SQLite
repositories, the LLM provider and the services built on them.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from homechat.core.config import get_settings
from homechat.core.exceptions import AuthenticationError
from homechat.interfaces.auth_provider import IAuthProvider
from homechat.interfaces.backup_repository import IBackupRepository
from homechat.interfaces.character_group_repository import ICharacterGroupRepository
from homechat.interfaces.character_repository import ICharacterRepository
from homechat.interfaces.chat_session_repository import IChatSessionRepository
from homechat.interfaces.llm_provider import ILLMProvider
from homechat.interfaces.message_version_repository import IMessageVersionRepository
from homechat.interfaces.persona_repository import IPersonaRepository
from homechat.interfaces.setting_repository import ISettingRepository
from homechat.interfaces.user_prompt_repository import IUserPromptRepository
from homechat.models.auth import SiteSession
from homechat.services.backup_service import BackupService
from homechat.services.chat_service import ChatService
from homechat.services.summary_service import SummaryService
from homechat.services.variant_service import VariantService


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_persona_repository() -> IPersonaRepository:
    """Get persona repository instance."""
    from homechat.infrastructure.local.persona_repository import SqlitePersonaRepository
    return SqlitePersonaRepository()


@lru_cache()
def get_character_repository() -> ICharacterRepository:
    """Get character repository instance."""
    from homechat.infrastructure.local.character_repository import SqliteCharacterRepository
    return SqliteCharacterRepository()


@lru_cache()
def get_character_group_repository() -> ICharacterGroupRepository:
    """Get character group repository instance."""
    from homechat.infrastructure.local.character_group_repository import (
        SqliteCharacterGroupRepository,
    )
    return SqliteCharacterGroupRepository()


@lru_cache()
def get_chat_session_repository() -> IChatSessionRepository:
    """Get chat session repository instance."""
    from homechat.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
    return SqliteChatSessionRepository()


@lru_cache()
def get_message_version_repository() -> IMessageVersionRepository:
    """Get message version repository instance."""
    from homechat.infrastructure.local.message_version_repository import (
        SqliteMessageVersionRepository,
    )
    return SqliteMessageVersionRepository()


@lru_cache()
def get_user_prompt_repository() -> IUserPromptRepository:
    """Get user prompt repository instance."""
    from homechat.infrastructure.local.user_prompt_repository import SqliteUserPromptRepository
    return SqliteUserPromptRepository()


@lru_cache()
def get_setting_repository() -> ISettingRepository:
    """Get setting repository instance."""
    from homechat.infrastructure.local.setting_repository import SqliteSettingRepository
    return SqliteSettingRepository()


@lru_cache()
def get_backup_repository() -> IBackupRepository:
    """Get backup repository instance."""
    from homechat.infrastructure.local.backup_repository import SqliteBackupRepository
    return SqliteBackupRepository()


# ===========================================
# Provider Dependencies
# ===========================================


@lru_cache()
def get_llm_provider() -> ILLMProvider:
    """Get the OpenAI-compatible LLM provider (DeepSeek by default)."""
    from homechat.infrastructure.local.openai_compatible_provider import (
        OpenAICompatibleProvider,
    )
    settings = get_settings()
    return OpenAICompatibleProvider(
        model_name=settings.LLM_MODEL,
        api_url=settings.LLM_API_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    from homechat.infrastructure.auth.local_auth import SitePasswordAuthProvider
    return SitePasswordAuthProvider(get_settings())


# ===========================================
# Authentication
# ===========================================


async def get_current_session(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> SiteSession:
    """
    Require a valid site token.

    With AUTH_ENABLED off every request is treated as authenticated.
    """
    if not auth_provider.is_enabled():
        return SiteSession(authenticated=True)

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
        )

    # Extract token from "Bearer <token>"
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    try:
        return await auth_provider.verify_token(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        )


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

PersonaRepo = Annotated[IPersonaRepository, Depends(get_persona_repository)]
CharacterRepo = Annotated[ICharacterRepository, Depends(get_character_repository)]
CharacterGroupRepo = Annotated[ICharacterGroupRepository, Depends(get_character_group_repository)]
ChatRepo = Annotated[IChatSessionRepository, Depends(get_chat_session_repository)]
VersionRepo = Annotated[IMessageVersionRepository, Depends(get_message_version_repository)]
UserPromptRepo = Annotated[IUserPromptRepository, Depends(get_user_prompt_repository)]
SettingRepo = Annotated[ISettingRepository, Depends(get_setting_repository)]
BackupRepo = Annotated[IBackupRepository, Depends(get_backup_repository)]
LLMProvider = Annotated[ILLMProvider, Depends(get_llm_provider)]
AuthProvider = Annotated[IAuthProvider, Depends(get_auth_provider)]
CurrentSession = Annotated[SiteSession, Depends(get_current_session)]


# ===========================================
# Service Dependencies
# ===========================================


def get_chat_service(
    chat_repo: ChatRepo,
    persona_repo: PersonaRepo,
    character_repo: CharacterRepo,
    prompt_repo: UserPromptRepo,
    setting_repo: SettingRepo,
    llm_provider: LLMProvider,
) -> ChatService:
    return ChatService(
        chat_repo, persona_repo, character_repo, prompt_repo, setting_repo, llm_provider
    )


def get_variant_service(
    chat_repo: ChatRepo,
    version_repo: VersionRepo,
    persona_repo: PersonaRepo,
    character_repo: CharacterRepo,
    prompt_repo: UserPromptRepo,
    setting_repo: SettingRepo,
    llm_provider: LLMProvider,
) -> VariantService:
    return VariantService(
        chat_repo,
        version_repo,
        persona_repo,
        character_repo,
        prompt_repo,
        setting_repo,
        llm_provider,
    )


def get_summary_service(
    chat_repo: ChatRepo,
    persona_repo: PersonaRepo,
    character_repo: CharacterRepo,
    setting_repo: SettingRepo,
    llm_provider: LLMProvider,
) -> SummaryService:
    return SummaryService(chat_repo, persona_repo, character_repo, setting_repo, llm_provider)


def get_backup_service(backup_repo: BackupRepo) -> BackupService:
    return BackupService(backup_repo)


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
VariantServiceDep = Annotated[VariantService, Depends(get_variant_service)]
SummaryServiceDep = Annotated[SummaryService, Depends(get_summary_service)]
BackupServiceDep = Annotated[BackupService, Depends(get_backup_service)]
