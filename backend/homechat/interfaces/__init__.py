"""Abstract interfaces for infrastructure abstraction."""

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
from homechat.interfaces.variant_backend import IVariantBackend

__all__ = [
    "IAuthProvider",
    "IBackupRepository",
    "ICharacterGroupRepository",
    "ICharacterRepository",
    "IChatSessionRepository",
    "ILLMProvider",
    "IMessageVersionRepository",
    "IPersonaRepository",
    "ISettingRepository",
    "IUserPromptRepository",
    "IVariantBackend",
]
