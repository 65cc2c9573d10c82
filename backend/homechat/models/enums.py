"""
Enum definitions for the application.
"""

from enum import Enum


class MessageRole(str, Enum):
    """Author of a stored chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class SettingKey(str, Enum):
    """Well-known keys of the settings table."""

    AUTH_PASSWORD = "authPassword"
    API_KEY = "apiKey"
    SUMMARY_PROMPT = "summaryPrompt"
    DEFAULT_PROMPT_ID = "defaultPromptId"
    STREAM = "stream"
    TEMPERATURE = "temperature"
    MAX_TOKENS = "maxTokens"
    DEV_MODE = "devMode"


class GenerationPhase(str, Enum):
    """Lifecycle of one variant generation as seen by the reconciler."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    SAVED = "saved"
    DISCARDED = "discarded"


class VariantNotSavedReason(str, Enum):
    """Why a streamed variant was not persisted."""

    CLIENT_DISCONNECTED = "client_disconnected"
    RACE_CONDITION = "race_condition"
    NO_CONTENT = "no_content"
    DATABASE_ERROR = "database_error"
    UPSTREAM_ERROR = "upstream_error"
