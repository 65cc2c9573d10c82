"""
Custom exceptions for the application.

Each error carries the HTTP status the API layer answers with, see
``homechat.main.create_app`` for the handler.
"""

from typing import Any, Optional


class HomeChatError(Exception):
    """Base exception for homechat."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(HomeChatError):
    """Resource not found."""

    status_code = 404


class DuplicateError(HomeChatError):
    """Duplicate resource detected."""

    status_code = 400


class ValidationError(HomeChatError):
    """Validation error."""

    status_code = 400


class ConflictError(HomeChatError):
    """Concurrent write lost against a uniqueness constraint."""

    status_code = 409


class LLMError(HomeChatError):
    """LLM-related error."""

    status_code = 502

    def __init__(
        self,
        message: str,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, details)
        if status_code:
            self.status_code = status_code


class AuthenticationError(HomeChatError):
    """Authentication failed."""

    status_code = 401


class InfrastructureError(HomeChatError):
    """Infrastructure-related error (DB, external services, etc.)."""

    status_code = 500


class BusinessLogicError(HomeChatError):
    """Business logic constraint violation."""

    status_code = 400
