"""
Request and response bodies of the variant endpoints.
"""

from typing import Optional

from homechat.models.base import CamelModel
from homechat.models.chat_session import MessageVersion

ROLLBACK_STOPPED_VARIANT = "rollback_stopped_variant"


class VariantGenerateRequest(CamelModel):
    stream: bool = False


class VariantUpdateRequest(CamelModel):
    """Edit a variant when ``content`` is given, otherwise commit it."""

    variant_id: Optional[int] = None
    content: Optional[str] = None


class VariantPatchRequest(CamelModel):
    action: Optional[str] = None


class VariantCleanupResult(CamelModel):
    deleted: int


class VariantRollbackResult(CamelModel):
    variants: list[MessageVersion]
    message: str
    action: str = "rollback_completed"
