"""
Message variants API endpoints.

Variants are alternate completions of an assistant message. Streamed
generations are only persisted when the client is still connected at the
end; a stopped generation leaves no row behind.
"""

from fastapi import APIRouter, HTTPException, Request, status

from homechat.api.deps import CurrentSession, VariantServiceDep
from homechat.models.chat_session import MessageVersion
from homechat.models.variant import (
    ROLLBACK_STOPPED_VARIANT,
    VariantCleanupResult,
    VariantGenerateRequest,
    VariantPatchRequest,
    VariantRollbackResult,
    VariantUpdateRequest,
)
from homechat.services.sse import sse_response

router = APIRouter()


@router.get("/{message_id}/variants", response_model=list[MessageVersion])
async def list_variants(message_id: int, _session: CurrentSession, service: VariantServiceDep):
    return await service.list_variants(message_id)


@router.get("/{message_id}/variants/latest", response_model=MessageVersion)
async def latest_variant(message_id: int, _session: CurrentSession, service: VariantServiceDep):
    return await service.latest_variant(message_id)


@router.post("/{message_id}/variants", status_code=status.HTTP_201_CREATED)
async def generate_variant(
    message_id: int,
    request: Request,
    _session: CurrentSession,
    service: VariantServiceDep,
    data: VariantGenerateRequest | None = None,
):
    """
    Generate a new variant.

    With ``stream`` the response is SSE; validation, version allocation and
    the API key check all happen before the stream opens so they surface as
    plain JSON errors.
    """
    if data is None or not data.stream:
        variant = await service.generate_variant(message_id)
        return variant.model_dump(mode="json", by_alias=True)

    message, version, payload, api_key = await service.prepare_generation(
        message_id, stream=True
    )
    return sse_response(
        service.stream_variant(
            message, version, payload, api_key, is_disconnected=request.is_disconnected
        )
    )


@router.put("/{message_id}/variants", response_model=MessageVersion)
async def update_variant(
    message_id: int,
    data: VariantUpdateRequest,
    _session: CurrentSession,
    service: VariantServiceDep,
):
    """Edit a variant's content, or commit it when no content is sent."""
    return await service.update_variant(message_id, data.variant_id, data.content)


@router.patch("/{message_id}/variants", response_model=VariantRollbackResult)
async def patch_variants(
    message_id: int,
    data: VariantPatchRequest,
    _session: CurrentSession,
    service: VariantServiceDep,
):
    if data.action != ROLLBACK_STOPPED_VARIANT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid action",
        )
    variants = await service.rollback_stopped_variant(message_id)
    return VariantRollbackResult(
        variants=variants,
        message="Stopped variant was not saved; returning current variants",
    )


@router.delete("/{message_id}/variants", response_model=VariantCleanupResult)
async def cleanup_variants(
    message_id: int,
    _session: CurrentSession,
    service: VariantServiceDep,
):
    """Delete every variant of a message (after the user moved on)."""
    return VariantCleanupResult(deleted=await service.cleanup_variants(message_id))
