"""
Variant reconciliation, client side.

Tracks, per assistant message, the original content plus N variants and a
pointer into them (0 = original, 1..N = variants). Local state is updated
optimistically and reconciled against the server whenever a generation is
stopped or a write fails, so the displayed content always matches something
the server knows about.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Literal, MutableMapping, Optional

from homechat.core.exceptions import BusinessLogicError, HomeChatError, NotFoundError
from homechat.core.logger import setup_logger
from homechat.interfaces.variant_backend import IVariantBackend
from homechat.models.chat_session import ChatMessage, MessageVersion
from homechat.models.enums import GenerationPhase

logger = setup_logger(__name__)

Direction = Literal["prev", "next"]


@dataclass
class VariantSlot:
    """A variant as the reconciler sees it; ``pending`` marks the placeholder."""

    content: str
    id: Optional[int] = None
    version: Optional[int] = None
    is_active: bool = False
    pending: bool = False

    @classmethod
    def from_version(cls, version: MessageVersion) -> "VariantSlot":
        return cls(
            content=version.content,
            id=version.id,
            version=version.version,
            is_active=version.is_active,
        )


@dataclass
class VariantState:
    """Reconciled variant state of one message."""

    message_id: int
    original_content: str
    variants: list[VariantSlot] = field(default_factory=list)
    index: int = 0
    phase: GenerationPhase = GenerationPhase.IDLE

    @property
    def total_options(self) -> int:
        return len(self.variants) + 1

    @property
    def current_variant(self) -> Optional[VariantSlot]:
        if self.index == 0 or self.index > len(self.variants):
            return None
        return self.variants[self.index - 1]

    @property
    def display_content(self) -> str:
        variant = self.current_variant
        return variant.content if variant else self.original_content

    @property
    def is_generating(self) -> bool:
        return self.phase in (GenerationPhase.REQUESTING, GenerationPhase.STREAMING)

    def snapshot(self) -> "VariantState":
        return replace(self, variants=[replace(slot) for slot in self.variants])

    def restore(self, snapshot: "VariantState") -> None:
        self.original_content = snapshot.original_content
        self.variants = [replace(slot) for slot in snapshot.variants]
        self.index = snapshot.index


class VariantReconciler:
    """Keeps per-message variant pointers in sync with the server."""

    def __init__(
        self,
        backend: IVariantBackend,
        session_id: int,
        selection_store: Optional[MutableMapping[str, int]] = None,
    ):
        """
        Args:
            backend: Server operations
            session_id: Session the tracked messages belong to
            selection_store: Remembers the chosen index per message across
                reloads (a plain dict when omitted)
        """
        self._backend = backend
        self._session_id = session_id
        self._selections = selection_store if selection_store is not None else {}
        self._states: dict[int, VariantState] = {}

    # ===========================================
    # State access
    # ===========================================

    def _selection_key(self, message_id: int) -> str:
        return f"variant-selection:{self._session_id}:{message_id}"

    def _remember_selection(self, state: VariantState) -> None:
        self._selections[self._selection_key(state.message_id)] = state.index

    def state(self, message_id: int) -> VariantState:
        try:
            return self._states[message_id]
        except KeyError:
            raise NotFoundError(f"Message {message_id} is not tracked") from None

    @property
    def states(self) -> dict[int, VariantState]:
        return dict(self._states)

    async def load(self, message: ChatMessage) -> VariantState:
        """
        Start tracking a message with its authoritative variants.

        The pointer comes from the saved selection when still in range,
        otherwise the active variant, otherwise the first variant.
        """
        variants = await self._backend.list_variants(message.id)
        state = VariantState(
            message_id=message.id,
            original_content=message.content,
            variants=[VariantSlot.from_version(variant) for variant in variants],
        )
        if variants:
            saved = self._selections.get(self._selection_key(message.id))
            if saved is not None and 0 <= saved <= len(variants):
                state.index = saved
            else:
                active = next(
                    (pos for pos, variant in enumerate(variants, start=1) if variant.is_active),
                    None,
                )
                state.index = active or 1
        self._states[message.id] = state
        return state

    async def resync(self, message_id: int) -> VariantState:
        """Replace local variants with the server's list, clamping the pointer."""
        state = self.state(message_id)
        variants = await self._backend.list_variants(message_id)
        state.variants = [VariantSlot.from_version(variant) for variant in variants]
        state.index = min(state.index, len(state.variants))
        return state

    # ===========================================
    # Navigation
    # ===========================================

    def navigate(self, message_id: int, direction: Direction) -> VariantState:
        """Move the pointer one step, wrapping around original and variants."""
        state = self.state(message_id)
        if not state.variants or state.is_generating:
            return state
        step = 1 if direction == "next" else -1
        state.index = (state.index + step) % state.total_options
        self._remember_selection(state)
        return state

    # ===========================================
    # Generation
    # ===========================================

    async def _discard_placeholder(self, state: VariantState) -> None:
        state.variants = [slot for slot in state.variants if not slot.pending]
        try:
            await self.resync(state.message_id)
        except HomeChatError as exc:
            logger.warning(f"Variant resync failed for message {state.message_id}: {exc}")
        # Last real variant, or the original when none survive.
        state.index = len(state.variants)
        state.phase = GenerationPhase.DISCARDED
        self._remember_selection(state)

    def _accept(self, state: VariantState, placeholder: VariantSlot, variant: MessageVersion) -> None:
        position = next(
            pos for pos, slot in enumerate(state.variants, start=1) if slot is placeholder
        )
        state.variants[position - 1] = VariantSlot.from_version(variant)
        state.index = position
        state.phase = GenerationPhase.SAVED
        self._remember_selection(state)

    async def generate(
        self,
        message_id: int,
        stream: bool = True,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> VariantState:
        """
        Generate one variant and point at it.

        A placeholder is shown while the request runs. If the generation is
        cancelled (``cancel_event`` set), rejected or fails, the placeholder
        is dropped and the pointer falls back to the last real variant.

        Raises:
            BusinessLogicError: a generation is already running for the message
        """
        state = self.state(message_id)
        if state.is_generating:
            raise BusinessLogicError("A variant is already being generated for this message")

        placeholder = VariantSlot(content="", pending=True)
        state.variants.append(placeholder)
        state.index = len(state.variants)
        state.phase = GenerationPhase.REQUESTING

        try:
            if not stream:
                variant = await self._backend.generate_variant(message_id)
                self._accept(state, placeholder, variant)
                return state

            saved_event: Optional[dict] = None
            events = self._backend.stream_variant(message_id)
            try:
                async for event in events:
                    if cancel_event is not None and cancel_event.is_set():
                        logger.info(f"Variant generation for message {message_id} stopped")
                        break
                    if not isinstance(event, dict):
                        continue
                    if "content" in event:
                        state.phase = GenerationPhase.STREAMING
                        placeholder.content += event["content"]
                    elif event.get("status") == "variant_saved":
                        saved_event = event
                    elif event.get("status") == "variant_not_saved":
                        logger.info(
                            f"Variant for message {message_id} not saved: {event.get('reason')}"
                        )
            finally:
                aclose = getattr(events, "aclose", None)
                if aclose is not None:
                    await aclose()

            if saved_event is None:
                await self._discard_placeholder(state)
                return state

            if saved_event.get("variant"):
                variant = MessageVersion.model_validate(saved_event["variant"])
                self._accept(state, placeholder, variant)
            else:
                await self._discard_placeholder(state)
                version = saved_event.get("variantId")
                for position, slot in enumerate(state.variants, start=1):
                    if slot.version == version:
                        state.index = position
                state.phase = GenerationPhase.SAVED
                self._remember_selection(state)
            return state
        except (Exception, asyncio.CancelledError):
            await self._discard_placeholder(state)
            raise

    # ===========================================
    # Edit / commit / cleanup
    # ===========================================

    async def edit(self, message_id: int, content: str) -> VariantState:
        """Edit whatever the pointer shows: the original or one variant."""
        state = self.state(message_id)
        if state.is_generating:
            raise BusinessLogicError("Cannot edit while a variant is being generated")
        snapshot = state.snapshot()
        content = content.strip()
        variant = state.current_variant
        try:
            if variant is None:
                state.original_content = content
                message = await self._backend.edit_message(message_id, content)
                state.original_content = message.content
            else:
                variant.content = content
                saved = await self._backend.edit_variant(message_id, variant.id, content)
                variant.content = saved.content
        except Exception:
            state.restore(snapshot)
            raise
        return state

    async def commit(self, message_id: int) -> VariantState:
        """Make the pointed variant canonical; no-op on the original."""
        state = self.state(message_id)
        variant = state.current_variant
        if variant is None:
            return state
        if variant.pending or variant.id is None:
            raise BusinessLogicError("Cannot commit a variant that has not been saved")

        committed = await self._backend.commit_variant(message_id, variant.id)
        state.original_content = committed.content
        for slot in state.variants:
            slot.is_active = slot.id == committed.id
        return state

    async def cleanup(self, message_id: int) -> int:
        """Delete every variant server-side and reset local state."""
        state = self.state(message_id)
        deleted = await self._backend.cleanup_variants(message_id)
        state.variants = []
        state.index = 0
        state.phase = GenerationPhase.IDLE
        self._selections.pop(self._selection_key(message_id), None)
        return deleted

    async def commit_and_cleanup_all(self) -> None:
        """
        Settle every tracked message before the conversation moves on.

        The displayed variant becomes canonical, then variants are removed.
        """
        for message_id, state in list(self._states.items()):
            if not state.variants or state.is_generating:
                continue
            await self.commit(message_id)
            await self.cleanup(message_id)
