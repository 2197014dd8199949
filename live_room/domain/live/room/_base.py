"""State owner shared by the room controller and its transport event handlers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from loguru import logger

from live_room.schemas import ChatEntry, RoomMetadata, RoomSnapshot, RoomStep
from live_room.services.integrations.devices import DeviceAccess
from live_room.services.integrations.transport import TransportEngine
from live_room.services.stream_api.stream_api_client import StreamApi
from live_room.shared.log import format_error
from live_room.utils.app_errors import AppError, AppErrorCode, PublishError

from .message_codec import MessageCodec
from .room_step_machine import RoomStepMachine

RoomListener = Callable[[RoomSnapshot], None]


class RoomStateOwner:
    """Owns the room snapshot and every mutation of it.

    Mutations are synchronous blocks with no await inside, which makes each of
    them atomic with respect to other tasks on the event loop.
    """

    def __init__(
        self,
        api: StreamApi,
        transport: TransportEngine,
        devices: DeviceAccess,
        codec: MessageCodec,
        initial: RoomSnapshot,
    ) -> None:
        self._api = api
        self._transport = transport
        self._devices = devices
        self._codec = codec
        self._state = initial
        self._listeners: list[RoomListener] = []

        # At most one camera publication exists; guarded by the lock
        self._camera_publication: Any = None
        self._publication_lock = asyncio.Lock()

        # Bumped on every move to DISCONNECTED
        self._connection_generation = 0

        self.last_error: AppError | None = None

    # ==================== OBSERVATION ====================

    @property
    def snapshot(self) -> RoomSnapshot:
        return self._state

    @property
    def step(self) -> RoomStep:
        return self._state.step

    @property
    def camera_publication(self) -> Any:
        return self._camera_publication

    def subscribe(self, listener: RoomListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as exc:
                logger.exception(f"Room listener failed: {exc}")

    # ==================== COMPUTED ====================

    @property
    def can_go_live(self) -> bool:
        return bool(self._state.identity.strip())

    @property
    def can_join_live(self) -> bool:
        return bool(self._state.identity.strip()) and bool(self._state.room_name.strip())

    @property
    def can_send_message(self) -> bool:
        return bool(self._state.message.strip())

    @property
    def room_metadata(self) -> RoomMetadata | None:
        return RoomMetadata.parse_metadata(self._transport.room_metadata)

    @property
    def is_stream_owner(self) -> bool:
        metadata = self.room_metadata
        local_identity = self._transport.local_identity
        return metadata is not None and local_identity is not None and (
            metadata.creator_identity == local_identity
        )

    @property
    def is_stream_host(self) -> bool:
        return self._transport.local_can_publish

    # ==================== STEPS ====================

    async def set_step(self, step: RoomStep) -> None:
        """Move to `step` and run its entry side effects.

        Raises AppError if the transition is not allowed.
        """
        current = self._state.step
        if not RoomStepMachine.can_transition(current, step):
            raise AppError(
                AppErrorCode.E_INVALID_STEP_TRANSITION,
                f"Cannot move from {current} to {step}",
            )

        if current != step:
            logger.info(f"Room step: {current} -> {step}")
            self._update(step=step)

        if step == RoomStep.STREAMER_PREPARE:
            await self._start_preview()
        elif step == RoomStep.WELCOME:
            await self._stop_preview()

    async def _start_preview(self) -> None:
        # Best-effort: a failed preview never blocks the step change
        try:
            await self._devices.start_preview()
        except Exception as exc:
            logger.warning(f"Failed to start camera preview: {exc!r}")

    async def _stop_preview(self) -> None:
        try:
            await self._devices.stop_preview()
        except Exception as exc:
            logger.warning(f"Failed to stop camera preview: {exc!r}")

    def _reset_session_state(self) -> None:
        self._update(
            events=(),
            message="",
            connect_busy=False,
            end_stream_busy=False,
            invite_busy=frozenset(),
        )

    # ==================== EVENTS ====================

    def _append_event(self, entry: ChatEntry) -> None:
        self._update(events=self._state.events + (entry,))

    # ==================== BUSY FLAGS ====================

    def _mark_invite_busy(self, identity: str) -> None:
        self._update(invite_busy=self._state.invite_busy | {identity})

    def _clear_invite_busy(self, identity: str) -> None:
        if identity in self._state.invite_busy:
            self._update(invite_busy=self._state.invite_busy - {identity})

    # ==================== LOCAL MEDIA ====================

    async def _publish_camera(self) -> Any:
        """Publish the camera track unless a publication already exists."""
        async with self._publication_lock:
            if self._camera_publication is not None:
                logger.debug("Camera already published, skipping")
                return self._camera_publication

            try:
                publication = await self._transport.publish_track(self._devices.camera_track)
            except PublishError:
                raise
            except Exception as exc:
                raise PublishError(errmesg=f"Failed to publish camera: {exc}") from exc

            self._camera_publication = publication
            logger.info("Camera published")
            return publication

    async def _unpublish_camera(self) -> None:
        async with self._publication_lock:
            publication = self._camera_publication
            if publication is None:
                return
            try:
                await self._transport.unpublish_track(publication)
            except PublishError:
                raise
            except Exception as exc:
                raise PublishError(errmesg=f"Failed to unpublish camera: {exc}") from exc
            self._camera_publication = None
            logger.info("Camera unpublished")

    async def _drop_camera_publication(self) -> None:
        """Forget the camera handle without unpublishing; its connection is gone."""
        async with self._publication_lock:
            self._camera_publication = None

    async def _publish_data(self, payload: bytes, topic: str) -> None:
        try:
            await self._transport.publish_data(payload, topic)
        except PublishError:
            raise
        except Exception as exc:
            raise PublishError(errmesg=f"Failed to publish data on topic={topic}: {exc}") from exc

    async def _set_microphone(self, enabled: bool) -> None:
        try:
            await self._transport.set_microphone(enabled)
        except PublishError:
            raise
        except Exception as exc:
            raise PublishError(errmesg=f"Failed to set microphone enabled={enabled}: {exc}") from exc

    # ==================== ERRORS ====================

    def _surface(self, action: str, exc: Exception) -> AppError:
        """Record a failed action on the side channel. Never raises."""
        if isinstance(exc, AppError):
            error = exc
            logger.warning(
                f"{action} failed: {error.errcode} {error.erresid} msg={error.errmesg} "
                f"caller={error.caller_info}"
            )
        else:
            error = AppError(AppErrorCode.E_INTERNAL_ERROR, f"{action} failed: {exc}")
            logger.error(f"{action} failed unexpectedly {error.erresid}\n{format_error(exc)}")

        self.last_error = error
        self._update(last_error=error.errcode)
        return error

    def _begin_action(self) -> None:
        if self._state.last_error is not None:
            self._update(last_error=None)
        self.last_error = None
