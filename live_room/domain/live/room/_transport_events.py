"""Translation of transport events into room state changes."""

from __future__ import annotations

import asyncio

from loguru import logger

from live_room.schemas import RoomStep
from live_room.services.integrations.devices import DeviceKind
from live_room.services.integrations.transport import (
    ConnectionState,
    ConnectionStateChanged,
    DataReceived,
    ParticipantPermissions,
    PermissionsChanged,
    TransportEvent,
)
from live_room.utils.app_errors import MalformedPayload, PermissionDenied

from ._base import RoomStateOwner


class TransportEventHandlers(RoomStateOwner):
    """Consumes the transport event stream in order and applies each event."""

    def _init_event_handlers(self) -> None:
        self._sink_task: asyncio.Task[None] | None = None
        self._helper_tasks: set[asyncio.Task[None]] = set()

        # Grant and revoke bodies run one at a time, in emission order
        self._permission_lock = asyncio.Lock()
        self._wants_publish = False

    def _spawn(self, coro, name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=name)
        self._helper_tasks.add(task)
        task.add_done_callback(self._helper_tasks.discard)
        return task

    async def _run_event_sink(self) -> None:
        logger.debug("Transport event sink started")
        async for event in self._transport.events():
            try:
                await self.handle_transport_event(event)
            except Exception as exc:
                # One bad event must not stop the sink
                logger.exception(f"Failed to handle transport event {event!r}: {exc}")

    async def handle_transport_event(self, event: TransportEvent) -> None:
        if isinstance(event, DataReceived):
            self._on_data_received(event)
        elif isinstance(event, ConnectionStateChanged):
            await self._on_connection_state_changed(event)
        elif isinstance(event, PermissionsChanged):
            self._on_permissions_changed(event.permissions)
        else:
            logger.debug(f"Ignoring unknown transport event: {event!r}")

    # ==================== DATA ====================

    def _on_data_received(self, event: DataReceived) -> None:
        try:
            entry = self._codec.decode(event.payload, event.topic, event.sender_identity)
        except MalformedPayload as exc:
            logger.debug(
                f"Dropped malformed message topic={event.topic} "
                f"sender={event.sender_identity}: {exc.errmesg}"
            )
            return

        if entry is None:
            logger.debug(f"Ignoring data on unknown topic: {event.topic}")
            return

        self._append_event(entry)

    # ==================== CONNECTION ====================

    async def _on_connection_state_changed(self, event: ConnectionStateChanged) -> None:
        logger.debug(f"Connection state: {event.old} -> {event.new}")
        if event.new != ConnectionState.DISCONNECTED:
            return

        was_streaming = (
            event.old == ConnectionState.CONNECTED and self._state.step == RoomStep.STREAM
        )

        # Runs on every disconnect so cleanup stays idempotent
        self._connection_generation += 1
        self._api.reset()
        await self._drop_camera_publication()

        if was_streaming:
            logger.info("Disconnected while streaming")
            self._reset_session_state()
            await self.set_step(RoomStep.WELCOME)
        else:
            self._update(events=(), message="")

    # ==================== PERMISSIONS ====================

    def _on_permissions_changed(self, permissions: ParticipantPermissions) -> None:
        if not permissions.is_local:
            return

        self._wants_publish = permissions.can_publish
        if permissions.can_publish:
            self._spawn(self._on_publish_granted(), name="room-publish-granted")
        else:
            self._spawn(self._on_publish_revoked(), name="room-publish-revoked")

    async def _on_publish_granted(self) -> None:
        async with self._permission_lock:
            try:
                if not await self._devices.ensure_access([DeviceKind.VIDEO, DeviceKind.AUDIO]):
                    raise PermissionDenied(errmesg="Camera and microphone access are required")
                if not self._wants_publish:
                    logger.debug("Publish permission revoked during device check, not publishing")
                    return
                await self._publish_camera()
                await self._set_microphone(True)
            except Exception as exc:
                self._surface("publish after permission grant", exc)

    async def _on_publish_revoked(self) -> None:
        async with self._permission_lock:
            try:
                await self._unpublish_camera()
            except Exception as exc:
                self._surface("unpublish after permission revoke", exc)
            # The microphone goes off even when the camera could not be unpublished
            try:
                await self._set_microphone(False)
            except Exception as exc:
                self._surface("disable microphone after permission revoke", exc)
