"""Room controller: lifecycle of one livestream room session at a time.

The presentation layer observes `snapshot` (or `subscribe`) and calls the
action methods below. Actions never raise on remote or transport failures;
they clear their busy flag, leave the step unchanged and record the error in
`last_error`.

Usage:
    controller = RoomController(api=StreamApiClient(), transport=LivekitTransport(), devices=devices)
    async with controller:
        controller.set_identity("ana")
        await controller.go_live()
        await controller.start_as_host()
"""

from __future__ import annotations

import asyncio
import contextlib
import time

from loguru import logger

from live_room.app_config import get_app_environ_config
from live_room.schemas import (
    ChatEntry,
    CreateStreamRequest,
    JoinStreamRequest,
    RoomMetadata,
    RoomSnapshot,
    RoomStep,
)
from live_room.services.integrations.devices import DeviceAccess, DeviceKind
from live_room.services.integrations.transport import TransportEngine
from live_room.services.stream_api.stream_api_client import StreamApi
from live_room.utils.app_errors import (
    AppError,
    InvalidInput,
    PermissionDenied,
    TransportConnectError,
)

from ._transport_events import TransportEventHandlers
from .message_codec import MessageCodec


def _now_ms() -> int:
    return int(time.time() * 1000)


class RoomController(TransportEventHandlers):
    """Single owner of the room session state."""

    def __init__(
        self,
        api: StreamApi,
        transport: TransportEngine,
        devices: DeviceAccess,
        codec: MessageCodec | None = None,
    ) -> None:
        cfg = get_app_environ_config()
        super().__init__(
            api=api,
            transport=transport,
            devices=devices,
            codec=codec or MessageCodec(),
            initial=RoomSnapshot(
                enable_chat=cfg.DEFAULT_ENABLE_CHAT,
                viewers_can_request_to_join=cfg.DEFAULT_VIEWERS_CAN_REQUEST_TO_JOIN,
            ),
        )
        self._init_event_handlers()
        logger.info("RoomController created")

    # ==================== LIFECYCLE ====================

    def start(self) -> None:
        """Start consuming transport events. Must be called from a running loop."""
        if self._sink_task is None or self._sink_task.done():
            self._sink_task = asyncio.create_task(self._run_event_sink(), name="room-event-sink")

    async def aclose(self) -> None:
        tasks = list(self._helper_tasks)
        if self._sink_task is not None:
            tasks.append(self._sink_task)
            self._sink_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._helper_tasks.clear()

    async def __aenter__(self) -> RoomController:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ==================== FORM FIELDS ====================

    def set_room_name(self, room_name: str) -> None:
        self._update(room_name=room_name)

    def set_identity(self, identity: str) -> None:
        self._update(identity=identity)

    def set_message(self, message: str) -> None:
        self._update(message=message)

    def set_enable_chat(self, enabled: bool) -> None:
        self._update(enable_chat=enabled)

    def set_viewers_can_request_to_join(self, allowed: bool) -> None:
        self._update(viewers_can_request_to_join=allowed)

    # ==================== NAVIGATION ====================

    async def go_live(self) -> None:
        """Open the host setup step; starts the camera preview."""
        await self.set_step(RoomStep.STREAMER_PREPARE)

    async def prepare_to_join(self) -> None:
        await self.set_step(RoomStep.VIEWER_PREPARE)

    async def back_to_welcome(self) -> None:
        if self._state.step == RoomStep.STREAM:
            raise AppError(errmesg="Leave the stream instead of navigating back")
        await self.set_step(RoomStep.WELCOME)

    # ==================== CONNECT ====================

    async def start_as_host(self) -> None:
        """Create a stream, connect, publish camera and microphone, then enter STREAM."""
        self._begin_action()
        self._update(connect_busy=True)
        try:
            if self._state.step not in (RoomStep.WELCOME, RoomStep.STREAMER_PREPARE):
                raise InvalidInput(errmesg=f"Cannot start a stream from step {self._state.step}")
            if not self.can_go_live:
                raise InvalidInput(errmesg="Identity is required to go live")
            if not await self._devices.ensure_access([DeviceKind.VIDEO, DeviceKind.AUDIO]):
                raise PermissionDenied(errmesg="Camera and microphone access are required")

            identity = self._state.identity.strip()
            request = CreateStreamRequest(
                room_name=self._state.room_name.strip(),
                metadata=RoomMetadata(
                    creator_identity=identity,
                    enable_chat=self._state.enable_chat,
                    allow_participation=self._state.viewers_can_request_to_join,
                ),
            )

            logger.debug("Requesting create stream...")
            try:
                res = await self._api.create_stream(request)
            except Exception:
                await self._return_to_welcome()
                raise

            await self._connect(res.connection_details.ws_url, res.connection_details.token)
            generation = self._connection_generation

            try:
                await self._publish_camera()
                await self._set_microphone(True)
            except Exception:
                await self._safe_disconnect()
                await self._return_to_welcome()
                raise
            await self._ensure_still_connected(generation)

            if self._state.step == RoomStep.WELCOME:
                await self.set_step(RoomStep.STREAMER_PREPARE)
            await self.set_step(RoomStep.STREAM)
            logger.info(f"Streaming as host: identity={identity}")
        except Exception as exc:
            self._surface("start_as_host", exc)
        finally:
            self._update(connect_busy=False)

    async def join_as_viewer(self) -> None:
        """Join an existing stream by room name and enter STREAM. Publishes nothing."""
        self._begin_action()
        self._update(connect_busy=True)
        try:
            if self._state.step not in (RoomStep.WELCOME, RoomStep.VIEWER_PREPARE):
                raise InvalidInput(errmesg=f"Cannot join a stream from step {self._state.step}")
            if not self.can_join_live:
                raise InvalidInput(errmesg="Room name and identity are required to join")

            request = JoinStreamRequest(
                room_name=self._state.room_name.strip(),
                identity=self._state.identity.strip(),
            )

            logger.debug(f"Requesting join stream: room={request.room_name}")
            try:
                res = await self._api.join_stream(request)
            except Exception:
                await self._return_to_welcome()
                raise

            await self._connect(res.connection_details.ws_url, res.connection_details.token)

            if self._state.step == RoomStep.WELCOME:
                await self.set_step(RoomStep.VIEWER_PREPARE)
            await self.set_step(RoomStep.STREAM)
            logger.info(f"Joined stream: room={request.room_name}")
        except Exception as exc:
            self._surface("join_as_viewer", exc)
        finally:
            self._update(connect_busy=False)

    async def _connect(self, url: str, token: str) -> None:
        logger.debug(f"Connecting to room... url={url}")
        try:
            await self._transport.connect(url, token)
        except Exception as exc:
            # The remote stream stays allocated; tearing it down is the API's job
            await self._safe_disconnect()
            await self._return_to_welcome()
            if isinstance(exc, TransportConnectError):
                raise
            raise TransportConnectError(errmesg=f"Failed to connect: {exc}") from exc

    async def _ensure_still_connected(self, generation: int) -> None:
        """Abort the connect action if the transport dropped since `generation` was read."""
        if self._connection_generation == generation:
            return
        logger.warning("Connection dropped before the stream started")
        await self._drop_camera_publication()
        await self._safe_disconnect()
        await self._return_to_welcome()
        raise TransportConnectError(errmesg="Connection lost before entering the stream")

    async def _safe_disconnect(self) -> None:
        try:
            await self._transport.disconnect()
        except Exception as exc:
            logger.warning(f"Ignoring disconnect failure during cleanup: {exc!r}")

    async def _return_to_welcome(self) -> None:
        if self._state.step != RoomStep.STREAM:
            await self.set_step(RoomStep.WELCOME)

    # ==================== LEAVE ====================

    async def leave(self) -> None:
        """End the stream as its owner, otherwise just disconnect."""
        self._begin_action()
        self._update(end_stream_busy=True)
        try:
            logger.info("Leaving...")
            if self.is_stream_owner:
                await self._api.stop_stream()
            else:
                logger.info("Disconnecting...")
                await self._transport.disconnect()
        except Exception as exc:
            self._surface("leave", exc)
        finally:
            self._update(end_stream_busy=False)

    # ==================== STAGE ====================

    async def invite_to_stage(self, identity: str) -> None:
        self._begin_action()
        self._mark_invite_busy(identity)
        try:
            logger.info(f"Invite to stage {identity}...")
            await self._api.invite_to_stage(identity)
        except Exception as exc:
            self._surface("invite_to_stage", exc)
        finally:
            self._clear_invite_busy(identity)

    async def remove_from_stage(self, identity: str | None = None) -> None:
        """Revoke publish permission from `identity`, or from the local participant when None."""
        self._begin_action()
        busy_key = identity or self._transport.local_identity or self._state.identity.strip()
        self._mark_invite_busy(busy_key)
        try:
            logger.info(f"Removing from stage {identity or '(self)'}...")
            await self._api.remove_from_stage(identity)
        except Exception as exc:
            self._surface("remove_from_stage", exc)
        finally:
            self._clear_invite_busy(busy_key)

    async def reject_request(self, identity: str) -> None:
        """Decline a viewer's raised hand."""
        await self.remove_from_stage(identity)

    async def raise_hand(self) -> None:
        self._begin_action()
        try:
            logger.info("Raising hand...")
            await self._api.raise_hand()
        except Exception as exc:
            self._surface("raise_hand", exc)

    # ==================== MESSAGING ====================

    async def send_chat(self, text: str | None = None) -> ChatEntry | None:
        """Publish a chat message (the draft message when `text` is None).

        On success the entry is appended to events and the draft is cleared.
        """
        self._begin_action()
        try:
            message = (self._state.message if text is None else text).strip()
            if not message:
                raise InvalidInput(errmesg="Cannot send an empty message")

            entry = self._local_entry(message)
            await self._publish_data(self._codec.encode_chat(entry), self._codec.chat_topic)
        except Exception as exc:
            self._surface("send_chat", exc)
            return None

        self._update(message="", events=self._state.events + (entry,))
        return entry

    async def send_reaction(self, symbol: str) -> ChatEntry | None:
        self._begin_action()
        try:
            symbol = symbol.strip()
            if not symbol:
                raise InvalidInput(errmesg="Cannot send an empty reaction")

            entry = self._local_entry(symbol, is_reaction=True)
            await self._publish_data(self._codec.encode_reaction(symbol), self._codec.reaction_topic)
        except Exception as exc:
            self._surface("send_reaction", exc)
            return None

        self._append_event(entry)
        return entry

    def _local_entry(self, message: str, is_reaction: bool = False) -> ChatEntry:
        return ChatEntry(
            timestamp=_now_ms(),
            message=message,
            participant_identity=self._transport.local_identity or self._state.identity.strip(),
            is_reaction=is_reaction,
        )
