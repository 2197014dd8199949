"""LiveKit implementation of the real-time transport.

Wraps a `livekit.rtc.Room`. Room callbacks are converted into transport events
and pushed onto one asyncio queue, so consumers see them in emission order.

Usage:
    transport = LivekitTransport()
    await transport.connect(details.ws_url, details.token)
    async for event in transport.events():
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from livekit import rtc
from loguru import logger

from live_room.app_config import get_app_environ_config
from live_room.services.integrations.transport import (
    ConnectionState,
    ConnectionStateChanged,
    DataReceived,
    ParticipantPermissions,
    PermissionsChanged,
    TransportEvent,
)
from live_room.utils.app_errors import PublishError, TransportConnectError

MICROPHONE_SAMPLE_RATE = 48000

_CONNECTION_STATES = {
    rtc.ConnectionState.CONN_DISCONNECTED: ConnectionState.DISCONNECTED,
    rtc.ConnectionState.CONN_CONNECTED: ConnectionState.CONNECTED,
    rtc.ConnectionState.CONN_RECONNECTING: ConnectionState.RECONNECTING,
}


def create_camera_track(width: int | None = None, height: int | None = None) -> rtc.LocalVideoTrack:
    """Create the local camera track fed by a `VideoSource`."""
    cfg = get_app_environ_config()
    source = rtc.VideoSource(width or cfg.CAMERA_WIDTH, height or cfg.CAMERA_HEIGHT)
    return rtc.LocalVideoTrack.create_video_track("camera", source)


class LivekitTransport:
    """Transport engine backed by a LiveKit room."""

    PERMISSIONS_EVENT = "participant_permissions_changed"

    def __init__(self, room: rtc.Room | None = None) -> None:
        self._room = room or rtc.Room()
        self._queue: asyncio.Queue[TransportEvent] = asyncio.Queue()
        self._state = ConnectionState.DISCONNECTED
        self._local_can_publish: bool | None = None
        self._microphone: rtc.LocalTrackPublication | None = None

        self._room.on("data_received", self._on_data_received)
        self._room.on("connection_state_changed", self._on_connection_state_changed)
        self._room.on(self.PERMISSIONS_EVENT, self._on_permissions_changed)

    @property
    def room(self) -> rtc.Room:
        return self._room

    @property
    def local_identity(self) -> str | None:
        local = getattr(self._room, "local_participant", None)
        return getattr(local, "identity", None) or None

    @property
    def local_can_publish(self) -> bool:
        local = getattr(self._room, "local_participant", None)
        permissions = getattr(local, "permissions", None)
        return bool(getattr(permissions, "can_publish", False))

    @property
    def room_metadata(self) -> str | None:
        return getattr(self._room, "metadata", None) or None

    def events(self) -> AsyncIterator[TransportEvent]:
        return self._iter_events()

    async def _iter_events(self) -> AsyncIterator[TransportEvent]:
        while True:
            yield await self._queue.get()

    def _set_state(self, new: ConnectionState) -> None:
        old = self._state
        if old == new:
            return
        self._state = new
        self._queue.put_nowait(ConnectionStateChanged(old=old, new=new))

    async def connect(self, url: str, token: str) -> None:
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self._room.connect(url, token, rtc.RoomOptions(auto_subscribe=True))
        except Exception as exc:
            self._set_state(ConnectionState.DISCONNECTED)
            logger.error(f"LiveKit connect failed: url={url} error={exc!r}")
            raise TransportConnectError(errmesg=f"Failed to connect to {url}: {exc}") from exc

        self._local_can_publish = self.local_can_publish
        self._set_state(ConnectionState.CONNECTED)
        logger.info(f"LiveKit connected: identity={self.local_identity}")

    async def disconnect(self) -> None:
        try:
            await self._room.disconnect()
        finally:
            self._microphone = None
            self._set_state(ConnectionState.DISCONNECTED)

    async def publish_track(self, track: rtc.LocalVideoTrack) -> rtc.LocalTrackPublication:
        try:
            return await self._room.local_participant.publish_track(
                track, rtc.TrackPublishOptions(source=rtc.TrackSource.SOURCE_CAMERA)
            )
        except Exception as exc:
            raise PublishError(errmesg=f"Failed to publish camera track: {exc}") from exc

    async def unpublish_track(self, publication: rtc.LocalTrackPublication) -> None:
        try:
            await self._room.local_participant.unpublish_track(publication.sid)
        except Exception as exc:
            raise PublishError(errmesg=f"Failed to unpublish track {publication.sid}: {exc}") from exc

    async def set_microphone(self, enabled: bool) -> None:
        local = self._room.local_participant
        try:
            if enabled and self._microphone is None:
                source = rtc.AudioSource(MICROPHONE_SAMPLE_RATE, num_channels=1)
                track = rtc.LocalAudioTrack.create_audio_track("microphone", source)
                self._microphone = await local.publish_track(
                    track, rtc.TrackPublishOptions(source=rtc.TrackSource.SOURCE_MICROPHONE)
                )
            elif not enabled and self._microphone is not None:
                publication, self._microphone = self._microphone, None
                await local.unpublish_track(publication.sid)
        except Exception as exc:
            raise PublishError(errmesg=f"Failed to set microphone enabled={enabled}: {exc}") from exc

    async def publish_data(self, payload: bytes, topic: str) -> None:
        try:
            await self._room.local_participant.publish_data(payload, reliable=True, topic=topic)
        except Exception as exc:
            raise PublishError(errmesg=f"Failed to publish data on topic={topic}: {exc}") from exc

    # ---- room callbacks ----

    def _on_data_received(self, packet: rtc.DataPacket) -> None:
        participant = packet.participant
        self._queue.put_nowait(
            DataReceived(
                payload=bytes(packet.data),
                topic=packet.topic,
                sender_identity=participant.identity if participant else None,
            )
        )

    def _on_connection_state_changed(self, state: rtc.ConnectionState) -> None:
        mapped = _CONNECTION_STATES.get(state)
        if mapped is None:
            logger.debug(f"Ignoring unknown LiveKit connection state: {state}")
            return
        self._set_state(mapped)

    def _on_permissions_changed(self, participant: rtc.Participant, *_args) -> None:
        is_local = participant.identity == self.local_identity
        permissions = getattr(participant, "permissions", None)
        can_publish = bool(getattr(permissions, "can_publish", False))

        if is_local:
            if self._local_can_publish == can_publish:
                return
            self._local_can_publish = can_publish

        self._queue.put_nowait(
            PermissionsChanged(
                ParticipantPermissions(
                    identity=participant.identity, can_publish=can_publish, is_local=is_local
                )
            )
        )
