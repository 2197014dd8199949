"""Fakes and fixtures for room controller tests."""

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from unittest.mock import AsyncMock, MagicMock

import orjson
import pytest
import pytest_asyncio

from live_room.domain.live.room import MessageCodec, RoomController
from live_room.schemas import ConnectionDetails, StreamSessionResponse
from live_room.services.integrations.devices import StaticDeviceAccess
from live_room.services.integrations.transport import (
    ConnectionState,
    ConnectionStateChanged,
    TransportEvent,
)

WS_URL = "wss://rtc.example.test"
RTC_TOKEN = "rtc-token"


@dataclass(frozen=True)
class FakePublication:
    sid: str


class FakeTransport:
    """In-memory transport recording every call.

    Failures are injected through the `*_error` attributes; `publish_delay`
    suspends publish_track so concurrent publishers can interleave.
    """

    def __init__(
        self,
        *,
        local_identity: str | None = "ana",
        can_publish: bool = True,
        metadata: str | None = None,
    ) -> None:
        self.queue: asyncio.Queue[TransportEvent] = asyncio.Queue()
        self._local_identity = local_identity
        self._can_publish = can_publish
        self._metadata = metadata

        self.connect_error: Exception | None = None
        self.disconnect_error: Exception | None = None
        self.publish_track_error: Exception | None = None
        self.unpublish_error: Exception | None = None
        self.publish_data_error: Exception | None = None
        self.publish_delay = 0.0

        self.state = ConnectionState.DISCONNECTED
        self.connect_calls: list[tuple[str, str]] = []
        self.disconnect_calls = 0
        self.published_tracks: list[FakePublication] = []
        self.unpublished: list[FakePublication] = []
        self.microphone_calls: list[bool] = []
        self.sent_data: list[tuple[bytes, str]] = []

    @property
    def local_identity(self) -> str | None:
        return self._local_identity

    @property
    def local_can_publish(self) -> bool:
        return self._can_publish

    @property
    def room_metadata(self) -> str | None:
        return self._metadata

    def set_owner(self, creator_identity: str) -> None:
        self._metadata = orjson.dumps({"creator_identity": creator_identity}).decode()

    def emit(self, event: TransportEvent) -> None:
        self.queue.put_nowait(event)

    def _move_to(self, new: ConnectionState) -> None:
        old, self.state = self.state, new
        if old != new:
            self.emit(ConnectionStateChanged(old=old, new=new))

    async def connect(self, url: str, token: str) -> None:
        self.connect_calls.append((url, token))
        if self.connect_error is not None:
            raise self.connect_error
        self._move_to(ConnectionState.CONNECTED)

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error
        self._move_to(ConnectionState.DISCONNECTED)

    async def publish_track(self, track) -> FakePublication:
        if self.publish_delay:
            await asyncio.sleep(self.publish_delay)
        if self.publish_track_error is not None:
            raise self.publish_track_error
        publication = FakePublication(sid=f"TR_{len(self.published_tracks) + 1}")
        self.published_tracks.append(publication)
        return publication

    async def unpublish_track(self, publication: FakePublication) -> None:
        if self.unpublish_error is not None:
            raise self.unpublish_error
        self.unpublished.append(publication)

    async def set_microphone(self, enabled: bool) -> None:
        self.microphone_calls.append(enabled)

    async def publish_data(self, payload: bytes, topic: str) -> None:
        if self.publish_data_error is not None:
            raise self.publish_data_error
        self.sent_data.append((payload, topic))

    async def events(self):
        while True:
            yield await self.queue.get()


class RecordingDevices(StaticDeviceAccess):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.preview_calls: list[str] = []
        self.fail_preview = False

    async def start_preview(self) -> None:
        self.preview_calls.append("start")
        if self.fail_preview:
            raise RuntimeError("camera busy")
        await super().start_preview()

    async def stop_preview(self) -> None:
        self.preview_calls.append("stop")
        if self.fail_preview:
            raise RuntimeError("camera busy")
        await super().stop_preview()


def session_response(auth_token: str = "auth-1") -> StreamSessionResponse:
    return StreamSessionResponse(
        auth_token=auth_token,
        connection_details=ConnectionDetails(ws_url=WS_URL, token=RTC_TOKEN),
    )


def make_api() -> MagicMock:
    api = MagicMock()
    api.create_stream = AsyncMock(return_value=session_response())
    api.join_stream = AsyncMock(return_value=session_response())
    api.stop_stream = AsyncMock(return_value=None)
    api.invite_to_stage = AsyncMock(return_value=None)
    api.remove_from_stage = AsyncMock(return_value=None)
    api.raise_hand = AsyncMock(return_value=None)
    api.reset = MagicMock(return_value=None)
    return api


async def settle(controller: RoomController, rounds: int = 20) -> None:
    """Let the event sink drain queued events, then wait for helper tasks."""
    for _ in range(rounds):
        await asyncio.sleep(0)
    while controller._helper_tasks:
        await asyncio.gather(*list(controller._helper_tasks))
        for _ in range(rounds):
            await asyncio.sleep(0)


@pytest.fixture
def api() -> MagicMock:
    return make_api()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def devices() -> RecordingDevices:
    return RecordingDevices(camera_track=object())


@pytest.fixture
def codec() -> MessageCodec:
    return MessageCodec(chat_topic="chat", reaction_topic="reactions")


@pytest_asyncio.fixture
async def controller(api, transport, devices, codec) -> AsyncGenerator[RoomController, None]:
    room = RoomController(api=api, transport=transport, devices=devices, codec=codec)
    room.start()
    yield room
    await room.aclose()
