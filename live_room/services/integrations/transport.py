"""Real-time transport boundary.

The controller talks to the transport only through `TransportEngine`. Push
notifications from the transport arrive as plain event objects on a single
ordered async stream, see `TransportEngine.events()`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DataReceived:
    payload: bytes
    topic: str | None
    sender_identity: str | None


@dataclass(frozen=True)
class ConnectionStateChanged:
    old: ConnectionState
    new: ConnectionState


@dataclass(frozen=True)
class ParticipantPermissions:
    identity: str
    can_publish: bool
    is_local: bool = False


@dataclass(frozen=True)
class PermissionsChanged:
    permissions: ParticipantPermissions


TransportEvent = DataReceived | ConnectionStateChanged | PermissionsChanged


@runtime_checkable
class TransportEngine(Protocol):
    """What the room controller needs from a real-time transport."""

    @property
    def local_identity(self) -> str | None: ...

    @property
    def local_can_publish(self) -> bool: ...

    @property
    def room_metadata(self) -> str | None: ...

    async def connect(self, url: str, token: str) -> None: ...

    async def disconnect(self) -> None: ...

    async def publish_track(self, track: Any) -> Any:
        """Publish a local track and return its publication handle."""
        ...

    async def unpublish_track(self, publication: Any) -> None: ...

    async def set_microphone(self, enabled: bool) -> None: ...

    async def publish_data(self, payload: bytes, topic: str) -> None: ...

    def events(self) -> AsyncIterator[TransportEvent]:
        """Transport events in emission order."""
        ...
