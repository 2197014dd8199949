"""Pydantic models shared across the live room client."""

from .chat import ChatEntry
from .room_snapshot import RoomSnapshot
from .room_step import RoomStep
from .stream_api import (
    ConnectionDetails,
    CreateStreamRequest,
    CreateStreamResponse,
    InviteToStageRequest,
    JoinStreamRequest,
    JoinStreamResponse,
    RemoveFromStageRequest,
    RoomMetadata,
    StreamSessionResponse,
)

__all__ = [
    "ChatEntry",
    "ConnectionDetails",
    "CreateStreamRequest",
    "CreateStreamResponse",
    "InviteToStageRequest",
    "JoinStreamRequest",
    "JoinStreamResponse",
    "RemoveFromStageRequest",
    "RoomMetadata",
    "RoomSnapshot",
    "RoomStep",
    "StreamSessionResponse",
]
