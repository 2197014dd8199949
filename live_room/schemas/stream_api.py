"""Request/response bodies of the livestream session-control API."""

from __future__ import annotations

import orjson
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class RoomMetadata(BaseModel):
    """Room metadata written by the API when a stream is created.

    Transported as the JSON string in the room's metadata field.
    """

    model_config = ConfigDict(extra="ignore")

    creator_identity: str = Field(..., description="Identity of the stream owner")
    enable_chat: bool = Field(default=True, description="Chat is enabled for the room")
    allow_participation: bool = Field(
        default=True, description="Viewers may raise their hand to join the stage"
    )

    @classmethod
    def parse_metadata(cls, raw: str | bytes | None) -> RoomMetadata | None:
        """Parse the room metadata string; returns None when absent or unreadable."""
        if not raw:
            return None
        try:
            return cls.model_validate(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError, TypeError) as exc:
            logger.debug(f"Ignoring unreadable room metadata: {exc}")
            return None


class CreateStreamRequest(BaseModel):
    room_name: str = Field(default="", description="Requested room name, empty lets the API pick")
    metadata: RoomMetadata


class JoinStreamRequest(BaseModel):
    room_name: str
    identity: str


class InviteToStageRequest(BaseModel):
    identity: str


class RemoveFromStageRequest(BaseModel):
    identity: str | None = Field(default=None, description="Participant to remove, None means self")


class ConnectionDetails(BaseModel):
    """Where and how to connect the real-time transport. Used once per connect attempt."""

    ws_url: str
    token: str

    def __repr__(self) -> str:
        return f"ConnectionDetails(ws_url={self.ws_url!r}, token=<redacted>)"

    __str__ = __repr__


class StreamSessionResponse(BaseModel):
    """Response of create_stream and join_stream."""

    model_config = ConfigDict(extra="ignore")

    auth_token: str
    connection_details: ConnectionDetails


CreateStreamResponse = StreamSessionResponse
JoinStreamResponse = StreamSessionResponse
