"""Client for the livestream session-control API.

create_stream and join_stream return connection details for the real-time
transport plus an auth token. Every later call (stop, stage management, raise
hand) is authorized with that token until `reset()` forgets it.

Usage:
    client = StreamApiClient()
    res = await client.join_stream(JoinStreamRequest(room_name="abc", identity="ana"))
    await room.connect(res.connection_details.ws_url, res.connection_details.token)
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from live_room.app_config import get_app_environ_config
from live_room.schemas import (
    CreateStreamRequest,
    InviteToStageRequest,
    JoinStreamRequest,
    RemoveFromStageRequest,
    StreamSessionResponse,
)
from live_room.utils.app_errors import AppErrorCode, RemoteSessionError


@runtime_checkable
class StreamApi(Protocol):
    """Session-control calls the room controller depends on."""

    async def create_stream(self, body: CreateStreamRequest) -> StreamSessionResponse: ...

    async def join_stream(self, body: JoinStreamRequest) -> StreamSessionResponse: ...

    async def stop_stream(self) -> None: ...

    async def invite_to_stage(self, identity: str) -> None: ...

    async def remove_from_stage(self, identity: str | None = None) -> None: ...

    async def raise_hand(self) -> None: ...

    def reset(self) -> None: ...


class StreamApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        cfg = get_app_environ_config()
        self.base_url = (base_url or cfg.LIVESTREAM_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else cfg.LIVESTREAM_API_TIMEOUT_SECONDS
        self._transport = transport
        self._auth_token: str | None = None

    @property
    def has_session(self) -> bool:
        return self._auth_token is not None

    def _build_headers(self, authorized: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        if authorized:
            if not self._auth_token:
                raise RemoteSessionError(
                    AppErrorCode.E_NO_ACTIVE_SESSION,
                    "No active stream session; create or join a stream first.",
                )
            headers["Authorization"] = f"Token {self._auth_token}"
        return headers

    async def _post(
        self,
        path: str,
        body: BaseModel | None = None,
        *,
        authorized: bool = True,
    ) -> Any:
        headers = self._build_headers(authorized)
        url = f"{self.base_url}{path}"
        payload = body.model_dump() if body is not None else {}

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(f"{path} failed: status={exc.response.status_code} body={exc.response.text}")
            raise RemoteSessionError(
                errmesg=f"{path} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(f"{path} request error: {exc!r}")
            raise RemoteSessionError(errmesg=f"{path} request failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.debug(f"{path} returned a non-JSON body, ignoring it")
            return None

    async def _open_session(self, path: str, body: BaseModel) -> StreamSessionResponse:
        data = await self._post(path, body, authorized=False)
        try:
            res = StreamSessionResponse.model_validate(data)
        except ValidationError as exc:
            logger.exception(f"Failed to validate {path} response")
            raise RemoteSessionError(errmesg=f"{path} returned an invalid response") from exc

        self._auth_token = res.auth_token
        logger.debug(f"{path} ok: {res.connection_details}")
        return res

    async def create_stream(self, body: CreateStreamRequest) -> StreamSessionResponse:
        """Create a stream owned by `body.metadata.creator_identity`."""
        return await self._open_session("/api/create_stream", body)

    async def join_stream(self, body: JoinStreamRequest) -> StreamSessionResponse:
        """Join an existing stream as a viewer."""
        return await self._open_session("/api/join_stream", body)

    async def stop_stream(self) -> None:
        """End the stream for everyone. Only the owner may call this."""
        await self._post("/api/stop_stream")

    async def invite_to_stage(self, identity: str) -> None:
        await self._post("/api/invite_to_stage", InviteToStageRequest(identity=identity))

    async def remove_from_stage(self, identity: str | None = None) -> None:
        await self._post("/api/remove_from_stage", RemoveFromStageRequest(identity=identity))

    async def raise_hand(self) -> None:
        await self._post("/api/raise_hand")

    def reset(self) -> None:
        """Forget the session-scoped auth token."""
        if self._auth_token is not None:
            logger.debug("Stream API session reset")
        self._auth_token = None
