"""
Mock implementation of the livestream session-control API.

This FastAPI app exposes the routes the room controller calls so the client can
run locally without reaching the real service:

* POST /api/create_stream
* POST /api/join_stream
* POST /api/stop_stream
* POST /api/invite_to_stage
* POST /api/remove_from_stage
* POST /api/raise_hand

Run with granian:
    granian --interface ASGI --host 127.0.0.1 --port 18082 tools.mock_livestream_api:app

Then point LIVESTREAM_API_BASE_URL to http://127.0.0.1:18082 (e.g. in env.local).
Connection details point at MOCK_LIVEKIT_WS_URL; tokens are placeholders, not JWTs.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

app = FastAPI(title="livestream api mock", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

WS_URL = os.environ.get("MOCK_LIVEKIT_WS_URL", "ws://127.0.0.1:7880")


@dataclass
class _MockRoom:
    name: str
    creator_identity: str
    allow_participation: bool
    stage: set[str] = field(default_factory=set)
    raised_hands: set[str] = field(default_factory=set)


@dataclass
class _MockSession:
    room_name: str
    identity: str


_rooms: dict[str, _MockRoom] = {}
_sessions: dict[str, _MockSession] = {}


def reset_state() -> None:
    _rooms.clear()
    _sessions.clear()


def _open_session(room_name: str, identity: str) -> dict:
    auth_token = f"mock_auth_{uuid.uuid4().hex[:12]}"
    _sessions[auth_token] = _MockSession(room_name=room_name, identity=identity)
    return {
        "auth_token": auth_token,
        "connection_details": {
            "ws_url": WS_URL,
            "token": f"MOCK_RTC_TOKEN::{identity}::{room_name}",
        },
    }


def _require_session(authorization: str | None) -> tuple[_MockSession, _MockRoom]:
    if not authorization or not authorization.startswith("Token "):
        raise HTTPException(status_code=401, detail="missing auth token")
    session = _sessions.get(authorization.removeprefix("Token "))
    if session is None:
        raise HTTPException(status_code=401, detail="unknown auth token")
    room = _rooms.get(session.room_name)
    if room is None:
        raise HTTPException(status_code=404, detail="room not found")
    return session, room


@app.get("/health")
async def health():
    """Health check endpoint for container orchestration."""
    return {"status": "ok", "service": "mock-livestream-api"}


@app.post("/api/create_stream")
async def create_stream(request: Request):
    body = await request.json()
    logger.info(f"POST /api/create_stream body={body}")

    metadata = body.get("metadata") or {}
    creator = (metadata.get("creator_identity") or "").strip()
    if not creator:
        raise HTTPException(status_code=400, detail="creator_identity is required")

    room_name = (body.get("room_name") or "").strip() or f"room-{uuid.uuid4().hex[:8]}"
    if room_name in _rooms:
        raise HTTPException(status_code=409, detail="room already exists")

    _rooms[room_name] = _MockRoom(
        name=room_name,
        creator_identity=creator,
        allow_participation=bool(metadata.get("allow_participation", True)),
        stage={creator},
    )
    return _open_session(room_name, creator)


@app.post("/api/join_stream")
async def join_stream(request: Request):
    body = await request.json()
    logger.info(f"POST /api/join_stream body={body}")

    room_name = (body.get("room_name") or "").strip()
    identity = (body.get("identity") or "").strip()
    if not room_name or not identity:
        raise HTTPException(status_code=400, detail="room_name and identity are required")
    if room_name not in _rooms:
        raise HTTPException(status_code=404, detail="room not found")

    return _open_session(room_name, identity)


@app.post("/api/stop_stream")
async def stop_stream(authorization: str | None = Header(default=None)):
    session, room = _require_session(authorization)
    logger.info(f"POST /api/stop_stream room={room.name} by={session.identity}")

    if session.identity != room.creator_identity:
        raise HTTPException(status_code=403, detail="only the creator can stop the stream")

    _rooms.pop(room.name, None)
    for token in [t for t, s in _sessions.items() if s.room_name == room.name]:
        _sessions.pop(token, None)
    return {}


@app.post("/api/invite_to_stage")
async def invite_to_stage(request: Request, authorization: str | None = Header(default=None)):
    session, room = _require_session(authorization)
    body = await request.json()
    logger.info(f"POST /api/invite_to_stage room={room.name} body={body}")

    if session.identity != room.creator_identity:
        raise HTTPException(status_code=403, detail="only the creator can invite")

    identity = body.get("identity")
    if not identity:
        raise HTTPException(status_code=400, detail="identity is required")
    if identity in room.raised_hands:
        room.raised_hands.discard(identity)
        room.stage.add(identity)
    return {}


@app.post("/api/remove_from_stage")
async def remove_from_stage(request: Request, authorization: str | None = Header(default=None)):
    session, room = _require_session(authorization)
    body = await request.json()
    logger.info(f"POST /api/remove_from_stage room={room.name} body={body}")

    identity = body.get("identity") or session.identity
    if identity != session.identity and session.identity != room.creator_identity:
        raise HTTPException(status_code=403, detail="only the creator can remove others")

    room.stage.discard(identity)
    room.raised_hands.discard(identity)
    return {}


@app.post("/api/raise_hand")
async def raise_hand(authorization: str | None = Header(default=None)):
    session, room = _require_session(authorization)
    logger.info(f"POST /api/raise_hand room={room.name} by={session.identity}")

    if not room.allow_participation:
        raise HTTPException(status_code=403, detail="participation is disabled")
    room.raised_hands.add(session.identity)
    return {}


__all__ = ["app", "reset_state"]
