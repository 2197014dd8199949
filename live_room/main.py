"""Wiring for a LiveKit-backed room controller.

Usage:
    from live_room.main import create_room_controller

    controller = create_room_controller()
    async with controller:
        ...
"""

from loguru import logger

from live_room.domain.live.room import RoomController
from live_room.services.integrations.devices import StaticDeviceAccess
from live_room.services.integrations.livekit_transport import LivekitTransport, create_camera_track
from live_room.services.stream_api.stream_api_client import StreamApiClient
from live_room.shared.log import init_logger


def create_room_controller(
    api_base_url: str | None = None,
    *,
    configure_logging: bool = True,
) -> RoomController:
    """Build a controller with the HTTP API client, a LiveKit room and a synthetic camera.

    Must be called from a running event loop (the LiveKit room binds to it).
    """
    if configure_logging:
        init_logger()

    controller = RoomController(
        api=StreamApiClient(base_url=api_base_url),
        transport=LivekitTransport(),
        devices=StaticDeviceAccess(camera_track=create_camera_track()),
    )
    logger.info("Room controller wired")
    return controller
