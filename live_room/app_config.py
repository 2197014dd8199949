from pydantic import BaseModel

from live_room.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_bool("DEBUG", False)

    # Livestream session-control API
    LIVESTREAM_API_BASE_URL: str = config.get_str(
        "LIVESTREAM_API_BASE_URL", "https://livestream.livekit.io/"
    )
    LIVESTREAM_API_TIMEOUT_SECONDS: float = config.get_float("LIVESTREAM_API_TIMEOUT_SECONDS", 30.0)

    # Data channel topics. Every participant in a room must agree on these.
    CHAT_TOPIC: str = config.get_str("CHAT_TOPIC", "chat")
    REACTION_TOPIC: str = config.get_str("REACTION_TOPIC", "reactions")

    # Defaults for the "go live" form
    DEFAULT_ENABLE_CHAT: bool = config.get_bool("DEFAULT_ENABLE_CHAT", True)
    DEFAULT_VIEWERS_CAN_REQUEST_TO_JOIN: bool = config.get_bool(
        "DEFAULT_VIEWERS_CAN_REQUEST_TO_JOIN", True
    )

    # Local camera track
    CAMERA_WIDTH: int = config.get_int("CAMERA_WIDTH", 1280)
    CAMERA_HEIGHT: int = config.get_int("CAMERA_HEIGHT", 720)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
