"""Room lifecycle steps."""

from enum import Enum


class RoomStep(str, Enum):
    """Coarse lifecycle phase of a room session.

    Step Transition Flow:

    WELCOME → STREAMER_PREPARE → STREAM → WELCOME
       ↓                           ↑
    VIEWER_PREPARE ────────────────┘

    Step Descriptions:
    - WELCOME: No session. Initial step and the step every disconnect returns to.
    - STREAMER_PREPARE: Host is setting up; local camera preview is running.
    - VIEWER_PREPARE: Viewer is entering the room name and identity.
    - STREAM: Connected to the room.
    """

    WELCOME = "welcome"
    STREAMER_PREPARE = "streamer_prepare"
    VIEWER_PREPARE = "viewer_prepare"
    STREAM = "stream"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def prepare_steps(cls) -> list["RoomStep"]:
        return [RoomStep.STREAMER_PREPARE, RoomStep.VIEWER_PREPARE]


__all__ = ["RoomStep"]
