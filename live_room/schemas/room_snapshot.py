from pydantic import BaseModel, ConfigDict

from .chat import ChatEntry
from .room_step import RoomStep


class RoomSnapshot(BaseModel):
    """Immutable view of the controller's session state handed to observers."""

    model_config = ConfigDict(frozen=True)

    step: RoomStep = RoomStep.WELCOME
    room_name: str = ""
    identity: str = ""
    message: str = ""

    enable_chat: bool = True
    viewers_can_request_to_join: bool = True

    # Network busy states
    connect_busy: bool = False
    end_stream_busy: bool = False
    invite_busy: frozenset[str] = frozenset()

    events: tuple[ChatEntry, ...] = ()

    # errcode of the most recent failed action, None after a clean run
    last_error: str | None = None
