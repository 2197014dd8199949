"""Room session controller.

Top-level API:
- `RoomController`: owns the session state and exposes the user actions
- `RoomStepMachine`: allowed step transitions
- `MessageCodec`: chat/reaction wire format
"""

from live_room.domain.live.room.message_codec import MessageCodec
from live_room.domain.live.room.room_controller import RoomController
from live_room.domain.live.room.room_step_machine import RoomStepMachine

__all__ = [
    "MessageCodec",
    "RoomController",
    "RoomStepMachine",
]
