from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_entry_id() -> str:
    return uuid4().hex


class ChatEntry(BaseModel):
    """One line in the room's event list: a chat message or a reaction.

    `participant_identity` is a lookup key into the room's participants, not a
    participant object. It is None for entries whose sender is unknown.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_entry_id)
    timestamp: int = Field(default=0, description="Milliseconds since epoch")
    message: str
    participant_identity: str | None = None
    is_reaction: bool = False
