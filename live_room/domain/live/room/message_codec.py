"""Wire format of the room's data channel.

Two topics share one data channel:
- chat: JSON object {"id", "timestamp", "message"}. The sender is not part of
  the payload; receivers attach the identity reported by the transport.
- reactions: the reaction symbol as raw UTF-8 bytes.

There is no version field. Changing either format breaks every participant in
the room at once.
"""

import orjson

from live_room.app_config import get_app_environ_config
from live_room.schemas import ChatEntry
from live_room.schemas.chat import new_entry_id
from live_room.utils.app_errors import MalformedPayload


class MessageCodec:
    def __init__(self, chat_topic: str | None = None, reaction_topic: str | None = None) -> None:
        cfg = get_app_environ_config()
        self.chat_topic = chat_topic or cfg.CHAT_TOPIC
        self.reaction_topic = reaction_topic or cfg.REACTION_TOPIC

    def encode_chat(self, entry: ChatEntry) -> bytes:
        return orjson.dumps(
            {"id": entry.id, "timestamp": entry.timestamp, "message": entry.message}
        )

    def decode_chat(self, payload: bytes, sender_identity: str | None = None) -> ChatEntry:
        """Decode a chat payload and attach the transport-reported sender.

        Raises:
            MalformedPayload: If the bytes are not a chat JSON object
        """
        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError as exc:
            raise MalformedPayload(errmesg=f"Chat payload is not JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise MalformedPayload(errmesg="Chat payload is not a JSON object")

        message = data.get("message")
        entry_id = data.get("id") or new_entry_id()
        timestamp = data.get("timestamp", 0)
        if not isinstance(message, str):
            raise MalformedPayload(errmesg="Chat payload has no string 'message'")
        if not isinstance(entry_id, str):
            raise MalformedPayload(errmesg="Chat payload 'id' is not a string")
        # bool is an int subclass, reject it explicitly
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise MalformedPayload(errmesg="Chat payload 'timestamp' is not an integer")

        return ChatEntry(
            id=entry_id,
            timestamp=timestamp,
            message=message,
            participant_identity=sender_identity,
        )

    def encode_reaction(self, symbol: str) -> bytes:
        return symbol.encode("utf-8")

    def decode_reaction(self, payload: bytes, sender_identity: str | None = None) -> ChatEntry:
        """Decode a reaction symbol.

        Raises:
            MalformedPayload: If the bytes are not UTF-8 or carry no symbol
        """
        try:
            symbol = bytes(payload).decode("utf-8").strip()
        except UnicodeDecodeError as exc:
            raise MalformedPayload(errmesg=f"Reaction payload is not UTF-8: {exc}") from exc
        if not symbol:
            raise MalformedPayload(errmesg="Reaction payload is empty")

        return ChatEntry(message=symbol, participant_identity=sender_identity, is_reaction=True)

    def decode(
        self, payload: bytes, topic: str | None, sender_identity: str | None = None
    ) -> ChatEntry | None:
        """Decode by topic. Returns None for topics this codec does not handle."""
        if topic == self.chat_topic:
            return self.decode_chat(payload, sender_identity)
        if topic == self.reaction_topic:
            return self.decode_reaction(payload, sender_identity)
        return None
