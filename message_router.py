import json

from pydantic import ValidationError

from errors import InvalidMessageFormat, NotInRoom, SignalingError, UnknownMessageType
from logging_config import get_logger
from registry import ConnectionRegistry
from room_manager import RoomManager
from schemas.messages import (
    CreateRoomMessage,
    JoinRoomMessage,
    ListRoomsMessage,
    PongMessage,
    RelayMessage,
    inbound_message_adapter,
)

logger = get_logger(__name__)


def parse_message(raw: str) -> tuple:
    """Parse one inbound frame into ``(typed_message, raw_dict)``.

    Raises InvalidMessageFormat or UnknownMessageType.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        raise InvalidMessageFormat("Message is not valid JSON")
    if not isinstance(data, dict):
        raise InvalidMessageFormat("Message must be a JSON object")

    try:
        message = inbound_message_adapter.validate_python(data)
    except ValidationError as e:
        error_types = {error["type"] for error in e.errors()}
        if "union_tag_invalid" in error_types:
            raise UnknownMessageType(data.get("type"))
        if "union_tag_not_found" in error_types:
            raise InvalidMessageFormat("Message type is required")
        raise InvalidMessageFormat(f"Invalid {data.get('type')} message")
    return message, data


class MessageRouter:
    def __init__(self, registry: ConnectionRegistry, rooms: RoomManager):
        self.registry = registry
        self.rooms = rooms

    def dispatch(self, sender_id: str, raw: str):
        """Handle one inbound frame from ``sender_id``. Errors go back to the sender only."""
        sender = self.registry.get(sender_id)
        if sender is None:
            logger.debug(f"Ignoring message from unregistered connection {sender_id}")
            return
        try:
            message, data = parse_message(raw)
            self._handle(sender_id, message, data)
        except SignalingError as e:
            logger.warning(f"Rejected message from {sender_id}: {e.code}: {e.message}")
            sender.send(e.to_message())

    def _handle(self, sender_id: str, message, data: dict):
        if isinstance(message, CreateRoomMessage):
            self.rooms.create_room(sender_id, message.roomId)
        elif isinstance(message, JoinRoomMessage):
            self.rooms.join_room(sender_id, message.roomId)
        elif isinstance(message, ListRoomsMessage):
            self.registry.get(sender_id).send({"type": "room-list", **self.rooms.snapshot()})
        elif isinstance(message, PongMessage):
            self.registry.get(sender_id).is_alive = True
        elif isinstance(message, RelayMessage):
            self.forward(sender_id, data)
            if message.type == "hangup":
                self.rooms.leave(sender_id)

    def forward(self, sender_id: str, data: dict) -> int:
        sender = self.registry.get(sender_id)
        if sender is None or sender.room_id is None:
            raise NotInRoom()

        outbound = dict(data)
        outbound["sender"] = sender_id
        peers = self.rooms.peers_of(sender_id)
        if outbound["type"] != "ping":
            logger.debug(f"Routing {outbound['type']} from {sender_id} to {len(peers)} peer(s) in room {sender.room_id}")
        delivered = 0
        for peer_id in peers:
            peer = self.registry.get(peer_id)
            if peer is not None and peer.send(outbound):
                delivered += 1
        return delivered
