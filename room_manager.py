import random
import string
from datetime import datetime
from typing import Dict, List, Optional

from constants import MAX_ROOM_MEMBERS, ROOM_ID_LENGTH
from errors import AlreadyInRoom, RoomAlreadyExists, RoomFull, RoomIdRequired, RoomNotFound
from logging_config import get_logger
from registry import ConnectionRegistry, Role

logger = get_logger(__name__)

ROOM_ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_room_id(length: int = ROOM_ID_LENGTH) -> str:
    return ''.join(random.choices(ROOM_ID_ALPHABET, k=length))


class Room:
    def __init__(self, room_id: str, created_by: str):
        self.id = room_id
        self.created_by = created_by
        self.created_at = datetime.now().isoformat()
        self.members: List[str] = []

    @property
    def is_full(self) -> bool:
        return len(self.members) >= MAX_ROOM_MEMBERS

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "clientCount": len(self.members),
            "createdBy": self.created_by,
            "createdAt": self.created_at,
        }


class RoomManager:
    """Owns the room table and keeps it consistent with each connection's room/role.

    Rooms hold at most two members: the caller who created the room and
    the callee who joined it. A room is deleted as soon as it is empty.
    """

    def __init__(self, registry: ConnectionRegistry, id_generator=generate_room_id):
        self.registry = registry
        self._rooms: Dict[str, Room] = {}
        self._generate_id = id_generator
        registry.subscribe_removal(self.leave)

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def _allocate_room_id(self) -> str:
        room_id = self._generate_id()
        while room_id in self._rooms:
            logger.debug(f"Generated room id {room_id} collides with an existing room, regenerating")
            room_id = self._generate_id()
        return room_id

    def create_room(self, connection_id: str, requested_room_id: Optional[str] = None) -> str:
        connection = self.registry.get(connection_id)
        if connection is None:
            raise ValueError(f"Unknown connection {connection_id}")

        if requested_room_id and requested_room_id in self._rooms:
            logger.warning(f"Create room failed: Room {requested_room_id} already exists (requested by {connection_id})")
            raise RoomAlreadyExists(requested_room_id)

        if connection.room_id is not None:
            self.leave(connection_id)

        room_id = requested_room_id or self._allocate_room_id()
        room = Room(room_id, created_by=connection_id)
        room.members.append(connection_id)
        self._rooms[room_id] = room
        connection.room_id = room_id
        connection.role = Role.CALLER

        logger.info(f"Room {room_id} created by {connection_id}. Total rooms: {len(self._rooms)}")
        connection.send({"type": "room-created", "roomId": room_id, "clientId": connection_id})
        return room_id

    def join_room(self, connection_id: str, room_id: Optional[str]) -> List[str]:
        connection = self.registry.get(connection_id)
        if connection is None:
            raise ValueError(f"Unknown connection {connection_id}")

        if not room_id:
            raise RoomIdRequired()
        room = self._rooms.get(room_id)
        if room is None:
            logger.warning(f"Join room failed: Room {room_id} not found (requested by {connection_id})")
            raise RoomNotFound(room_id)
        if connection_id in room.members:
            raise AlreadyInRoom(room_id)
        if room.is_full:
            logger.warning(f"Join room failed: Room {room_id} is full ({len(room.members)}/{MAX_ROOM_MEMBERS})")
            raise RoomFull(room_id)

        if connection.room_id is not None:
            self.leave(connection_id)

        other_members = list(room.members)
        room.members.append(connection_id)
        connection.room_id = room_id
        connection.role = Role.CALLEE
        logger.info(f"Client {connection_id} joined room {room_id} ({len(room.members)}/{MAX_ROOM_MEMBERS})")

        connection.send({
            "type": "room-joined",
            "roomId": room_id,
            "clientId": connection_id,
            "otherClients": other_members,
        })
        self._broadcast(room, {
            "type": "peer-joined",
            "roomId": room_id,
            "clientId": connection_id,
            "totalClients": len(room.members),
        })
        return other_members

    def leave(self, connection_id: str):
        connection = self.registry.get(connection_id)
        room_id = connection.room_id if connection else None
        if room_id is None:
            return

        connection.room_id = None
        connection.role = Role.NONE
        room = self._rooms.get(room_id)
        if room is None or connection_id not in room.members:
            return
        room.members.remove(connection_id)
        logger.info(f"Client {connection_id} left room {room_id}")

        if not room.members:
            del self._rooms[room_id]
            logger.info(f"Room {room_id} is empty, deleted. Total rooms: {len(self._rooms)}")
            return

        self._broadcast(room, {
            "type": "peer-disconnected",
            "clientId": connection_id,
            "roomId": room_id,
        })

    def list_rooms(self) -> List[dict]:
        return [room.to_summary() for room in self._rooms.values()]

    def snapshot(self) -> dict:
        """Room table plus totals, shared by the `room-list` message and `GET /rooms`."""
        return {
            "rooms": self.list_rooms(),
            "totalRooms": len(self._rooms),
            "totalClients": len(self.registry),
        }

    def peers_of(self, connection_id: str) -> List[str]:
        connection = self.registry.get(connection_id)
        if connection is None or connection.room_id is None:
            return []
        room = self._rooms[connection.room_id]
        return [member for member in room.members if member != connection_id]

    def _broadcast(self, room: Room, message: dict, exclude: Optional[str] = None):
        for member_id in room.members:
            if member_id == exclude:
                continue
            member = self.registry.get(member_id)
            if member is not None:
                member.send(message)
