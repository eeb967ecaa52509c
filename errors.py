"""
Signaling errors reported back to the connection that triggered them.

Every error here is recoverable: the router catches it, unicasts an
``error`` message to the sender and keeps the connection open.
"""


class SignalingError(Exception):
    code = "SignalingError"
    default_message = "Signaling error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_message(self) -> dict:
        return {"type": "error", "code": self.code, "message": self.message}


class RoomAlreadyExists(SignalingError):
    code = "RoomAlreadyExists"
    default_message = "Room already exists"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} already exists")
        self.room_id = room_id


class RoomIdRequired(SignalingError):
    code = "RoomIdRequired"
    default_message = "Room ID is required"


class RoomNotFound(SignalingError):
    code = "RoomNotFound"
    default_message = "Room not found"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} not found")
        self.room_id = room_id


class RoomFull(SignalingError):
    code = "RoomFull"
    default_message = "Room is full"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} is full")
        self.room_id = room_id


class AlreadyInRoom(SignalingError):
    code = "AlreadyInRoom"
    default_message = "Already in this room"

    def __init__(self, room_id: str):
        super().__init__(f"Already in room {room_id}")
        self.room_id = room_id


class NotInRoom(SignalingError):
    code = "NotInRoom"
    default_message = "Not in a room"


class UnknownMessageType(SignalingError):
    code = "UnknownMessageType"
    default_message = "Unknown message type"

    def __init__(self, message_type):
        super().__init__(f"Unknown message type: {message_type}")
        self.message_type = message_type


class InvalidMessageFormat(SignalingError):
    code = "InvalidMessageFormat"
    default_message = "Invalid message format"
