from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from typing import Annotated, Literal, Optional, Union

RELAY_TYPES = ("offer", "answer", "candidate", "hangup", "ping")


class CreateRoomMessage(BaseModel):
    type: Literal["create-room"]
    roomId: Optional[str] = None


class JoinRoomMessage(BaseModel):
    type: Literal["join-room"]
    # Missing or empty is reported as RoomIdRequired, not as a format error
    roomId: Optional[str] = None


class ListRoomsMessage(BaseModel):
    type: Literal["list-rooms"]


class PongMessage(BaseModel):
    type: Literal["pong"]


class RelayMessage(BaseModel):
    """Peer-to-peer payload; everything except ``type`` is opaque."""
    model_config = ConfigDict(extra="allow")

    type: Literal["offer", "answer", "candidate", "hangup", "ping"]


InboundMessage = Annotated[
    Union[CreateRoomMessage, JoinRoomMessage, ListRoomsMessage, PongMessage, RelayMessage],
    Field(discriminator="type"),
]

inbound_message_adapter = TypeAdapter(InboundMessage)


class RoomSummary(BaseModel):
    id: str
    clientCount: int
    createdBy: str
    createdAt: str


class RoomListResponse(BaseModel):
    rooms: list[RoomSummary]
    totalRooms: int
    totalClients: int
