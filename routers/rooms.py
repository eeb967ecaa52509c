from fastapi import APIRouter, HTTPException, Request
from schemas.messages import RoomListResponse, RoomSummary
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("", response_model=RoomListResponse)
async def list_rooms(request: Request):
    """Read-only snapshot of the room table, same shape as the `room-list` message."""
    backend = request.app.state.backend
    snapshot = backend.room_list()
    logger.debug(f"Room list requested from {request.client.host if request.client else 'unknown'}: {snapshot['totalRooms']} rooms")
    return RoomListResponse(**snapshot)


@rooms_router.get("/{room_id}", response_model=RoomSummary)
async def get_room_details(room_id: str, request: Request):
    room = request.app.state.backend.rooms.get(room_id)
    if not room:
        logger.warning(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    return RoomSummary(**room.to_summary())
