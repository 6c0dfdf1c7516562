from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from typing import List, Optional

from regdesk.dependencies import get_room_registry, http_error
from regdesk.errors import RegistrationError
from regdesk.schemas import CamelModel
from .aggregate_root import Room
from .registry import RoomRegistry

router = APIRouter(prefix="/rooms", tags=["Rooms"])

# Request/Response Models
class CreateRoomRequest(CamelModel):
    room_no: str
    gender_type: Optional[str] = None

class RoomResponse(BaseModel):
    room_id: int
    room_no: str
    gender_type: Optional[str] = None

    @staticmethod
    def from_domain(room: Room) -> 'RoomResponse':
        return RoomResponse(room_id=room.room_id, room_no=room.room_no, gender_type=room.gender_type)

class OccupancyResponse(BaseModel):
    room_no: str
    participant_id: int
    full_name: str
    status: str
    gender: Optional[str] = None
    course_id: int
    course_name: str

# Endpoints
@router.post("/", status_code=status.HTTP_201_CREATED, response_model=RoomResponse)
def create_room(request: CreateRoomRequest, registry: RoomRegistry = Depends(get_room_registry)):
    try:
        room = registry.create_room(request.room_no, request.gender_type)
    except RegistrationError as e:
        raise http_error(e)
    return RoomResponse.from_domain(room)

@router.get("/", response_model=List[RoomResponse])
def get_all_rooms(registry: RoomRegistry = Depends(get_room_registry)):
    return [RoomResponse.from_domain(r) for r in registry.list_rooms()]

@router.get("/occupancy", response_model=List[OccupancyResponse])
def get_occupancy(registry: RoomRegistry = Depends(get_room_registry)):
    """Who holds which room, across all courses"""
    return registry.list_occupancy()

@router.delete("/{room_id}")
def delete_room(room_id: int, registry: RoomRegistry = Depends(get_room_registry)):
    try:
        room = registry.delete_room(room_id)
    except RegistrationError as e:
        raise http_error(e)
    return {"message": f"Room {room.room_no} deleted successfully"}
