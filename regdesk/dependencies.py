from typing import FrozenSet

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from regdesk.database import get_db
from regdesk.errors import RegistrationError
from regdesk.room.registry import RoomRegistry


def http_error(error: RegistrationError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.detail)


def get_protected_rooms(request: Request) -> FrozenSet[str]:
    return request.app.state.protected_rooms


def get_room_registry(
    db: Session = Depends(get_db),
    protected_rooms: FrozenSet[str] = Depends(get_protected_rooms),
) -> RoomRegistry:
    return RoomRegistry(db, protected_rooms)
