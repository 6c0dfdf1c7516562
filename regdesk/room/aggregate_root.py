from dataclasses import dataclass
from typing import AbstractSet, Optional

from regdesk.errors import Forbidden, InvalidInput


@dataclass
class Room:
    room_no: str
    gender_type: Optional[str] = None
    room_id: Optional[int] = None

    def __post_init__(self):
        self.room_no = (self.room_no or "").strip()
        if not self.room_no:
            raise InvalidInput("Room number cannot be empty")

    def is_protected(self, protected_rooms: AbstractSet[str]) -> bool:
        return self.room_no in protected_rooms

    def ensure_deletable(self, protected_rooms: AbstractSet[str]) -> None:
        if self.is_protected(protected_rooms):
            raise Forbidden(f"Room {self.room_no} is protected and cannot be deleted")
