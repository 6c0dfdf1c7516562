import logging
from typing import AbstractSet, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from regdesk.errors import Conflict, NotFound
from regdesk.storage import ParticipantStorage, RoomStorage
from .aggregate_root import Room

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Catalog of rooms; protected numbers are supplied at startup."""

    def __init__(self, session: Session, protected_rooms: AbstractSet[str]):
        self.session = session
        self.protected_rooms = frozenset(protected_rooms)
        self.rooms = RoomStorage(session)
        self.participants = ParticipantStorage(session)

    def create_room(self, room_no: str, gender_type: Optional[str] = None) -> Room:
        room = Room(room_no=room_no, gender_type=gender_type)
        if self.rooms.find_by_number(room.room_no) is not None:
            raise Conflict(f"Room {room.room_no} already exists", field='room_no', value=room.room_no)
        try:
            self.rooms.save(room)
            self.session.commit()
        except IntegrityError as e:
            # Created by a concurrent request between the check and the insert
            self.session.rollback()
            raise Conflict(f"Room {room.room_no} already exists", field='room_no', value=room.room_no) from e
        logger.info("Created room %s (%s)", room.room_no, room.gender_type)
        return room

    def list_rooms(self) -> List[Room]:
        return self.rooms.get_all()

    def delete_room(self, room_id: int) -> Room:
        room = self.rooms.find_by_id(room_id)
        if room is None:
            raise NotFound(f"Room {room_id} not found")
        room.ensure_deletable(self.protected_rooms)

        # Participants keep the room number as a plain value; stale
        # references are expected after this.
        self.rooms.delete(room_id)
        self.session.commit()
        logger.info("Deleted room %s", room.room_no)
        return room

    def list_occupancy(self) -> List[dict]:
        return [
            {
                "room_no": p.room_no,
                "participant_id": p.participant_id,
                "full_name": p.full_name,
                "status": p.status,
                "gender": p.gender,
                "course_id": c.course_id,
                "course_name": c.course_name,
            }
            for p, c in self.participants.find_room_occupants()
        ]
