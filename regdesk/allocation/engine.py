"""
Resource allocation for onboarding.

A participant's room, dining seat, lockers, laundry token, meditation cell
and hall seat are committed together in one transaction. Uniqueness inside
a course is enforced by the partial unique indexes declared in
`regdesk.database`; this module translates a violation back into the
resource that collided. Dining seats and meditation cells are additionally
checked against every other course whose dates overlap.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from regdesk.database import UNIQUE_RESOURCE_FIELDS
from regdesk.errors import Conflict, NotFound
from regdesk.participant.aggregate_root import Participant
from regdesk.participant.value_objects import (
    OCCUPYING_STATUSES, RESOURCE_LABELS, ResourceBundle
)
from regdesk.storage import CourseStorage, ParticipantStorage

logger = logging.getLogger(__name__)

# Resources that are scarce across concurrently running courses
CROSS_COURSE_FIELDS = ('dining_seat_no', 'pagoda_cell_no')


def _conflict_for(field: str, value, holder: Optional[Participant] = None) -> Conflict:
    label = RESOURCE_LABELS.get(field, field)
    if holder is not None:
        message = f"{label} {value} is already assigned to {holder.full_name} (participant {holder.participant_id})"
    else:
        message = f"{label} {value} is already assigned"
    return Conflict(message, field=field, value=None if value is None else str(value))


def _field_from_error(error: IntegrityError) -> Optional[str]:
    """Best effort: pull the column out of the driver message.

    SQLite reports `participants.course_id, participants.room_no`, Postgres
    reports the index name `uq_participants_course_room_no`.
    """
    text = str(getattr(error, 'orig', error))
    for field in UNIQUE_RESOURCE_FIELDS + ('token_number',):
        if f"participants.{field}" in text or f"uq_participants_course_{field}" in text:
            return field
    return None


def resolve_conflict(storage: ParticipantStorage, participant: Participant, error: IntegrityError) -> Conflict:
    """Work out which of `participant`'s values collided.

    Must be called after the failed transaction was rolled back. Each
    uniquely allocated value is looked up among the other non-cancelled
    participants of the course; the first one held by someone else wins.
    """
    candidates = UNIQUE_RESOURCE_FIELDS + ('token_number',)
    for field in candidates:
        value = getattr(participant, field)
        if value is None:
            continue
        holders = storage.find_holders(
            field,
            value,
            course_ids=[participant.course_id],
            exclude_participant_id=participant.participant_id,
            include_cancelled=(field == 'token_number'),
        )
        if holders:
            return _conflict_for(field, value, holders[0])

    field = _field_from_error(error)
    if field is not None:
        return _conflict_for(field, getattr(participant, field, None))

    logger.warning("Unidentified constraint violation for participant %s: %s", participant.participant_id, error)
    return Conflict("Duplicate assignment: a resource in this request is already taken")


def commit_participant(session: Session, storage: ParticipantStorage, participant: Participant) -> None:
    """Flush and commit `participant`, turning constraint violations into `Conflict`."""
    try:
        storage.save(participant)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        conflict = resolve_conflict(storage, participant, e)
        logger.warning(
            "Allocation conflict for participant %s: %s", participant.participant_id, conflict.message
        )
        raise conflict from e


class AllocationEngine:
    def __init__(self, session: Session):
        self.session = session
        self.participants = ParticipantStorage(session)
        self.courses = CourseStorage(session)

    def onboard(self, participant_id: int, course_id: int, bundle: ResourceBundle) -> Participant:
        participant = self.participants.find_in_course(participant_id, course_id)
        if participant is None:
            raise NotFound(f"Participant {participant_id} not found in course {course_id}")

        participant.ensure_interviewed()
        normalized = bundle.normalized()

        if normalized.room_no is not None:
            self._ensure_room_free(participant, normalized.room_no)
        self._ensure_free_in_overlapping_courses(participant, normalized)

        participant.onboard(normalized)
        commit_participant(self.session, self.participants, participant)
        logger.info(
            "Participant %s onboarded in course %s (room=%s, dining=%s, cell=%s)",
            participant.participant_id, course_id, participant.room_no,
            participant.dining_seat_no, participant.pagoda_cell_no,
        )
        return participant

    def _ensure_room_free(self, participant: Participant, room_no: str) -> None:
        # An occupant in any course blocks the room
        occupants = self.participants.find_holders(
            'room_no',
            room_no,
            statuses=OCCUPYING_STATUSES,
            exclude_participant_id=participant.participant_id,
        )
        if occupants:
            raise _conflict_for('room_no', room_no, occupants[0])

    def _ensure_free_in_overlapping_courses(self, participant: Participant, bundle: ResourceBundle) -> None:
        wanted = {f: getattr(bundle, f) for f in CROSS_COURSE_FIELDS if getattr(bundle, f) is not None}
        if not wanted:
            return
        course = self.courses.find_by_id(participant.course_id)
        other_ids = [c.course_id for c in self.courses.find_overlapping(course)]
        if not other_ids:
            return
        for field, value in wanted.items():
            holders = self.participants.find_holders(
                field, value, course_ids=other_ids, statuses=OCCUPYING_STATUSES
            )
            if holders:
                raise _conflict_for(field, value, holders[0])

    def global_occupied(self, course_id: int) -> Dict[str, List[str]]:
        """Dining seats and meditation cells taken by overlapping courses.

        Advisory only; the unique indexes remain the authority.
        """
        course = self.courses.find_by_id(course_id)
        if course is None:
            raise NotFound(f"Course {course_id} not found")

        other_ids = [c.course_id for c in self.courses.find_overlapping(course)]
        return {
            'dining_seats': self.participants.occupied_values('dining_seat_no', other_ids, OCCUPYING_STATUSES),
            'meditation_cells': self.participants.occupied_values('pagoda_cell_no', other_ids, OCCUPYING_STATUSES),
        }
