import logging
from dataclasses import fields
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from regdesk.course.aggregate_root import Course
from regdesk.database import CourseModel, ExpenseModel, ParticipantModel, RoomModel
from regdesk.participant.aggregate_root import Participant
from regdesk.participant.value_objects import ParticipantStatus
from regdesk.room.aggregate_root import Room

logger = logging.getLogger(__name__)

_PARTICIPANT_COLUMNS = tuple(f.name for f in fields(Participant))


def _status_of(row: ParticipantModel) -> ParticipantStatus:
    status = ParticipantStatus.from_legacy(row.status)
    if status is None:
        logger.warning(
            "Participant %s has unknown status %r, treating it as %s",
            row.participant_id, row.status, ParticipantStatus.NO_RESPONSE.value,
        )
        return ParticipantStatus.NO_RESPONSE
    return status


def _to_participant(row: ParticipantModel) -> Participant:
    values = {name: getattr(row, name) for name in _PARTICIPANT_COLUMNS}
    values['status'] = _status_of(row)
    return Participant(**values)


def _to_course(row: CourseModel) -> Course:
    return Course(
        course_id=row.course_id,
        course_name=row.course_name,
        teacher_name=row.teacher_name,
        start_date=row.start_date,
        end_date=row.end_date,
        status=row.status,
    )


def _to_room(row: RoomModel) -> Room:
    return Room(room_id=row.room_id, room_no=row.room_no, gender_type=row.gender_type)


class CourseStorage:
    def __init__(self, session: Session):
        self.session = session

    def save(self, course: Course) -> None:
        row = self.session.get(CourseModel, course.course_id) if course.course_id else None
        if row is None:
            row = CourseModel()
            self.session.add(row)
        row.course_name = course.course_name
        row.teacher_name = course.teacher_name
        row.start_date = course.start_date
        row.end_date = course.end_date
        row.status = course.status
        self.session.flush()
        course.course_id = row.course_id

    def find_by_id(self, course_id: int) -> Optional[Course]:
        row = self.session.get(CourseModel, course_id)
        return _to_course(row) if row else None

    def lock(self, course_id: int) -> Optional[Course]:
        """Load the course row FOR UPDATE; serializes token issue per course."""
        row = self.session.execute(
            select(CourseModel).where(CourseModel.course_id == course_id).with_for_update()
        ).scalar_one_or_none()
        return _to_course(row) if row else None

    def get_all(self) -> List[Course]:
        rows = self.session.scalars(
            select(CourseModel).order_by(CourseModel.start_date.desc(), CourseModel.course_id.desc())
        )
        return [_to_course(r) for r in rows]

    def find_overlapping(self, course: Course) -> List[Course]:
        """Other courses whose date range intersects `course`."""
        rows = self.session.scalars(
            select(CourseModel).where(
                CourseModel.course_id != course.course_id,
                CourseModel.start_date <= course.end_date,
                CourseModel.end_date >= course.start_date,
            )
        )
        return [_to_course(r) for r in rows]

    def clear_participants(self, course_id: int) -> int:
        """Delete expenses, then participants, of a course. Caller owns the transaction."""
        self.session.execute(delete(ExpenseModel).where(ExpenseModel.course_id == course_id))
        result = self.session.execute(
            delete(ParticipantModel).where(ParticipantModel.course_id == course_id)
        )
        return result.rowcount or 0

    def delete(self, course_id: int) -> bool:
        row = self.session.get(CourseModel, course_id)
        if row is None:
            return False
        self.clear_participants(course_id)
        self.session.delete(row)
        self.session.flush()
        return True


class ParticipantStorage:
    def __init__(self, session: Session):
        self.session = session

    def save(self, participant: Participant) -> None:
        row = None
        if participant.participant_id is not None:
            row = self.session.get(ParticipantModel, participant.participant_id)
        if row is None:
            row = ParticipantModel()
            self.session.add(row)
        for name, value in participant.to_dict().items():
            if name == 'participant_id':
                continue
            setattr(row, name, value)
        self.session.flush()
        participant.participant_id = row.participant_id

    def find_by_id(self, participant_id: int) -> Optional[Participant]:
        row = self.session.get(ParticipantModel, participant_id)
        return _to_participant(row) if row else None

    def find_in_course(self, participant_id: int, course_id: int) -> Optional[Participant]:
        row = self.session.execute(
            select(ParticipantModel).where(
                ParticipantModel.participant_id == participant_id,
                ParticipantModel.course_id == course_id,
            )
        ).scalar_one_or_none()
        return _to_participant(row) if row else None

    def find_by_course(self, course_id: int) -> List[Participant]:
        rows = self.session.scalars(
            select(ParticipantModel)
            .where(ParticipantModel.course_id == course_id)
            .order_by(ParticipantModel.full_name.asc(), ParticipantModel.participant_id.asc())
        )
        return [_to_participant(r) for r in rows]

    def max_token(self, course_id: int) -> int:
        value = self.session.scalar(
            select(func.max(ParticipantModel.token_number)).where(ParticipantModel.course_id == course_id)
        )
        return value or 0

    def find_holders(
        self,
        field: str,
        value: str,
        course_ids: Optional[Iterable[int]] = None,
        statuses: Optional[Sequence[ParticipantStatus]] = None,
        exclude_participant_id: Optional[int] = None,
        include_cancelled: bool = False,
    ) -> List[Participant]:
        """Participants holding `value` in column `field`.

        Cancelled participants hold no resources unless `include_cancelled`
        is set (token numbers stay taken after a cancellation).
        """
        column = getattr(ParticipantModel, field)
        query = select(ParticipantModel).where(column == value)
        if not include_cancelled:
            query = query.where(ParticipantModel.status != ParticipantStatus.CANCELLED.value)
        if course_ids is not None:
            query = query.where(ParticipantModel.course_id.in_(list(course_ids)))
        if statuses is not None:
            query = query.where(ParticipantModel.status.in_([s.value for s in statuses]))
        if exclude_participant_id is not None:
            query = query.where(ParticipantModel.participant_id != exclude_participant_id)
        return [_to_participant(r) for r in self.session.scalars(query)]

    def occupied_values(
        self, field: str, course_ids: Iterable[int], statuses: Sequence[ParticipantStatus]
    ) -> List[str]:
        column = getattr(ParticipantModel, field)
        ids = list(course_ids)
        if not ids:
            return []
        rows = self.session.scalars(
            select(column).distinct().where(
                ParticipantModel.course_id.in_(ids),
                ParticipantModel.status.in_([s.value for s in statuses]),
                column.is_not(None),
            ).order_by(column)
        )
        return list(rows)

    def find_room_occupants(self) -> List[tuple]:
        """(participant row, course row) for everyone with a room assigned."""
        return list(self.session.execute(
            select(ParticipantModel, CourseModel)
            .join(CourseModel, ParticipantModel.course_id == CourseModel.course_id)
            .where(ParticipantModel.room_no.is_not(None))
            .order_by(ParticipantModel.room_no, ParticipantModel.participant_id)
        ).all())

    def delete(self, participant_id: int) -> bool:
        row = self.session.get(ParticipantModel, participant_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.flush()
        return True


class RoomStorage:
    def __init__(self, session: Session):
        self.session = session

    def save(self, room: Room) -> None:
        row = RoomModel(room_no=room.room_no, gender_type=room.gender_type)
        self.session.add(row)
        self.session.flush()
        room.room_id = row.room_id

    def find_by_id(self, room_id: int) -> Optional[Room]:
        row = self.session.get(RoomModel, room_id)
        return _to_room(row) if row else None

    def find_by_number(self, room_no: str) -> Optional[Room]:
        row = self.session.execute(
            select(RoomModel).where(RoomModel.room_no == room_no)
        ).scalar_one_or_none()
        return _to_room(row) if row else None

    def get_all(self) -> List[Room]:
        return [_to_room(r) for r in self.session.scalars(select(RoomModel).order_by(RoomModel.room_no))]

    def delete(self, room_id: int) -> bool:
        row = self.session.get(RoomModel, room_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.flush()
        return True
