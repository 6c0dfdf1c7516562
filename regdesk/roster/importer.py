"""
Duplicate-safe roster import.

Rows are matched against the participants already in the course by
case-insensitive name or exact confirmation number. A matching row is
skipped without touching the existing record, so re-importing a roster
never undoes check-in progress or resource assignments.

The import is one transaction: a store error rolls back every insert and
surfaces as `ImportAborted` with the number of rows handled so far.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from regdesk.errors import ImportAborted, NotFound
from regdesk.participant.aggregate_root import Participant
from regdesk.participant.value_objects import normalize_resource
from regdesk.storage import CourseStorage, ParticipantStorage

logger = logging.getLogger(__name__)


@dataclass
class RosterRow:
    name: Optional[str]
    phone: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    conf_no: Optional[str] = None
    courses_info: Optional[str] = None


@dataclass(frozen=True)
class ImportResult:
    added: int
    skipped: int


def _name_key(name: str) -> str:
    return name.strip().lower()


class RosterImporter:
    def __init__(self, session: Session):
        self.session = session
        self.participants = ParticipantStorage(session)
        self.courses = CourseStorage(session)

    def import_rows(self, course_id: int, rows: Iterable[RosterRow]) -> ImportResult:
        if self.courses.find_by_id(course_id) is None:
            raise NotFound(f"Course {course_id} not found")

        existing = self.participants.find_by_course(course_id)
        known_names = {_name_key(p.full_name) for p in existing}
        known_conf_nos = {p.conf_no for p in existing if p.conf_no}

        added = skipped = processed = 0
        try:
            for row in rows:
                name = (row.name or "").strip()
                if not name:
                    processed += 1
                    continue

                conf_no = normalize_resource(row.conf_no)
                if _name_key(name) in known_names or (conf_no and conf_no in known_conf_nos):
                    skipped += 1
                    processed += 1
                    continue

                participant = Participant.register(
                    course_id,
                    name,
                    phone_number=row.phone or "",
                    email=row.email or "",
                    age=row.age,
                    gender=row.gender,
                    conf_no=conf_no,
                    courses_info=row.courses_info,
                )
                self.participants.save(participant)
                known_names.add(_name_key(name))
                if conf_no:
                    known_conf_nos.add(conf_no)
                added += 1
                processed += 1

            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Roster import for course %s aborted after %s rows", course_id, processed)
            raise ImportAborted(
                f"Import aborted after {processed} rows; no rows were saved: {e.__class__.__name__}",
                processed=processed,
            ) from e

        logger.info("Roster import for course %s: %s added, %s skipped", course_id, added, skipped)
        return ImportResult(added=added, skipped=skipped)
