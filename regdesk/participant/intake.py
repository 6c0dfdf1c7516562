"""
Participant intake pipeline.

    Registered(0) -> token issued at the gate(1) -> briefed(2)
                  -> interviewed(3) -> onboarded(4)

Onboarding itself lives in `regdesk.allocation.engine`; this module covers
everything up to it plus direct record maintenance.
"""
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from regdesk.allocation.engine import commit_participant, resolve_conflict
from regdesk.errors import Conflict, InvalidTransition, NotFound
from regdesk.storage import CourseStorage, ParticipantStorage
from .aggregate_root import Participant

logger = logging.getLogger(__name__)

# Attempts at issuing a gate token before giving up on a busy course
TOKEN_ISSUE_ATTEMPTS = 5


class IntakeService:
    def __init__(self, session: Session):
        self.session = session
        self.participants = ParticipantStorage(session)
        self.courses = CourseStorage(session)

    def _get(self, participant_id: int) -> Participant:
        participant = self.participants.find_by_id(participant_id)
        if participant is None:
            raise NotFound(f"Participant {participant_id} not found")
        return participant

    def get(self, participant_id: int) -> Participant:
        return self._get(participant_id)

    def list_for_course(self, course_id: int) -> List[Participant]:
        if self.courses.find_by_id(course_id) is None:
            raise NotFound(f"Course {course_id} not found")
        return self.participants.find_by_course(course_id)

    def record_arrival(self, participant_id: int, course_id: int) -> Participant:
        """Issue the next gate token of the course.

        The course row is locked for the read-max-then-write, and the unique
        (course_id, token_number) index catches anything that slips past a
        store without row locks; a collision is retried with a fresh max.
        A participant who already holds a token gets it back unchanged; anyone
        else past stage 0 is rejected. A collision on any other field (a
        cancelled participant whose resource was reassigned) is reported at
        once instead of being retried.
        """
        for attempt in range(1, TOKEN_ISSUE_ATTEMPTS + 1):
            course = self.courses.lock(course_id)
            participant = self.participants.find_in_course(participant_id, course_id)
            if course is None or participant is None:
                self.session.rollback()
                raise NotFound(f"Participant {participant_id} not found in course {course_id}")

            if participant.has_arrived():
                self.session.rollback()
                logger.info(
                    "Participant %s already arrived with token %s", participant_id, participant.token_number
                )
                return participant

            try:
                participant.record_arrival(self.participants.max_token(course_id) + 1)
            except InvalidTransition:
                self.session.rollback()
                raise

            try:
                self.participants.save(participant)
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                conflict = resolve_conflict(self.participants, participant, e)
                if conflict.field != 'token_number':
                    logger.warning(
                        "Arrival conflict for participant %s: %s", participant_id, conflict.message
                    )
                    raise conflict from e
                logger.warning(
                    "Token %s in course %s was taken concurrently (attempt %s)",
                    participant.token_number, course_id, attempt,
                )
                continue

            logger.info(
                "Participant %s arrived in course %s with token %s",
                participant_id, course_id, participant.token_number,
            )
            return participant

        raise Conflict(
            f"Could not issue a token in course {course_id}, please retry",
            field='token_number',
        )

    def advance_stage(self, participant_id: int, stage: int) -> Participant:
        participant = self._get(participant_id)
        previous = participant.process_stage
        participant.advance_stage(stage)
        if stage < previous or stage > previous + 1:
            logger.warning(
                "Participant %s moved from stage %s to stage %s", participant_id, int(previous), stage
            )
        self.participants.save(participant)
        self.session.commit()
        return participant

    def gate_check_in(self, participant_id: int) -> Participant:
        participant = self.participants.find_by_id(participant_id)
        if participant is None:
            raise InvalidTransition(f"Participant {participant_id} not found")
        participant.gate_check_in()
        commit_participant(self.session, self.participants, participant)
        logger.info("Participant %s checked in at the gate", participant_id)
        return participant

    def gate_cancel(self, participant_id: int) -> Participant:
        participant = self.participants.find_by_id(participant_id)
        if participant is None:
            raise InvalidTransition(f"Participant {participant_id} not found")
        participant.gate_cancel()
        commit_participant(self.session, self.participants, participant)
        logger.info("Participant %s cancelled at the gate", participant_id)
        return participant

    def register(self, course_id: int, full_name: str, **details) -> Participant:
        if self.courses.find_by_id(course_id) is None:
            raise NotFound(f"Course {course_id} not found")
        participant = Participant.register(course_id, full_name, **details)
        commit_participant(self.session, self.participants, participant)
        logger.info("Registered participant %s in course %s", participant.participant_id, course_id)
        return participant

    def update(self, participant_id: int, **changes) -> Participant:
        participant = self._get(participant_id)
        participant.update_details(**changes)
        commit_participant(self.session, self.participants, participant)
        return participant

    def delete(self, participant_id: int) -> None:
        if not self.participants.delete(participant_id):
            raise NotFound(f"Participant {participant_id} not found")
        self.session.commit()
        logger.info("Deleted participant %s", participant_id)
