import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from regdesk.errors import NotFound
from regdesk.storage import CourseStorage
from .aggregate_root import Course

logger = logging.getLogger(__name__)


class CourseCatalog:
    def __init__(self, session: Session):
        self.session = session
        self.courses = CourseStorage(session)

    def create_course(
        self,
        course_name: str,
        start_date: date,
        end_date: date,
        teacher_name: Optional[str] = None,
        status: str = "Active",
    ) -> Course:
        course = Course(
            course_name=course_name.strip() if course_name else course_name,
            start_date=start_date,
            end_date=end_date,
            teacher_name=teacher_name,
            status=status,
        )
        self.courses.save(course)
        self.session.commit()
        logger.info("Created course %s '%s' (%s to %s)", course.course_id, course.course_name, start_date, end_date)
        return course

    def get_course(self, course_id: int) -> Course:
        course = self.courses.find_by_id(course_id)
        if course is None:
            raise NotFound(f"Course {course_id} not found")
        return course

    def list_courses(self) -> List[Course]:
        return self.courses.get_all()

    def reset_course(self, course_id: int) -> int:
        """Remove every expense and participant of a course, all or nothing."""
        self.get_course(course_id)
        try:
            removed = self.courses.clear_participants(course_id)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Reset of course %s rolled back", course_id)
            raise
        logger.info("Reset course %s, removed %s participants", course_id, removed)
        return removed

    def delete_course(self, course_id: int) -> None:
        try:
            deleted = self.courses.delete(course_id)
            if not deleted:
                raise NotFound(f"Course {course_id} not found")
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Deletion of course %s rolled back", course_id)
            raise
        logger.info("Deleted course %s", course_id)
