from dataclasses import dataclass
from datetime import date
from typing import Optional

from regdesk.errors import InvalidInput


@dataclass
class Course:
    course_name: str
    start_date: date
    end_date: date
    teacher_name: Optional[str] = None
    status: str = "Active"
    course_id: Optional[int] = None

    def __post_init__(self):
        if not self.course_name or not self.course_name.strip():
            raise InvalidInput("Course name cannot be empty")
        if self.end_date < self.start_date:
            raise InvalidInput("End date must not be before start date")

    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def overlaps_with(self, other: 'Course') -> bool:
        return not (self.end_date < other.start_date or self.start_date > other.end_date)
