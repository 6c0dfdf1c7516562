from datetime import date
from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import AliasChoices, BaseModel, Field, field_validator
from sqlalchemy.orm import Session
from typing import Dict, List, Optional

from regdesk.allocation.engine import AllocationEngine
from regdesk.database import get_db
from regdesk.dependencies import http_error
from regdesk.errors import InvalidInput, RegistrationError
from regdesk.participant.intake import IntakeService
from regdesk.roster.importer import RosterImporter, RosterRow
from regdesk.schemas import CamelModel, ParticipantResponse
from regdesk.stats.aggregator import StatsAggregator
from .aggregate_root import Course
from .catalog import CourseCatalog

router = APIRouter(prefix="/courses", tags=["Courses"])

# ==========================================
# REQUEST/RESPONSE MODELS
# ==========================================

class CreateCourseRequest(CamelModel):
    # Optional here so a missing field is a 400 "Missing fields", not a 422
    course_name: Optional[str] = None
    teacher_name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None

class CourseResponse(BaseModel):
    course_id: int
    course_name: str
    teacher_name: Optional[str] = None
    start_date: date
    end_date: date
    status: str

    @staticmethod
    def from_domain(course: Course) -> 'CourseResponse':
        return CourseResponse(
            course_id=course.course_id,
            course_name=course.course_name,
            teacher_name=course.teacher_name,
            start_date=course.start_date,
            end_date=course.end_date,
            status=course.status,
        )

class StudentRow(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    conf_no: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("confNo", "conf_no", "confirmationNo")
    )
    courses_info: Optional[str] = None

    @field_validator("name", "phone", "email", "gender", "conf_no", "courses_info", mode="before")
    @classmethod
    def stringify(cls, v):
        # Spreadsheet exports hand us numbers for phone numbers and codes
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("age", mode="before")
    @classmethod
    def blank_age(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

class ImportRequest(BaseModel):
    students: Optional[List[StudentRow]] = None

class ImportResponse(BaseModel):
    added: int
    skipped: int

class GlobalOccupiedResponse(CamelModel):
    dining_seats: List[str]
    meditation_cells: List[str]

class LanguageBreakdown(BaseModel):
    language: str
    count: int
    male: int
    female: int

class StatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_status_gender: Dict[str, Dict[str, int]]
    demographics: Dict[str, int]
    languages: List[LanguageBreakdown]

# ==========================================
# ENDPOINTS
# ==========================================

@router.post("/", status_code=status.HTTP_201_CREATED, response_model=CourseResponse)
def create_course(request: CreateCourseRequest, db: Session = Depends(get_db)):
    """Create a new course"""
    try:
        if not request.course_name or not request.start_date or not request.end_date:
            raise InvalidInput("Missing fields: courseName, startDate and endDate are required")
        course = CourseCatalog(db).create_course(
            request.course_name,
            request.start_date,
            request.end_date,
            teacher_name=request.teacher_name,
            status=request.status or "Active",
        )
    except RegistrationError as e:
        raise http_error(e)
    return CourseResponse.from_domain(course)

@router.get("/", response_model=List[CourseResponse])
def get_all_courses(db: Session = Depends(get_db)):
    """All courses, most recent start date first"""
    return [CourseResponse.from_domain(c) for c in CourseCatalog(db).list_courses()]

@router.get("/{course_id}", response_model=CourseResponse)
def get_course(course_id: int, db: Session = Depends(get_db)):
    try:
        return CourseResponse.from_domain(CourseCatalog(db).get_course(course_id))
    except RegistrationError as e:
        raise http_error(e)

@router.delete("/{course_id}")
def delete_course(course_id: int, db: Session = Depends(get_db)):
    """Delete a course together with its participants and expenses"""
    try:
        CourseCatalog(db).delete_course(course_id)
    except RegistrationError as e:
        raise http_error(e)
    return {"message": "Course deleted successfully"}

@router.post("/{course_id}/reset")
def reset_course(course_id: int, db: Session = Depends(get_db)):
    """Remove all participants and expenses but keep the course"""
    try:
        removed = CourseCatalog(db).reset_course(course_id)
    except RegistrationError as e:
        raise http_error(e)
    return {"message": "Course reset successfully", "removed": removed}

@router.get("/{course_id}/participants", response_model=List[ParticipantResponse])
def get_course_participants(course_id: int, db: Session = Depends(get_db)):
    """Participants of a course ordered by name"""
    try:
        participants = IntakeService(db).list_for_course(course_id)
    except RegistrationError as e:
        raise http_error(e)
    return [ParticipantResponse.from_domain(p) for p in participants]

@router.post("/{course_id}/import", response_model=ImportResponse)
def import_students(course_id: int, request: ImportRequest, db: Session = Depends(get_db)):
    """Bulk import a roster; rows matching an existing participant are skipped"""
    if request.students is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid data format")

    rows = [
        RosterRow(
            name=s.name,
            phone=s.phone,
            email=s.email,
            age=s.age,
            gender=s.gender,
            conf_no=s.conf_no,
            courses_info=s.courses_info,
        )
        for s in request.students
    ]
    try:
        result = RosterImporter(db).import_rows(course_id, rows)
    except RegistrationError as e:
        raise http_error(e)
    return ImportResponse(added=result.added, skipped=result.skipped)

@router.get("/{course_id}/global-occupied", response_model=GlobalOccupiedResponse)
def get_global_occupied(course_id: int, db: Session = Depends(get_db)):
    """Dining seats and meditation cells already taken by overlapping courses"""
    try:
        occupied = AllocationEngine(db).global_occupied(course_id)
    except RegistrationError as e:
        raise http_error(e)
    return GlobalOccupiedResponse(
        dining_seats=occupied['dining_seats'],
        meditation_cells=occupied['meditation_cells'],
    )

@router.get("/{course_id}/stats", response_model=StatsResponse)
def get_course_stats(course_id: int, db: Session = Depends(get_db)):
    try:
        return StatsAggregator(db).course_summary(course_id)
    except RegistrationError as e:
        raise http_error(e)
