from sqlalchemy import (
    create_engine, Column, String, Integer, Date, Text, Numeric,
    ForeignKey, Index, CheckConstraint, text
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship

from regdesk.config import get_database_url

# Tests set `DATABASE_URL` themselves (see `regdesk/tests/conftest.py`).
DATABASE_URL = get_database_url()

if DATABASE_URL.startswith("sqlite"):
    # SQLite: sync driver shared across the request threadpool
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False}
    )
else:
    engine = create_engine(DATABASE_URL, echo=False)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()

# Resource fields that must be unique among the non-cancelled participants
# of one course. Values are copies of room/seat labels, not foreign keys.
UNIQUE_RESOURCE_FIELDS = (
    'room_no',
    'dining_seat_no',
    'laundry_token_no',
    'mobile_locker_no',
    'valuables_locker_no',
    'pagoda_cell_no',
    'dhamma_hall_seat_no',
    'conf_no',
)

# ============================================================================
# ORM MODELS
# ============================================================================

class CourseModel(Base):
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_courses_date_range"),
    )

    course_id = Column(Integer, primary_key=True, autoincrement=True)
    course_name = Column(String, nullable=False)
    teacher_name = Column(String, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(50), nullable=False, default="Active")

    participants = relationship("ParticipantModel", back_populates="course", passive_deletes=True)
    expenses = relationship("ExpenseModel", back_populates="course", passive_deletes=True)


class ParticipantModel(Base):
    __tablename__ = "participants"

    participant_id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String, nullable=False)
    conf_no = Column(String(50), nullable=True)

    # Workflow state
    status = Column(String(32), nullable=False, default="No Response")
    process_stage = Column(Integer, nullable=False, default=0)
    token_number = Column(Integer, nullable=True)

    # Resource assignments
    room_no = Column(String(50), nullable=True)
    dining_seat_no = Column(String(50), nullable=True)
    dining_seat_type = Column(String(50), nullable=True)
    laundry_token_no = Column(String(50), nullable=True)
    mobile_locker_no = Column(String(50), nullable=True)
    valuables_locker_no = Column(String(50), nullable=True)
    pagoda_cell_no = Column(String(50), nullable=True)
    dhamma_hall_seat_no = Column(String(50), nullable=True)
    special_seating = Column(String(100), nullable=True)

    # Descriptive / report fields
    gender = Column(String(20), nullable=True)
    age = Column(Integer, nullable=True)
    email = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    discourse_language = Column(String(50), nullable=True, default="English")
    evening_food = Column(String(100), nullable=True)
    medical_info = Column(Text, nullable=True)
    teacher_notes = Column(Text, nullable=True)
    laptop_details = Column(Text, nullable=True)
    courses_info = Column(Text, nullable=True)

    course = relationship("CourseModel", back_populates="participants")


class RoomModel(Base):
    __tablename__ = "rooms"

    room_id = Column(Integer, primary_key=True, autoincrement=True)
    room_no = Column(String(50), nullable=False, unique=True)
    gender_type = Column(String(20), nullable=True)


class ExpenseModel(Base):
    __tablename__ = "expenses"

    expense_id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String, nullable=True)
    amount = Column(Numeric(precision=12, scale=2), default=0)

    course = relationship("CourseModel", back_populates="expenses")


# Token numbers are unique per course whatever the status.
Index(
    "uq_participants_course_token_number",
    ParticipantModel.course_id,
    ParticipantModel.token_number,
    unique=True,
)

_NOT_CANCELLED = text("status <> 'Cancelled'")

for _field in UNIQUE_RESOURCE_FIELDS:
    Index(
        f"uq_participants_course_{_field}",
        ParticipantModel.course_id,
        getattr(ParticipantModel, _field),
        unique=True,
        sqlite_where=_NOT_CANCELLED,
        postgresql_where=_NOT_CANCELLED,
    )


# ============================================================================
# HELPERS
# ============================================================================

def init_db():
    Base.metadata.create_all(bind=engine)

# Alias used by the app lifespan
create_tables = init_db


def drop_tables():
    """Drop all tables (use with caution)."""
    Base.metadata.drop_all(bind=engine)


# Dependency injection for the request session
def get_session():
    """Yield a session bound to the current engine."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

get_db = get_session
