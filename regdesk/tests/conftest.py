"""
Shared test fixtures.
Point the app at a local SQLite file instead of Postgres so that tests run
fast and without external dependencies.
"""
import os, pytest
from datetime import date

# ── Force SQLite BEFORE any regdesk module is imported ────────────────────
os.environ["DATABASE_URL"] = "sqlite:///./local_regdesk.db"
os.environ["PROTECTED_ROOMS"] = "101,102,T1"

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

import regdesk.database as _db

_test_engine = create_engine(
    "sqlite:///./local_regdesk.db",
    echo=False,
    connect_args={"check_same_thread": False},
)

# Enforce ON DELETE CASCADE in SQLite
@event.listens_for(_test_engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

_TestSessionLocal = sessionmaker(bind=_test_engine, autocommit=False, autoflush=False)

# Monkey-patch the database module so every storage class uses the test DB
_db.engine = _test_engine
_db.SessionLocal = _TestSessionLocal


@pytest.fixture(autouse=True)
def _setup_test_db():
    """Create all tables before each test; drop them after."""
    _db.Base.metadata.create_all(bind=_test_engine)
    yield
    _db.Base.metadata.drop_all(bind=_test_engine)


@pytest.fixture
def db():
    session = _TestSessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_course(db):
    from regdesk.course.catalog import CourseCatalog

    def _make(name="10-Day Course", start=date(2026, 1, 1), end=date(2026, 1, 10)):
        return CourseCatalog(db).create_course(name, start, end, teacher_name="AT")
    return _make


@pytest.fixture
def make_participant(db):
    from regdesk.participant.intake import IntakeService

    def _make(course_id, name="Asha Rao", **details):
        return IntakeService(db).register(course_id, name, **details)
    return _make


@pytest.fixture
def interviewed(db, make_participant):
    """A participant who has arrived, been briefed and interviewed."""
    from regdesk.participant.intake import IntakeService

    def _make(course_id, name="Asha Rao", **details):
        service = IntakeService(db)
        p = make_participant(course_id, name, **details)
        service.record_arrival(p.participant_id, course_id)
        service.advance_stage(p.participant_id, 2)
        return service.advance_stage(p.participant_id, 3)
    return _make
