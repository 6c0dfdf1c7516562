import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from regdesk.config import get_cors_origins, load_protected_rooms
from regdesk.course.course_api import router as course_router
from regdesk import database
from regdesk.logging_config import configure_logging
from regdesk.participant.migration import migrate_legacy_statuses
from regdesk.participant.participant_api import router as participant_router
from regdesk.room.room_api import router as room_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables, then normalize historical status strings
    database.create_tables()
    with database.SessionLocal() as session:
        migrate_legacy_statuses(session)
    logger.info("Registration desk ready; %s protected rooms", len(app.state.protected_rooms))
    yield


app = FastAPI(
    title="Course Registration Desk",
    description="Participant intake and resource allocation for residential courses",
    version="1.0.0",
    lifespan=lifespan,
)

# Read once; tests swap it through dependency overrides
app.state.protected_rooms = load_protected_rooms()

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(participant_router, prefix='/api/regdesk')
app.include_router(course_router, prefix='/api/regdesk')
app.include_router(room_router, prefix='/api/regdesk')

@app.get("/")
def root():
    return {
        "message": "Welcome to the Course Registration Desk API",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
