from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import AliasChoices, Field
from sqlalchemy.orm import Session
from typing import Optional

from regdesk.allocation.engine import AllocationEngine
from regdesk.database import get_db
from regdesk.dependencies import http_error
from regdesk.errors import RegistrationError
from regdesk.schemas import CamelModel, ParticipantResponse
from .intake import IntakeService
from .value_objects import ResourceBundle

router = APIRouter(prefix="/participants", tags=["Participants"])

# ==========================================
# REQUEST MODELS
# ==========================================

class RegisterParticipantRequest(CamelModel):
    course_id: int
    full_name: str
    conf_no: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    discourse_language: Optional[str] = None
    courses_info: Optional[str] = None
    medical_info: Optional[str] = None

class UpdateParticipantRequest(CamelModel):
    full_name: Optional[str] = None
    conf_no: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    room_no: Optional[str] = None
    dining_seat_no: Optional[str] = None
    dining_seat_type: Optional[str] = None
    laundry_token_no: Optional[str] = None
    mobile_locker_no: Optional[str] = None
    valuables_locker_no: Optional[str] = None
    pagoda_cell_no: Optional[str] = None
    dhamma_hall_seat_no: Optional[str] = None
    special_seating: Optional[str] = None
    discourse_language: Optional[str] = None
    evening_food: Optional[str] = None
    medical_info: Optional[str] = None
    teacher_notes: Optional[str] = None
    laptop_details: Optional[str] = None
    courses_info: Optional[str] = None

class ArrivalRequest(CamelModel):
    participant_id: int
    course_id: int

class StageRequest(CamelModel):
    participant_id: int
    stage: int

class GateRequest(CamelModel):
    participant_id: int

class OnboardRequest(CamelModel):
    participant_id: int
    course_id: int
    room_no: Optional[str] = None
    # Older desk clients send seatNo / laundryToken / mobileLocker / language
    dining_seat_no: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("diningSeatNo", "seatNo", "dining_seat_no")
    )
    dining_seat_type: Optional[str] = None
    laundry_token_no: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("laundryTokenNo", "laundryToken", "laundry_token_no")
    )
    mobile_locker_no: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("mobileLockerNo", "mobileLocker", "mobile_locker_no")
    )
    valuables_locker_no: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("valuablesLockerNo", "valuablesLocker", "valuables_locker_no")
    )
    pagoda_cell_no: Optional[str] = None
    dhamma_hall_seat_no: Optional[str] = None
    special_seating: Optional[str] = None
    discourse_language: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("discourseLanguage", "language", "discourse_language")
    )

    def to_bundle(self) -> ResourceBundle:
        return ResourceBundle(**self.model_dump(exclude={"participant_id", "course_id"}))

# ==========================================
# ENDPOINTS
# ==========================================

@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ParticipantResponse)
def register_participant(request: RegisterParticipantRequest, db: Session = Depends(get_db)):
    """Register a single participant directly (no roster import)"""
    details = request.model_dump(exclude={"course_id", "full_name"}, exclude_none=True)
    try:
        participant = IntakeService(db).register(request.course_id, request.full_name, **details)
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.post("/arrival", response_model=ParticipantResponse)
def record_arrival(request: ArrivalRequest, db: Session = Depends(get_db)):
    """Participant reached the gate: issue the next token of the course"""
    try:
        participant = IntakeService(db).record_arrival(request.participant_id, request.course_id)
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.post("/stage", response_model=ParticipantResponse)
def advance_stage(request: StageRequest, db: Session = Depends(get_db)):
    """Mark briefing (2) or interview (3) as done"""
    try:
        participant = IntakeService(db).advance_stage(request.participant_id, request.stage)
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.post("/onboard", response_model=ParticipantResponse)
def onboard(request: OnboardRequest, db: Session = Depends(get_db)):
    """Final check-in: commit the whole resource bundle at once"""
    try:
        participant = AllocationEngine(db).onboard(
            request.participant_id, request.course_id, request.to_bundle()
        )
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.post("/gate-checkin", response_model=ParticipantResponse)
def gate_check_in(request: GateRequest, db: Session = Depends(get_db)):
    try:
        participant = IntakeService(db).gate_check_in(request.participant_id)
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.post("/gate-cancel", response_model=ParticipantResponse)
def gate_cancel(request: GateRequest, db: Session = Depends(get_db)):
    try:
        participant = IntakeService(db).gate_cancel(request.participant_id)
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.get("/{participant_id}", response_model=ParticipantResponse)
def get_participant(participant_id: int, db: Session = Depends(get_db)):
    try:
        participant = IntakeService(db).get(participant_id)
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.put("/{participant_id}", response_model=ParticipantResponse)
def update_participant(participant_id: int, request: UpdateParticipantRequest, db: Session = Depends(get_db)):
    """Direct record edit; also used to correct assignments after onboarding"""
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    try:
        participant = IntakeService(db).update(participant_id, **changes)
    except RegistrationError as e:
        raise http_error(e)
    return ParticipantResponse.from_domain(participant)

@router.delete("/{participant_id}")
def delete_participant(participant_id: int, db: Session = Depends(get_db)):
    try:
        IntakeService(db).delete(participant_id)
    except RegistrationError as e:
        raise http_error(e)
    return {"message": "Participant deleted successfully"}
