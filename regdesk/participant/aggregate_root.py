from dataclasses import dataclass, asdict
from typing import Optional

from regdesk.errors import InvalidInput, InvalidTransition, PreconditionFailed
from .value_objects import (
    ADVANCEABLE_STAGES, DEFAULT_LANGUAGE, ParticipantStatus, ProcessStage,
    ResourceBundle, normalize_resource
)

# Fields a desk operator may edit directly, before or after onboarding
EDITABLE_FIELDS = (
    'full_name', 'conf_no', 'gender', 'age', 'email', 'phone_number',
    'room_no', 'dining_seat_no', 'dining_seat_type', 'laundry_token_no',
    'mobile_locker_no', 'valuables_locker_no', 'pagoda_cell_no',
    'dhamma_hall_seat_no', 'special_seating', 'discourse_language',
    'evening_food', 'medical_info', 'teacher_notes', 'laptop_details',
    'courses_info',
)

# Editable fields that go through the sentinel rule
RESOURCE_FIELDS = (
    'conf_no', 'room_no', 'dining_seat_no', 'dining_seat_type',
    'laundry_token_no', 'mobile_locker_no', 'valuables_locker_no',
    'pagoda_cell_no', 'dhamma_hall_seat_no', 'special_seating',
)


@dataclass
class Participant:
    course_id: int
    full_name: str
    participant_id: Optional[int] = None
    conf_no: Optional[str] = None
    status: ParticipantStatus = ParticipantStatus.NO_RESPONSE
    process_stage: int = ProcessStage.REGISTERED
    token_number: Optional[int] = None

    room_no: Optional[str] = None
    dining_seat_no: Optional[str] = None
    dining_seat_type: Optional[str] = None
    laundry_token_no: Optional[str] = None
    mobile_locker_no: Optional[str] = None
    valuables_locker_no: Optional[str] = None
    pagoda_cell_no: Optional[str] = None
    dhamma_hall_seat_no: Optional[str] = None
    special_seating: Optional[str] = None

    gender: Optional[str] = None
    age: Optional[int] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    discourse_language: Optional[str] = DEFAULT_LANGUAGE
    evening_food: Optional[str] = None
    medical_info: Optional[str] = None
    teacher_notes: Optional[str] = None
    laptop_details: Optional[str] = None
    courses_info: Optional[str] = None

    @staticmethod
    def register(course_id: int, full_name: str, **details) -> 'Participant':
        name = (full_name or "").strip()
        if not name:
            raise InvalidInput("Participant name cannot be empty")
        participant = Participant(course_id=course_id, full_name=name)
        participant.update_details(**details)
        return participant

    # ------------------------------------------------------------------
    # Intake stages
    # ------------------------------------------------------------------

    def has_arrived(self) -> bool:
        return self.process_stage >= ProcessStage.TOKEN_ISSUED and self.token_number is not None

    def record_arrival(self, token_number: int) -> None:
        if self.has_arrived():
            raise InvalidTransition(
                f"Participant {self.participant_id} already holds token {self.token_number}"
            )
        if self.process_stage != ProcessStage.REGISTERED:
            raise InvalidTransition(
                f"Participant {self.participant_id} is at stage {int(self.process_stage)}; arrival is only recorded from stage 0"
            )
        self.token_number = token_number
        self.process_stage = ProcessStage.TOKEN_ISSUED
        self.status = ParticipantStatus.IN_PROCESS

    def advance_stage(self, target_stage: int) -> None:
        # Any advanceable stage is accepted, forwards or backwards
        if target_stage not in ADVANCEABLE_STAGES:
            raise InvalidInput(f"Stage must be one of {[int(s) for s in ADVANCEABLE_STAGES]}")
        self.process_stage = ProcessStage(target_stage)

    def gate_check_in(self) -> None:
        if self.status == ParticipantStatus.ATTENDING:
            raise InvalidTransition("Participant is already attending")
        self.status = ParticipantStatus.GATE_CHECK_IN

    def gate_cancel(self) -> None:
        if self.status == ParticipantStatus.ATTENDING:
            raise InvalidTransition("Cannot cancel a participant who is already attending")
        self.status = ParticipantStatus.CANCELLED

    def ensure_interviewed(self) -> None:
        if self.process_stage < ProcessStage.INTERVIEWED:
            raise PreconditionFailed("Interview not completed: participant cannot be onboarded yet")

    def onboard(self, bundle: ResourceBundle) -> None:
        self.ensure_interviewed()
        for name, value in bundle.normalized().as_dict().items():
            setattr(self, name, value)
        self.status = ParticipantStatus.ATTENDING
        self.process_stage = ProcessStage.ONBOARDED

    # ------------------------------------------------------------------
    # Direct record edits
    # ------------------------------------------------------------------

    def update_details(self, **changes) -> None:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInput(f"Unknown participant fields: {', '.join(sorted(unknown))}")

        for name, value in changes.items():
            if name == 'full_name':
                value = (value or "").strip()
                if not value:
                    raise InvalidInput("Participant name cannot be empty")
            elif name in RESOURCE_FIELDS:
                value = normalize_resource(value)
            elif name == 'discourse_language':
                value = normalize_resource(value) or DEFAULT_LANGUAGE
            setattr(self, name, value)

    def is_cancelled(self) -> bool:
        return self.status == ParticipantStatus.CANCELLED

    def to_dict(self) -> dict:
        data = asdict(self)
        data['status'] = self.status.value
        data['process_stage'] = int(self.process_stage)
        return data
