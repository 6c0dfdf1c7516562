from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from regdesk.participant.aggregate_root import Participant


class CamelModel(BaseModel):
    """Accepts `participantId` as well as `participant_id`."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParticipantResponse(BaseModel):
    participant_id: int
    course_id: int
    full_name: str
    conf_no: Optional[str] = None
    status: str
    process_stage: int
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
    discourse_language: Optional[str] = None
    evening_food: Optional[str] = None
    medical_info: Optional[str] = None
    teacher_notes: Optional[str] = None
    laptop_details: Optional[str] = None
    courses_info: Optional[str] = None

    @staticmethod
    def from_domain(participant: Participant) -> 'ParticipantResponse':
        return ParticipantResponse(**participant.to_dict())
