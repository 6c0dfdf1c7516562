from dataclasses import dataclass, fields
from enum import Enum, IntEnum
from typing import Optional

SENTINEL_VALUES = frozenset({"na", "n/a", "no", "none", "-"})

DEFAULT_LANGUAGE = "English"


def normalize_resource(value) -> Optional[str]:
    """Collapse blanks and placeholder text ("NA", " n/a ", "-") to None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in SENTINEL_VALUES:
        return None
    return text


class ParticipantStatus(Enum):
    NO_RESPONSE = "No Response"
    IN_PROCESS = "In Process"
    GATE_CHECK_IN = "Gate Check-In"
    ATTENDING = "Attending"
    CANCELLED = "Cancelled"
    NO_SHOW = "No-Show"

    @staticmethod
    def from_legacy(raw: Optional[str]) -> Optional['ParticipantStatus']:
        """Map a stored status string, including historical synonyms.

        Returns None when the text is not recognised at all.
        """
        if raw is None:
            return ParticipantStatus.NO_RESPONSE
        key = " ".join(raw.replace("_", " ").replace("-", " ").split()).lower()
        if not key:
            return ParticipantStatus.NO_RESPONSE
        return _LEGACY_STATUS.get(key)


_LEGACY_STATUS = {
    "no response": ParticipantStatus.NO_RESPONSE,
    "noresponse": ParticipantStatus.NO_RESPONSE,
    "pending": ParticipantStatus.NO_RESPONSE,
    "registered": ParticipantStatus.NO_RESPONSE,
    "in process": ParticipantStatus.IN_PROCESS,
    "inprocess": ParticipantStatus.IN_PROCESS,
    "processing": ParticipantStatus.IN_PROCESS,
    "gate check in": ParticipantStatus.GATE_CHECK_IN,
    "gatecheckin": ParticipantStatus.GATE_CHECK_IN,
    "at gate": ParticipantStatus.GATE_CHECK_IN,
    "attending": ParticipantStatus.ATTENDING,
    "arrived": ParticipantStatus.ATTENDING,
    "checked in": ParticipantStatus.ATTENDING,
    "check in": ParticipantStatus.ATTENDING,
    "onboarded": ParticipantStatus.ATTENDING,
    "cancelled": ParticipantStatus.CANCELLED,
    "canceled": ParticipantStatus.CANCELLED,
    "no show": ParticipantStatus.NO_SHOW,
    "noshow": ParticipantStatus.NO_SHOW,
}

# Statuses that physically hold a bed, seat or cell
OCCUPYING_STATUSES = (ParticipantStatus.ATTENDING, ParticipantStatus.GATE_CHECK_IN)


class ProcessStage(IntEnum):
    REGISTERED = 0
    TOKEN_ISSUED = 1
    BRIEFED = 2
    INTERVIEWED = 3
    ONBOARDED = 4


ADVANCEABLE_STAGES = (ProcessStage.BRIEFED, ProcessStage.INTERVIEWED)

# Human readable names used in conflict messages
RESOURCE_LABELS = {
    'room_no': "Room",
    'dining_seat_no': "Dining seat",
    'laundry_token_no': "Laundry token",
    'mobile_locker_no': "Mobile locker",
    'valuables_locker_no': "Valuables locker",
    'pagoda_cell_no': "Meditation cell",
    'dhamma_hall_seat_no': "Dhamma hall seat",
    'conf_no': "Confirmation number",
    'token_number': "Token number",
}


@dataclass(frozen=True)
class ResourceBundle:
    """Everything committed together when a participant is onboarded."""
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

    def normalized(self) -> 'ResourceBundle':
        values = {f.name: normalize_resource(getattr(self, f.name)) for f in fields(self)}
        if values['discourse_language'] is None:
            values['discourse_language'] = DEFAULT_LANGUAGE
        return ResourceBundle(**values)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
