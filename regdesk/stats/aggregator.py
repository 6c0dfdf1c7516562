"""Read-only occupancy and demographic summaries for a course."""
from collections import Counter, defaultdict
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from regdesk.errors import NotFound
from regdesk.participant.aggregate_root import Participant
from regdesk.participant.value_objects import DEFAULT_LANGUAGE, ParticipantStatus
from regdesk.storage import CourseStorage, ParticipantStorage

# Confirmation-number prefixes: Old/New student or Server, Male/Female
DEMOGRAPHIC_PREFIXES = ('OM', 'OF', 'NM', 'NF', 'SM', 'SF')

ATTENDING_STATUSES = (ParticipantStatus.ATTENDING,)


def gender_bucket(gender) -> str:
    g = (gender or "").strip().lower()
    if g in ("m", "male"):
        return "male"
    if g in ("f", "female"):
        return "female"
    return "other"


def demographic_of(conf_no) -> str:
    prefix = (conf_no or "").strip().upper()[:2]
    return prefix if prefix in DEMOGRAPHIC_PREFIXES else "other"


def summarize(participants: Iterable[Participant]) -> dict:
    participants = list(participants)
    by_status: Counter = Counter()
    by_status_gender: Dict[str, Counter] = defaultdict(Counter)
    demographics: Counter = Counter({prefix: 0 for prefix in DEMOGRAPHIC_PREFIXES + ('other',)})
    languages: Dict[str, Counter] = defaultdict(Counter)

    for p in participants:
        status = p.status.value
        gender = gender_bucket(p.gender)
        by_status[status] += 1
        by_status_gender[status][gender] += 1

        if p.status not in ATTENDING_STATUSES:
            continue
        demographics[demographic_of(p.conf_no)] += 1
        language = (p.discourse_language or "").strip() or DEFAULT_LANGUAGE
        languages[language]["count"] += 1
        if gender != "other":
            languages[language][gender] += 1

    language_rows: List[dict] = [
        {
            "language": language,
            "count": counts["count"],
            "male": counts["male"],
            "female": counts["female"],
        }
        for language, counts in sorted(languages.items(), key=lambda kv: (-kv[1]["count"], kv[0]))
    ]

    return {
        "total": len(participants),
        "by_status": dict(by_status),
        "by_status_gender": {
            status: {"male": c["male"], "female": c["female"], "other": c["other"]}
            for status, c in by_status_gender.items()
        },
        "demographics": dict(demographics),
        "languages": language_rows,
    }


class StatsAggregator:
    def __init__(self, session: Session):
        self.courses = CourseStorage(session)
        self.participants = ParticipantStorage(session)

    def course_summary(self, course_id: int) -> dict:
        if self.courses.find_by_id(course_id) is None:
            raise NotFound(f"Course {course_id} not found")
        return summarize(self.participants.find_by_course(course_id))
