import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from regdesk.database import ParticipantModel
from .value_objects import ParticipantStatus

logger = logging.getLogger(__name__)


def migrate_legacy_statuses(session: Session) -> int:
    """Rewrite historical status spellings ("Arrived", "Pending", ...) in place.

    Runs once at startup so the rest of the code only ever sees
    `ParticipantStatus` values. Unrecognised strings are left alone and
    reported.
    """
    canonical = [s.value for s in ParticipantStatus]
    rows = session.scalars(
        select(ParticipantModel).where(ParticipantModel.status.not_in(canonical))
    ).all()

    changed = 0
    for row in rows:
        status = ParticipantStatus.from_legacy(row.status)
        if status is None:
            logger.warning("Participant %s has unknown status %r", row.participant_id, row.status)
            continue
        row.status = status.value
        changed += 1

    session.commit()
    if changed:
        logger.info("Normalized %s legacy participant statuses", changed)
    return changed
