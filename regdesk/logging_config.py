"""
Logging setup for the registration service.

Format: 2026-10-18 09:14:02,117 [regdesk] INFO regdesk.participant.intake: message

Usage:
    from regdesk.logging_config import configure_logging

    configure_logging()
    logger = logging.getLogger(__name__)
"""
import logging
import sys
from typing import Optional

from regdesk.config import get_log_level

LOG_FORMAT = "%(asctime)s [regdesk] %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install a single stream handler on the `regdesk` logger.

    Safe to call more than once; later calls only adjust the level.
    """
    global _configured

    logger = logging.getLogger("regdesk")
    logger.setLevel(level or get_log_level())

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    # SQL echo is controlled by the engine, keep the driver quiet
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
