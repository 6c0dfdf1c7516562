import os
from typing import FrozenSet, Iterable, List, Optional

# Rooms that can never be removed from the registry (staff quarters,
# teacher residences). Overridable through PROTECTED_ROOMS.
DEFAULT_PROTECTED_ROOMS = (
    '101',
    '102',
    '103',
    '201',
    '202',
    'T1',
    'T2',
)


def get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise EnvironmentError(
            "DATABASE_URL is not set. For runtime point it at the registration Postgres database. "
            "For tests, `regdesk/tests/conftest.py` sets DATABASE_URL to 'sqlite:///./local_regdesk.db'."
        )
    # Heroku/Railway style URLs
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def parse_room_list(raw: Optional[str]) -> FrozenSet[str]:
    if raw is None:
        return frozenset(DEFAULT_PROTECTED_ROOMS)
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


def load_protected_rooms(extra: Iterable[str] = ()) -> FrozenSet[str]:
    """Protected room numbers, read once at startup."""
    rooms = parse_room_list(os.getenv("PROTECTED_ROOMS"))
    return rooms | frozenset(extra)


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
