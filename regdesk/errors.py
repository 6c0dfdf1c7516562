"""
Failure taxonomy shared by every registration service.

Services raise these; routers turn them into HTTP responses through
`RegistrationError.status_code` and `RegistrationError.detail`.
"""
from typing import Any, Optional


class RegistrationError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def detail(self) -> Any:
        return self.message


class NotFound(RegistrationError):
    """Target entity is absent, or exists outside the requested course."""
    status_code = 404


class Conflict(RegistrationError):
    """A uniqueness violation; names the resource when it can be identified."""
    status_code = 409

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.value = value

    @property
    def detail(self) -> Any:
        return {"message": self.message, "field": self.field, "value": self.value}


class InvalidTransition(Conflict):
    """A gate transition attempted from a state that does not allow it."""
    status_code = 400

    @property
    def detail(self) -> Any:
        return self.message


class PreconditionFailed(RegistrationError):
    status_code = 400


class Forbidden(RegistrationError):
    status_code = 403


class InvalidInput(RegistrationError):
    status_code = 400


class ImportAborted(RegistrationError):
    """Roster import stopped by a store error; nothing from it was kept."""

    def __init__(self, message: str, processed: int):
        super().__init__(message)
        self.processed = processed

    @property
    def detail(self) -> Any:
        return {"message": self.message, "processed": self.processed}
