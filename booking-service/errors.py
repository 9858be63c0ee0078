"""
Domain errors raised by the scheduling core.

Every error carries a human readable message plus a ``details`` dict with
the structured context a caller needs to correct the input (the day, the
conflicting ranges, the offending student ids, ...). The HTTP layer maps
each class to a status code; nothing here is fatal to the process.
"""

from typing import Any, Dict, Optional


class SchedulingError(Exception):
    """Base class for all scheduling failures."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(SchedulingError):
    """Malformed input or a violated business rule."""

    status_code = 400


class NotFoundError(SchedulingError):
    """A referenced entity does not exist."""

    status_code = 404


class ConflictError(SchedulingError):
    """State-machine violation or scheduling collision."""

    status_code = 409
