"""
Typed domain errors.

Services raise these; the HTTP boundary in main.py maps them to status codes.
"""

from typing import Any, Optional


class BookingError(Exception):
    """Base class for errors surfaced to callers with a stable kind"""

    kind = "booking_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationError(BookingError):
    """Malformed input: bad duration, missing contact fields, bad status"""

    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class InvalidTransitionError(ValidationError):
    """A status change that the transition table does not allow"""

    kind = "invalid_transition"

    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(
            f"Invalid {entity} status transition from '{current}' to '{requested}'",
            field="status",
            details={"from": current, "to": requested},
        )
        self.current = current
        self.requested = requested


class NotFoundError(BookingError):
    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(f"{resource} not found: {resource_id}", {"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class SlotUnavailableError(BookingError):
    """The requested interval conflicts with an existing booking"""

    kind = "slot_unavailable"
    status_code = 409


class UnexpectedError(BookingError):
    kind = "unexpected_error"
    status_code = 500


class ExternalSyncError(Exception):
    """Raised by the Square client; never leaves the sync adapter"""

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[list] = None):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []

    @property
    def not_found(self) -> bool:
        return self.status_code == 404
