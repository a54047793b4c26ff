"""
Tattoo request status graph

    new → reviewed → approved → converted_to_appointment
                   ↘ rejected

Every request is reviewed before a decision; rejected and
converted_to_appointment are terminal.
"""

from enum import Enum

from ...errors import InvalidTransitionError, ValidationError


class TattooRequestStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED_TO_APPOINTMENT = "converted_to_appointment"


REQUEST_TRANSITIONS: dict[TattooRequestStatus, tuple[TattooRequestStatus, ...]] = {
    TattooRequestStatus.NEW: (TattooRequestStatus.REVIEWED,),
    TattooRequestStatus.REVIEWED: (TattooRequestStatus.APPROVED, TattooRequestStatus.REJECTED),
    TattooRequestStatus.APPROVED: (TattooRequestStatus.CONVERTED_TO_APPOINTMENT,),
    TattooRequestStatus.REJECTED: (),
    TattooRequestStatus.CONVERTED_TO_APPOINTMENT: (),
}


def validate_request_transition(current: str, requested: str) -> None:
    try:
        target = TattooRequestStatus(requested)
    except ValueError as e:
        raise ValidationError(f"Unknown tattoo request status: {requested}", field="status") from e
    if target not in REQUEST_TRANSITIONS[TattooRequestStatus(current)]:
        raise InvalidTransitionError("tattoo request", current, requested)
