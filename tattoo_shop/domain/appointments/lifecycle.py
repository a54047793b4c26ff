"""
Appointment lifecycle - status graph and data invariants

Status workflow:
    pending → scheduled → confirmed → completed
    pending | scheduled | confirmed → cancelled
    scheduled | confirmed → no_show
completed, cancelled and no_show are terminal.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ...config import MAX_APPOINTMENT_DURATION, MIN_APPOINTMENT_DURATION
from ...errors import InvalidTransitionError, ValidationError
from ..scheduling.time_calculator import end_time_for, to_utc_naive


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class BookingType(str, Enum):
    CONSULTATION = "consultation"
    DRAWING_CONSULTATION = "drawing_consultation"
    TATTOO_SESSION = "tattoo_session"


ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, nxt in ALLOWED_TRANSITIONS.items() if not nxt)

# Fields whose change moves the appointment on the calendar
SCHEDULING_FIELDS = ("start_time", "duration_minutes", "artist_id")


def is_terminal(status: str) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def can_transition(current: str, requested: str) -> bool:
    return AppointmentStatus(requested) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def validate_transition(current: str, requested: str) -> None:
    if not can_transition(current, requested):
        raise InvalidTransitionError("appointment", current, requested)


def validate_duration(duration_minutes: int) -> None:
    if duration_minutes is None or duration_minutes < MIN_APPOINTMENT_DURATION:
        raise ValidationError(
            f"Minimum appointment duration is {MIN_APPOINTMENT_DURATION} minutes", field="duration"
        )
    if duration_minutes > MAX_APPOINTMENT_DURATION:
        raise ValidationError(
            f"Maximum appointment duration is {MAX_APPOINTMENT_DURATION} minutes", field="duration"
        )


def validate_contact(
    customer_id: Optional[str], contact_email: Optional[str], allow_both: bool = False
) -> None:
    """
    Exactly one of customer_id / contact_email identifies who the booking is for.
    Both may be present only for a converted request linked to its new customer.
    """
    if not customer_id and not contact_email:
        raise ValidationError("Either customer ID or contact email is required", field="contact_info")
    if customer_id and contact_email and not allow_both:
        raise ValidationError(
            "Provide either customer ID or contact email, not both", field="contact_info"
        )


@dataclass
class NewAppointment:
    """Validated field set ready to be written"""

    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    booking_type: str
    customer_id: Optional[str] = None
    artist_id: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    price_quote: Optional[Decimal] = None
    note: Optional[str] = None
    tattoo_request_id: Optional[str] = None

    def as_columns(self) -> dict[str, Any]:
        return dict(self.__dict__)


class AppointmentLifecycle:
    """Pure rules; no I/O. The orchestrator applies the results."""

    @staticmethod
    def create(
        start_time: datetime,
        duration_minutes: int,
        booking_type: str,
        customer_id: Optional[str] = None,
        contact_email: Optional[str] = None,
        contact_phone: Optional[str] = None,
        artist_id: Optional[str] = None,
        price_quote: Optional[Decimal] = None,
        note: Optional[str] = None,
        status: Optional[str] = None,
        tattoo_request_id: Optional[str] = None,
        allow_both_contacts: bool = False,
    ) -> NewAppointment:
        validate_duration(duration_minutes)
        validate_contact(customer_id, contact_email, allow_both=allow_both_contacts)

        try:
            booking_type = BookingType(booking_type).value
            status = AppointmentStatus(status or AppointmentStatus.SCHEDULED).value
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if AppointmentStatus(status) in TERMINAL_STATUSES:
            raise ValidationError(f"Cannot create an appointment in status '{status}'", field="status")
        if price_quote is not None and price_quote < 0:
            raise ValidationError("Price quote cannot be negative", field="priceQuote")

        start_time = to_utc_naive(start_time)
        return NewAppointment(
            start_time=start_time,
            end_time=end_time_for(start_time, duration_minutes),
            duration_minutes=duration_minutes,
            status=status,
            booking_type=booking_type,
            customer_id=customer_id,
            artist_id=artist_id,
            contact_email=contact_email,
            contact_phone=contact_phone,
            price_quote=price_quote,
            note=note,
            tattoo_request_id=tattoo_request_id,
        )

    @staticmethod
    def update(appointment, changes: dict[str, Any]) -> dict[str, Any]:
        """
        Compute the column updates for a partial change set.

        `changes` may hold start_time, duration_minutes, status, artist_id,
        note and price_quote. end_time is always recomputed from whichever of
        start/duration is unchanged.
        """
        updates: dict[str, Any] = {}
        current_status = appointment.status

        start_time = changes.get("start_time")
        duration = changes.get("duration_minutes")
        moving = start_time is not None or duration is not None or (
            "artist_id" in changes and changes["artist_id"] != appointment.artist_id
        )

        if moving and is_terminal(current_status):
            raise InvalidTransitionError("appointment", current_status, "rescheduled")

        if duration is not None:
            validate_duration(duration)
            updates["duration_minutes"] = duration
        if start_time is not None:
            updates["start_time"] = to_utc_naive(start_time)

        if start_time is not None or duration is not None:
            new_start = updates.get("start_time", appointment.start_time)
            new_duration = updates.get("duration_minutes", appointment.duration_minutes)
            updates["end_time"] = end_time_for(new_start, new_duration)

        requested_status = changes.get("status")
        if requested_status is not None and requested_status != current_status:
            try:
                AppointmentStatus(requested_status)
            except ValueError as e:
                raise ValidationError(str(e), field="status") from e
            validate_transition(current_status, requested_status)
            updates["status"] = requested_status

        if "artist_id" in changes:
            updates["artist_id"] = changes["artist_id"]
        if "note" in changes:
            updates["note"] = changes["note"]
        if "price_quote" in changes:
            if changes["price_quote"] is not None and changes["price_quote"] < 0:
                raise ValidationError("Price quote cannot be negative", field="priceQuote")
            updates["price_quote"] = changes["price_quote"]

        return updates

    @staticmethod
    def cancel(appointment) -> str:
        """Cancellation is a transition like any other; terminal appointments reject it"""
        validate_transition(appointment.status, AppointmentStatus.CANCELLED.value)
        return AppointmentStatus.CANCELLED.value
