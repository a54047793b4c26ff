"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_phone
from ..scheduling.time_calculator import as_utc
from .lifecycle import AppointmentStatus, BookingType


class AppointmentCreate(BaseModel):
    """Schema for creating an appointment"""

    startAt: datetime
    duration: int
    bookingType: BookingType = BookingType.CONSULTATION
    customerId: Optional[str] = None
    contactEmail: Optional[str] = None
    contactPhone: Optional[str] = None
    artistId: Optional[str] = None
    note: Optional[str] = None
    priceQuote: Optional[Decimal] = None
    status: Optional[AppointmentStatus] = None
    tattooRequestId: Optional[str] = None

    @field_validator("contactEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else v

    @field_validator("contactPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v) if v else v


class AppointmentUpdate(BaseModel):
    """Partial update; only fields present in the request are applied"""

    startAt: Optional[datetime] = None
    duration: Optional[int] = None
    status: Optional[AppointmentStatus] = None
    artistId: Optional[str] = None
    note: Optional[str] = None
    priceQuote: Optional[Decimal] = None

    def to_changes(self) -> dict[str, Any]:
        """Map the fields the caller actually sent onto column names"""
        columns = {
            "startAt": "start_time",
            "duration": "duration_minutes",
            "status": "status",
            "artistId": "artist_id",
            "note": "note",
            "priceQuote": "price_quote",
        }
        changes = {}
        for field_name in self.model_fields_set:
            value = getattr(self, field_name)
            if isinstance(value, AppointmentStatus):
                value = value.value
            if field_name in ("startAt", "duration", "status") and value is None:
                continue
            changes[columns[field_name]] = value
        return changes


class AppointmentCancel(BaseModel):
    reason: Optional[str] = None


class ExternalSyncResponse(BaseModel):
    operation: Optional[str] = None
    status: str
    error: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: str
    startAt: datetime
    endAt: datetime
    duration: int
    status: str
    bookingType: str
    customerId: Optional[str] = None
    artistId: Optional[str] = None
    contactEmail: Optional[str] = None
    contactPhone: Optional[str] = None
    priceQuote: Optional[Decimal] = None
    note: Optional[str] = None
    tattooRequestId: Optional[str] = None
    externalBookingId: Optional[str] = None
    externalSyncPending: Optional[str] = None
    cancellationReason: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            startAt=as_utc(appointment.start_time),
            endAt=as_utc(appointment.end_time),
            duration=appointment.duration_minutes,
            status=appointment.status,
            bookingType=appointment.booking_type,
            customerId=appointment.customer_id,
            artistId=appointment.artist_id,
            contactEmail=appointment.contact_email,
            contactPhone=appointment.contact_phone,
            priceQuote=appointment.price_quote,
            note=appointment.note,
            tattooRequestId=appointment.tattoo_request_id,
            externalBookingId=appointment.external_booking_id,
            externalSyncPending=appointment.external_sync_pending,
            cancellationReason=appointment.cancellation_reason,
            createdAt=as_utc(appointment.created_at),
            updatedAt=as_utc(appointment.updated_at),
        )


class BookingResponse(BaseModel):
    """A committed booking plus the advisory outcome of the Square mirror"""

    appointment: AppointmentResponse
    externalSyncSucceeded: Optional[bool] = None
    externalSync: Optional[ExternalSyncResponse] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class AppointmentListResponse(BaseModel):
    data: list[AppointmentResponse]
    pagination: Pagination
