"""Tattoo request schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_phone
from ..appointments.lifecycle import BookingType
from ..appointments.schemas import BookingResponse, Pagination
from .lifecycle import TattooRequestStatus


class ReferenceImage(BaseModel):
    url: str
    publicId: Optional[str] = None


class TattooRequestCreate(BaseModel):
    """Intake form; anonymous submissions identify themselves by contact email"""

    description: str
    customerId: Optional[str] = None
    firstName: Optional[str] = None
    contactEmail: Optional[str] = None
    contactPhone: Optional[str] = None
    placement: Optional[str] = None
    size: Optional[str] = None
    colorPreference: Optional[str] = None
    style: Optional[str] = None
    preferredArtist: Optional[str] = None
    timeframe: Optional[str] = None
    additionalNotes: Optional[str] = None
    referenceImages: list[ReferenceImage] = []

    @field_validator("contactEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else v

    @field_validator("contactPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v) if v else v


class TattooRequestStatusUpdate(BaseModel):
    status: TattooRequestStatus


class ConvertToAppointment(BaseModel):
    startAt: datetime
    duration: int
    artistId: Optional[str] = None
    bookingType: BookingType = BookingType.TATTOO_SESSION
    priceQuote: Optional[Decimal] = None
    note: Optional[str] = None


class TattooRequestResponse(BaseModel):
    id: str
    status: str
    customerId: Optional[str] = None
    firstName: Optional[str] = None
    contactEmail: Optional[str] = None
    contactPhone: Optional[str] = None
    trackingToken: Optional[str] = None
    description: str
    placement: Optional[str] = None
    size: Optional[str] = None
    colorPreference: Optional[str] = None
    style: Optional[str] = None
    preferredArtist: Optional[str] = None
    timeframe: Optional[str] = None
    additionalNotes: Optional[str] = None
    referenceImages: list[ReferenceImage] = []
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, tattoo_request) -> "TattooRequestResponse":
        return cls(
            id=tattoo_request.id,
            status=tattoo_request.status,
            customerId=tattoo_request.customer_id,
            firstName=tattoo_request.first_name,
            contactEmail=tattoo_request.contact_email,
            contactPhone=tattoo_request.contact_phone,
            trackingToken=tattoo_request.tracking_token,
            description=tattoo_request.description,
            placement=tattoo_request.placement,
            size=tattoo_request.size,
            colorPreference=tattoo_request.color_preference,
            style=tattoo_request.style,
            preferredArtist=tattoo_request.preferred_artist,
            timeframe=tattoo_request.timeframe,
            additionalNotes=tattoo_request.additional_notes,
            referenceImages=tattoo_request.reference_images or [],
            createdAt=tattoo_request.created_at,
        )


class TattooRequestListResponse(BaseModel):
    data: list[TattooRequestResponse]
    pagination: Pagination


class ConversionResponse(BaseModel):
    booking: BookingResponse
    tattooRequest: TattooRequestResponse
