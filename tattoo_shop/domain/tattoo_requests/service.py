"""
Tattoo request service - intake, review and conversion

Conversion is the only path from a request to an appointment:
    approved request → (customer promoted if anonymous) → confirmed booking
The appointment insert, the customer link and the request status change
commit in one transaction owned by the booking orchestrator.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...errors import InvalidTransitionError, NotFoundError, ValidationError
from ...models import TattooRequest
from ...services.audit_service import record_audit
from ..appointments.lifecycle import AppointmentStatus
from ..appointments.schemas import AppointmentCreate
from ..appointments.service import BookingOrchestrator, BookingResult
from ..customers.repository import CustomerRepository
from .lifecycle import TattooRequestStatus, validate_request_transition
from .repository import TattooRequestRepository
from .schemas import ConvertToAppointment, TattooRequestCreate

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 10


@dataclass
class ConversionResult:
    booking: BookingResult
    tattoo_request: TattooRequest


class TattooRequestService:
    """Service layer for tattoo request business logic"""

    def __init__(self, db: Session, orchestrator: Optional[BookingOrchestrator] = None):
        self.db = db
        self.repo = TattooRequestRepository()
        self.customers = CustomerRepository()
        self.orchestrator = orchestrator or BookingOrchestrator(db)

    def create(self, data: TattooRequestCreate, actor_id: Optional[str] = None) -> TattooRequest:
        """Intake a request; anonymous submissions get a tracking token"""
        if not data.customerId and not data.contactEmail:
            raise ValidationError("Either customer ID or contact email is required", field="contactEmail")
        if not data.description or len(data.description.strip()) < MIN_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters", field="description"
            )

        is_anonymous = not data.customerId
        try:
            if data.customerId and not self.customers.get_customer(self.db, data.customerId):
                raise NotFoundError("Customer", data.customerId)

            tattoo_request = self.repo.create_request(
                self.db,
                status=TattooRequestStatus.NEW.value,
                customer_id=data.customerId,
                first_name=data.firstName,
                contact_email=data.contactEmail,
                contact_phone=data.contactPhone,
                tracking_token=str(uuid.uuid4()) if is_anonymous else None,
                description=data.description.strip(),
                placement=data.placement,
                size=data.size,
                color_preference=data.colorPreference,
                style=data.style,
                preferred_artist=data.preferredArtist,
                timeframe=data.timeframe,
                additional_notes=data.additionalNotes,
                reference_images=[image.model_dump() for image in data.referenceImages],
            )
            record_audit(
                self.db,
                action="tattoo_request_created",
                resource="TattooRequest",
                resource_id=tattoo_request.id,
                user_id=actor_id,
                details={
                    "is_anonymous": is_anonymous,
                    "image_count": len(data.referenceImages),
                },
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"📥 Tattoo request received: {tattoo_request.id} (anonymous={is_anonymous})")
        return tattoo_request

    def get(self, request_id: str) -> TattooRequest:
        tattoo_request = self.repo.get_request(self.db, request_id)
        if not tattoo_request:
            raise NotFoundError("TattooRequest", request_id)
        return tattoo_request

    def get_by_tracking_token(self, token: str) -> TattooRequest:
        tattoo_request = self.repo.get_request_by_tracking_token(self.db, token)
        if not tattoo_request:
            raise NotFoundError("TattooRequest", token)
        return tattoo_request

    def list(
        self,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive", field="page")
        total = self.repo.count_requests(self.db, status=status, customer_id=customer_id)
        requests = self.repo.find_requests(
            self.db,
            offset=(page - 1) * limit,
            limit=limit,
            status=status,
            customer_id=customer_id,
        )
        return {
            "data": requests,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }

    def update_status(self, request_id: str, status: str, actor_id: Optional[str] = None) -> TattooRequest:
        """Review workflow. Conversion has its own entry point and is refused here."""
        tattoo_request = self.get(request_id)
        previous_status = tattoo_request.status

        if status == TattooRequestStatus.CONVERTED_TO_APPOINTMENT.value:
            raise ValidationError(
                "Use the conversion endpoint to convert a request to an appointment", field="status"
            )
        validate_request_transition(previous_status, status)

        try:
            tattoo_request.status = status
            record_audit(
                self.db,
                action="tattoo_request_status_updated",
                resource="TattooRequest",
                resource_id=request_id,
                user_id=actor_id,
                details={"previous_status": previous_status, "new_status": status},
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Tattoo request {request_id}: {previous_status} → {status}")
        return tattoo_request

    async def convert_to_appointment(
        self, request_id: str, data: ConvertToAppointment, actor_id: Optional[str] = None
    ) -> ConversionResult:
        """
        Turn an approved request into a confirmed appointment.

        An anonymous request is first promoted to a Customer keyed by its
        contact email (an existing customer with that email is reused).
        Nothing is persisted unless the booking itself commits.
        """
        tattoo_request = self.get(request_id)
        if tattoo_request.status != TattooRequestStatus.APPROVED.value:
            raise InvalidTransitionError(
                "tattoo request", tattoo_request.status, TattooRequestStatus.CONVERTED_TO_APPOINTMENT.value
            )

        was_anonymous = tattoo_request.customer_id is None
        contact_email = tattoo_request.contact_email
        contact_phone = tattoo_request.contact_phone

        def mark_converted(appointment) -> None:
            tattoo_request.status = TattooRequestStatus.CONVERTED_TO_APPOINTMENT.value
            record_audit(
                self.db,
                action="tattoo_request_converted",
                resource="TattooRequest",
                resource_id=request_id,
                user_id=actor_id,
                details={
                    "appointment_id": appointment.id,
                    "customer_id": tattoo_request.customer_id,
                    "was_anonymous": was_anonymous,
                },
                commit=False,
            )

        try:
            if was_anonymous:
                customer, _ = self.customers.find_or_create_by_email(
                    self.db,
                    contact_email,
                    name=tattoo_request.first_name,
                    phone=contact_phone,
                    created_from_request=True,
                )
                tattoo_request.customer_id = customer.id

            booking = await self.orchestrator.create(
                AppointmentCreate(
                    startAt=data.startAt,
                    duration=data.duration,
                    bookingType=data.bookingType,
                    customerId=tattoo_request.customer_id,
                    contactEmail=contact_email,
                    contactPhone=contact_phone,
                    artistId=data.artistId,
                    note=data.note,
                    priceQuote=data.priceQuote,
                    status=AppointmentStatus.CONFIRMED,
                    tattooRequestId=request_id,
                ),
                actor_id,
                allow_both_contacts=True,
                before_commit=mark_converted,
            )
        except Exception:
            # Drops a customer promoted for a booking that never committed
            self.db.rollback()
            raise

        logger.info(
            f"✅ Tattoo request {request_id} converted to appointment {booking.appointment.id}"
        )
        return ConversionResult(booking=booking, tattoo_request=self.get(request_id))
