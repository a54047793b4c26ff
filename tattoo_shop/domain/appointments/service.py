"""
Booking orchestrator - Business logic for appointment bookings

Sequence for every write:
    validate → check conflict → persist locally → mirror to Square → audit

The local commit happens before Square is contacted. A Square failure is
reported on the result and in the audit entry but never undoes the booking.
This is the only component that changes Appointment.status.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from ...config import ALLOW_ANONYMOUS_BOOKING
from ...errors import NotFoundError, SlotUnavailableError, ValidationError
from ...models import Appointment, TattooRequest
from ...services.audit_service import record_audit
from ..customers.repository import CustomerRepository
from ..integrations.square.sync_adapter import FAILED, SquareSyncAdapter, SyncOutcome
from ..scheduling.availability_service import AvailabilitySearch
from ..scheduling.conflicts import NON_BLOCKING_STATUSES, ConflictChecker
from ..scheduling.time_calculator import to_utc_naive, utcnow
from .lifecycle import (
    SCHEDULING_FIELDS,
    AppointmentLifecycle,
    AppointmentStatus,
    is_terminal,
)
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)

# Fields Square keeps a copy of; other edits do not need a remote round trip
MIRRORED_FIELDS = SCHEDULING_FIELDS + ("note",)


@dataclass
class BookingResult:
    appointment: Appointment
    sync: Optional[SyncOutcome] = None

    @property
    def external_sync_succeeded(self) -> Optional[bool]:
        return None if self.sync is None else self.sync.succeeded

    @property
    def external_booking_id(self) -> Optional[str]:
        return self.appointment.external_booking_id


class BookingOrchestrator:
    """Service layer façade for create / update / cancel"""

    def __init__(
        self,
        db: Session,
        sync_adapter: Optional[SquareSyncAdapter] = None,
        allow_anonymous: bool = ALLOW_ANONYMOUS_BOOKING,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.customers = CustomerRepository()
        self.checker = ConflictChecker(db)
        self.sync_adapter = sync_adapter or SquareSyncAdapter()
        self.allow_anonymous = allow_anonymous

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, appointment_id: str) -> Appointment:
        appointment = self.repo.find_appointment(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def list(
        self,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        artist_id: Optional[str] = None,
        start_from=None,
        start_to=None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive", field="page")
        filters = {
            "status": status,
            "customer_id": customer_id,
            "artist_id": artist_id,
            "start_from": to_utc_naive(start_from) if start_from else None,
            "start_to": to_utc_naive(start_to) if start_to else None,
        }
        total = self.repo.count_appointments(self.db, **filters)
        appointments = self.repo.find_appointments(
            self.db, offset=(page - 1) * limit, limit=limit, **filters
        )
        return {
            "data": appointments,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        data: AppointmentCreate,
        actor_id: Optional[str] = None,
        *,
        allow_both_contacts: bool = False,
        before_commit: Optional[Callable[[Appointment], None]] = None,
    ) -> BookingResult:
        """
        Book a new appointment.

        allow_both_contacts and before_commit exist for the tattoo request
        conversion: the booking keeps the request's contact email next to the
        customer it was promoted to, and the request status flips inside the
        booking transaction.
        """
        new = AppointmentLifecycle.create(
            start_time=data.startAt,
            duration_minutes=data.duration,
            booking_type=data.bookingType,
            customer_id=data.customerId,
            contact_email=data.contactEmail,
            contact_phone=data.contactPhone,
            artist_id=data.artistId,
            price_quote=data.priceQuote,
            note=data.note,
            status=data.status.value if data.status else None,
            tattoo_request_id=data.tattooRequestId,
            allow_both_contacts=allow_both_contacts,
        )

        customer_created = False
        try:
            if new.customer_id:
                if not self.customers.get_customer(self.db, new.customer_id):
                    raise NotFoundError("Customer", new.customer_id)
            elif self.allow_anonymous:
                customer, customer_created = self.customers.find_or_create_by_email(
                    self.db, new.contact_email, phone=new.contact_phone
                )
                new.customer_id = customer.id
                new.contact_email = None
                new.contact_phone = None

            if new.tattoo_request_id:
                exists = (
                    self.db.query(TattooRequest.id)
                    .filter(TattooRequest.id == new.tattoo_request_id)
                    .first()
                )
                if not exists:
                    raise NotFoundError("TattooRequest", new.tattoo_request_id)

            if new.artist_id:
                self._reserve_slot(new.artist_id, new.start_time, new.duration_minutes)

            appointment = self.repo.create_appointment(self.db, **new.as_columns())
            if before_commit:
                before_commit(appointment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"✅ Appointment {appointment.id} booked for {appointment.start_time.isoformat()} "
            f"({appointment.duration_minutes}m, artist={appointment.artist_id})"
        )

        outcome = await self._mirror("create", appointment, self.sync_adapter.sync_create, appointment)
        self._store_sync_result(appointment, outcome)

        record_audit(
            self.db,
            action="appointment_created",
            resource="Appointment",
            resource_id=appointment.id,
            user_id=actor_id,
            details={
                "booking_type": appointment.booking_type,
                "is_anonymous": not data.customerId,
                "customer_created": customer_created,
                "start_at": appointment.start_time.isoformat(),
                "artist_id": appointment.artist_id,
                "tattoo_request_id": appointment.tattoo_request_id,
                "external_sync": outcome.as_audit(),
            },
        )
        return BookingResult(appointment=appointment, sync=outcome)

    async def update(
        self, appointment_id: str, data: AppointmentUpdate, actor_id: Optional[str] = None
    ) -> BookingResult:
        appointment = self.get(appointment_id)
        previous_status = appointment.status
        changes = data.to_changes()

        try:
            updates = AppointmentLifecycle.update(appointment, changes)
            moving = any(
                key in updates and updates[key] != getattr(appointment, key)
                for key in SCHEDULING_FIELDS
            )
            artist_id = updates.get("artist_id", appointment.artist_id)
            # A booking that is being cancelled or marked no-show no longer holds its slot
            blocking = updates.get("status", appointment.status) not in NON_BLOCKING_STATUSES
            if moving and artist_id and blocking:
                self._reserve_slot(
                    artist_id,
                    updates.get("start_time", appointment.start_time),
                    updates.get("duration_minutes", appointment.duration_minutes),
                    exclude_appointment_id=appointment.id,
                )

            changed_fields = [
                key for key, value in updates.items() if getattr(appointment, key) != value
            ]
            if updates.get("status") == AppointmentStatus.CANCELLED.value and previous_status != updates["status"]:
                updates.update(cancelled_by=actor_id, cancelled_at=utcnow())
                if not appointment.external_booking_id:
                    # Nothing reached Square, so nothing is owed to it any more
                    updates["external_sync_pending"] = None
            self.repo.update_appointment(self.db, appointment, **updates)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Appointment {appointment.id} updated: {', '.join(changed_fields) or 'no changes'}")

        outcome = None
        if appointment.status == AppointmentStatus.CANCELLED.value and previous_status != appointment.status:
            if appointment.external_booking_id:
                outcome = await self._mirror(
                    "cancel", appointment, self.sync_adapter.sync_cancel,
                    appointment.external_booking_id, appointment.id,
                )
                self._store_sync_result(appointment, outcome)
        elif any(key in changed_fields for key in MIRRORED_FIELDS) and not is_terminal(appointment.status):
            outcome = await self._mirror("update", appointment, self.sync_adapter.sync_update, appointment)
            self._store_sync_result(appointment, outcome)

        record_audit(
            self.db,
            action="appointment_updated",
            resource="Appointment",
            resource_id=appointment.id,
            user_id=actor_id,
            details={
                "previous_status": previous_status,
                "new_status": appointment.status,
                "changes": changed_fields,
                "external_sync": outcome.as_audit() if outcome else None,
            },
        )
        return BookingResult(appointment=appointment, sync=outcome)

    async def cancel(
        self, appointment_id: str, reason: Optional[str] = None, actor_id: Optional[str] = None
    ) -> BookingResult:
        """Terminal transition; cancelling an already-terminal appointment fails"""
        appointment = self.get(appointment_id)
        previous_status = appointment.status

        try:
            status = AppointmentLifecycle.cancel(appointment)
            cancellation = {
                "status": status,
                "cancellation_reason": reason or "No reason provided",
                "cancelled_by": actor_id,
                "cancelled_at": utcnow(),
            }
            if not appointment.external_booking_id:
                cancellation["external_sync_pending"] = None
            self.repo.update_appointment(self.db, appointment, **cancellation)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🛑 Appointment {appointment.id} cancelled (was {previous_status})")

        outcome = None
        if appointment.external_booking_id:
            outcome = await self._mirror(
                "cancel", appointment, self.sync_adapter.sync_cancel,
                appointment.external_booking_id, appointment.id,
            )
            self._store_sync_result(appointment, outcome)

        record_audit(
            self.db,
            action="appointment_cancelled",
            resource="Appointment",
            resource_id=appointment.id,
            user_id=actor_id,
            details={
                "reason": reason,
                "previous_status": previous_status,
                "external_sync": outcome.as_audit() if outcome else None,
            },
        )
        return BookingResult(appointment=appointment, sync=outcome)

    async def retry_external_sync(self, appointment_id: str, actor_id: Optional[str] = None) -> BookingResult:
        """
        Replay the Square operation a booking still owes.

        A failed create is re-created, a failed update re-sent, and a failed
        cancel re-cancelled. Every call carries a fresh idempotency key, so
        replaying cannot duplicate the remote booking. No-op when nothing is owed.
        """
        appointment = self.get(appointment_id)
        operation = appointment.external_sync_pending
        if not operation:
            return BookingResult(appointment=appointment, sync=None)

        if operation == "cancel" and appointment.external_booking_id:
            outcome = await self._mirror(
                "cancel", appointment, self.sync_adapter.sync_cancel,
                appointment.external_booking_id, appointment.id,
            )
        elif operation != "cancel" and not is_terminal(appointment.status):
            if operation == "update" and appointment.external_booking_id:
                outcome = await self._mirror("update", appointment, self.sync_adapter.sync_update, appointment)
            else:
                outcome = await self._mirror("create", appointment, self.sync_adapter.sync_create, appointment)
        else:
            # A finished booking no longer needs its create or update mirrored
            appointment.external_sync_pending = None
            self.db.commit()
            logger.info(f"ℹ️ Dropping stale Square {operation} for appointment {appointment.id}")
            return BookingResult(appointment=appointment, sync=None)

        self._store_sync_result(appointment, outcome)

        if outcome.succeeded:
            record_audit(
                self.db,
                action="appointment_external_sync_retried",
                resource="Appointment",
                resource_id=appointment.id,
                user_id=actor_id,
                details={"external_sync": outcome.as_audit()},
            )
        return BookingResult(appointment=appointment, sync=outcome)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reserve_slot(
        self,
        artist_id: str,
        start_time,
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> None:
        """Lock the artist row, then verify the interval is free, inside the open transaction"""
        if not self.checker.lock_artist(artist_id):
            raise NotFoundError("Artist", artist_id)

        conflicts = self.checker.find_conflicts(
            start_time, duration_minutes, artist_id, exclude_appointment_id
        )
        if conflicts:
            logger.warning(
                f"⚠️ Slot {start_time.isoformat()} ({duration_minutes}m) unavailable for artist {artist_id}"
            )
            alternatives = AvailabilitySearch(self.db, checker=self.checker).suggest_alternatives(
                start_time, duration_minutes, artist_id, exclude_appointment_id=exclude_appointment_id
            )
            raise SlotUnavailableError(
                "The requested time slot conflicts with an existing appointment",
                details={
                    "artist_id": artist_id,
                    "conflicting_appointment_ids": [c.id for c in conflicts],
                    "suggested_slots": [slot.as_details() for slot in alternatives],
                },
            )

    async def _mirror(self, operation: str, appointment: Appointment, call, *args) -> SyncOutcome:
        """Call the adapter; anything it lets escape still counts as a failed sync"""
        try:
            return await call(*args)
        except Exception as e:
            logger.error(
                f"❌ Square {operation} raised for appointment {appointment.id}: {e}",
                extra={"operation": operation, "appointment_id": appointment.id, "error": str(e)},
            )
            return SyncOutcome(operation=operation, status=FAILED, error=str(e))

    def _store_sync_result(self, appointment: Appointment, outcome: SyncOutcome) -> None:
        """
        Persist whatever the sync changed: a new Square booking id, a cached
        Square customer id, and whether Square is still owed this operation.
        """
        if outcome.succeeded and outcome.external_id:
            appointment.external_booking_id = outcome.external_id
        elif outcome.previous_booking_cancelled:
            # The old remote booking is gone; keep no dangling reference to it
            appointment.external_booking_id = None

        appointment.external_sync_pending = None if outcome.succeeded else outcome.operation
        appointment.external_sync_attempted_at = utcnow()

        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to store Square sync result for appointment {appointment.id}: {e}")
            raise
