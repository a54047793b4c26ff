"""
Square sync adapter

Mirrors local appointment changes into Square Bookings. The local record is
authoritative: every call here is isolated, so a Square outage, timeout or
API error comes back as a failed SyncOutcome instead of an exception.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

from ....config import SQUARE_NATIVE_UPDATE, SQUARE_TIMEOUT_SECONDS
from ....errors import ExternalSyncError
from ....models import Appointment, Customer
from ....services.square_service import SquareBookingsClient

logger = logging.getLogger(__name__)

SYNCED = "synced"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class SyncOutcome:
    operation: str
    status: str
    external_id: Optional[str] = None
    error: Optional[str] = None
    # Set when the previous remote booking no longer exists (cancel half of a recreate succeeded)
    previous_booking_cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == SYNCED

    def __bool__(self) -> bool:
        return self.succeeded

    def as_audit(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "status": self.status,
            "succeeded": self.succeeded,
            "external_id": self.external_id,
            "error": self.error,
        }


def new_idempotency_key() -> str:
    return str(uuid.uuid4())


def booking_note(appointment: Appointment) -> str:
    note = appointment.booking_type or "appointment"
    if appointment.note:
        note = f"{note} - {appointment.note}"
    return note


def square_start_at(appointment: Appointment) -> str:
    # Stored times are naive UTC
    return appointment.start_time.strftime("%Y-%m-%dT%H:%M:%SZ")


class SquareSyncAdapter:
    def __init__(
        self,
        client: Optional[SquareBookingsClient] = None,
        timeout: float = SQUARE_TIMEOUT_SECONDS,
        native_update: bool = SQUARE_NATIVE_UPDATE,
    ):
        self.client = client or SquareBookingsClient()
        self.timeout = timeout
        self.native_update = native_update

    async def _guarded(
        self, operation: str, appointment_id: Optional[str], call: Awaitable[SyncOutcome]
    ) -> SyncOutcome:
        """Run one sync operation under the adapter timeout; failures become outcomes"""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            error = f"Square {operation} timed out after {self.timeout}s"
        except ExternalSyncError as e:
            error = str(e)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        logger.error(
            f"❌ Square {operation} failed for appointment {appointment_id}: {error}",
            extra={"operation": operation, "appointment_id": appointment_id, "error": error},
        )
        return SyncOutcome(operation=operation, status=FAILED, error=error)

    def _skip_reason(self, appointment: Appointment) -> Optional[str]:
        if not self.client.is_configured:
            return "square_not_configured"
        if not appointment.customer:
            return "no_customer"
        if not appointment.customer.email:
            return "customer_missing_email"
        return None

    async def _ensure_square_customer(self, customer: Customer) -> str:
        """Square customer id for a local customer, creating it on first use"""
        if customer.square_customer_id:
            return customer.square_customer_id

        given_name, _, family_name = (customer.name or "").partition(" ")
        square_customer = await self.client.create_customer(
            idempotency_key=new_idempotency_key(),
            email=customer.email,
            given_name=given_name or None,
            family_name=family_name or None,
            phone=customer.phone,
            reference_id=customer.id,
        )
        square_customer_id = square_customer.get("id")
        if not square_customer_id:
            raise ExternalSyncError("Square customer created but no ID returned")

        # Persisted by the caller's next commit
        customer.square_customer_id = square_customer_id
        logger.info(f"✅ Square customer created: {square_customer_id} for customer {customer.id}")
        return square_customer_id

    async def _create_remote(self, appointment: Appointment) -> str:
        square_customer_id = await self._ensure_square_customer(appointment.customer)
        booking = await self.client.create_booking(
            start_at=square_start_at(appointment),
            customer_id=square_customer_id,
            duration_minutes=appointment.duration_minutes,
            idempotency_key=new_idempotency_key(),
            staff_id=appointment.artist.square_team_member_id if appointment.artist else None,
            note=booking_note(appointment),
        )
        booking_id = booking.get("id")
        if not booking_id:
            raise ExternalSyncError("Square booking created but no ID returned")
        return booking_id

    async def sync_create(self, appointment: Appointment) -> SyncOutcome:
        skip = self._skip_reason(appointment)
        if skip:
            logger.info(f"ℹ️ Skipping Square create for appointment {appointment.id}: {skip}")
            return SyncOutcome(operation="create", status=SKIPPED, error=skip)

        async def run() -> SyncOutcome:
            booking_id = await self._create_remote(appointment)
            logger.info(f"✅ Square booking created: {booking_id} for appointment {appointment.id}")
            return SyncOutcome(operation="create", status=SYNCED, external_id=booking_id)

        return await self._guarded("create", appointment.id, run())

    async def sync_update(self, appointment: Appointment) -> SyncOutcome:
        """
        Mirror an update. Unless native updates are enabled this cancels the
        old booking and creates a new one, so the returned external_id differs
        from the stored one and must be saved.
        """
        if not appointment.external_booking_id:
            outcome = await self.sync_create(appointment)
            outcome.operation = "update"
            return outcome

        skip = self._skip_reason(appointment)
        if skip:
            logger.info(f"ℹ️ Skipping Square update for appointment {appointment.id}: {skip}")
            return SyncOutcome(operation="update", status=SKIPPED, error=skip)

        previous_id = appointment.external_booking_id
        cancelled_previous = False

        async def run() -> SyncOutcome:
            nonlocal cancelled_previous
            existing = await self._get_remote(previous_id)

            if self.native_update and existing:
                booking = await self.client.update_booking(
                    booking_id=previous_id,
                    version=existing.get("version", 0),
                    start_at=square_start_at(appointment),
                    duration_minutes=appointment.duration_minutes,
                    idempotency_key=new_idempotency_key(),
                    staff_id=appointment.artist.square_team_member_id if appointment.artist else None,
                    note=booking_note(appointment),
                )
                return SyncOutcome(operation="update", status=SYNCED, external_id=booking.get("id", previous_id))

            # Step 1: cancel the current remote booking (already gone is fine)
            if existing:
                await self.client.cancel_booking(
                    previous_id, existing.get("version"), new_idempotency_key()
                )
            cancelled_previous = True

            # Step 2: recreate with the new details
            booking_id = await self._create_remote(appointment)
            logger.info(
                f"✅ Square booking recreated: {previous_id} → {booking_id} for appointment {appointment.id}"
            )
            return SyncOutcome(operation="update", status=SYNCED, external_id=booking_id)

        outcome = await self._guarded("update", appointment.id, run())
        if not outcome.succeeded:
            outcome.previous_booking_cancelled = cancelled_previous
        return outcome

    async def sync_cancel(self, external_id: str, appointment_id: Optional[str] = None) -> SyncOutcome:
        """Cancel the remote booking; truthy when Square no longer holds an active booking"""
        if not self.client.is_configured:
            return SyncOutcome(operation="cancel", status=SKIPPED, error="square_not_configured")

        async def run() -> SyncOutcome:
            existing = await self._get_remote(external_id)
            if not existing:
                logger.info(f"ℹ️ Square booking {external_id} not found, nothing to cancel")
                return SyncOutcome(operation="cancel", status=SYNCED, external_id=external_id)
            await self.client.cancel_booking(external_id, existing.get("version"), new_idempotency_key())
            logger.info(f"✅ Square booking cancelled: {external_id}")
            return SyncOutcome(operation="cancel", status=SYNCED, external_id=external_id)

        return await self._guarded("cancel", appointment_id, run())

    async def _get_remote(self, booking_id: str) -> Optional[dict]:
        try:
            return await self.client.get_booking(booking_id) or None
        except ExternalSyncError as e:
            if e.not_found:
                return None
            raise
