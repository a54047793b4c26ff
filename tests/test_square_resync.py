from datetime import datetime, timedelta, timezone

import pytest

from tattoo_shop.domain.appointments.schemas import AppointmentCreate, AppointmentUpdate
from tattoo_shop.domain.appointments.service import BookingOrchestrator
from tattoo_shop.services.audit_service import get_audit_trail
from tattoo_shop.services.square_resync import RESYNC_STATUSES, resync_pending_appointments

# Square refuses bookings in the past, so replays only concern upcoming ones
START = (datetime.now(timezone.utc) + timedelta(days=7)).replace(hour=10, minute=0, second=0, microsecond=0)


async def create_booking(db, customer, sync_adapter, start=START, **fields):
    orchestrator = BookingOrchestrator(db, sync_adapter=sync_adapter)
    result = await orchestrator.create(
        AppointmentCreate(startAt=start, duration=60, customerId=customer.id, artistId="artist-a", **fields)
    )
    return result.appointment


@pytest.fixture
def unsynced(db, customer, artist, failing_sync_adapter):
    async def _unsynced(start=START):
        appointment = await create_booking(db, customer, failing_sync_adapter, start=start)
        assert appointment.external_booking_id is None
        assert appointment.external_sync_pending == "create"
        return appointment

    return _unsynced


def test_resync_only_replays_open_bookings():
    assert set(RESYNC_STATUSES) == {"pending", "scheduled", "confirmed"}


async def test_resync_pushes_unsynced_bookings(db, unsynced, sync_adapter):
    first = await unsynced()
    second = await unsynced(START + timedelta(hours=2))

    report = await resync_pending_appointments(db, sync_adapter=sync_adapter)

    assert (report.attempted, report.synced, report.failed, report.skipped) == (2, 2, 0, 0)
    db.refresh(first)
    db.refresh(second)
    assert {first.external_booking_id, second.external_booking_id} == {"sq-1", "sq-2"}
    assert first.external_sync_pending is None
    actions = [e.action for e in get_audit_trail(db, "Appointment", first.id)]
    assert actions[-1] == "appointment_external_sync_retried"

    again = await resync_pending_appointments(db, sync_adapter=sync_adapter)
    assert again.attempted == 0


async def test_resync_counts_failures(db, unsynced, failing_sync_adapter):
    appointment = await unsynced()

    report = await resync_pending_appointments(db, sync_adapter=failing_sync_adapter)

    assert (report.attempted, report.synced, report.failed) == (1, 0, 1)
    db.refresh(appointment)
    assert appointment.external_sync_pending == "create"
    assert appointment.external_sync_attempted_at is not None


async def test_resync_survives_an_exploding_adapter(db, unsynced, exploding_sync_adapter):
    await unsynced()

    report = await resync_pending_appointments(db, sync_adapter=exploding_sync_adapter)

    assert report.failed == 1


async def test_resync_ignores_bookings_cancelled_before_reaching_square(db, unsynced, sync_adapter):
    appointment = await unsynced()
    await BookingOrchestrator(db, sync_adapter=sync_adapter).update(
        appointment.id, AppointmentUpdate(status="cancelled")
    )

    report = await resync_pending_appointments(db, sync_adapter=sync_adapter)

    assert report.attempted == 0
    assert sync_adapter.operations() == []


async def test_resync_skips_bookings_in_the_past(db, customer, artist, failing_sync_adapter, sync_adapter):
    await create_booking(db, customer, failing_sync_adapter, start=datetime(2024, 1, 20, 10, 0, tzinfo=timezone.utc))

    report = await resync_pending_appointments(db, sync_adapter=sync_adapter)

    assert report.attempted == 0


async def test_resync_respects_batch_size(db, unsynced, sync_adapter):
    for hour in (10, 12, 14):
        await unsynced(START.replace(hour=hour))

    report = await resync_pending_appointments(db, sync_adapter=sync_adapter, batch_size=2)

    assert report.attempted == 2


async def test_failing_bookings_do_not_starve_later_ones(db, unsynced, flaky_sync_adapter):
    stuck = [await unsynced(START.replace(hour=10)), await unsynced(START.replace(hour=12))]
    waiting = await unsynced(START.replace(hour=14))
    flaky_sync_adapter.failing_operations = {"create"}
    flaky_sync_adapter.failing_appointment_ids = {a.id for a in stuck}

    for _ in range(2):
        await resync_pending_appointments(db, sync_adapter=flaky_sync_adapter, batch_size=2)

    attempted = [appointment_id for _, appointment_id in flaky_sync_adapter.calls]
    assert waiting.id in attempted
    db.refresh(waiting)
    assert waiting.external_booking_id is not None
    assert waiting.external_sync_pending is None


async def test_resync_replays_failed_cancel(db, customer, artist, flaky_sync_adapter):
    appointment = await create_booking(db, customer, flaky_sync_adapter)
    flaky_sync_adapter.failing_operations = {"cancel"}
    cancelled = await BookingOrchestrator(db, sync_adapter=flaky_sync_adapter).cancel(appointment.id)
    assert cancelled.external_sync_succeeded is False
    assert cancelled.appointment.external_sync_pending == "cancel"

    flaky_sync_adapter.failing_operations = set()
    report = await resync_pending_appointments(db, sync_adapter=flaky_sync_adapter)

    assert (report.attempted, report.synced) == (1, 1)
    assert flaky_sync_adapter.calls[-1] == ("cancel", "sq-1")
    db.refresh(appointment)
    assert appointment.external_sync_pending is None
