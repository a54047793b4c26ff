"""
Square Resync Worker
Replays Square operations that failed or were skipped: creates, updates and cancels
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..config import SQUARE_RESYNC_BATCH_SIZE, SQUARE_RESYNC_INTERVAL_SECONDS
from ..database import SessionLocal
from ..domain.appointments.lifecycle import ALLOWED_TRANSITIONS
from ..domain.appointments.repository import AppointmentRepository
from ..domain.appointments.service import BookingOrchestrator
from ..domain.integrations.square.sync_adapter import SKIPPED, SquareSyncAdapter
from ..domain.scheduling.time_calculator import utcnow

logger = logging.getLogger(__name__)

# Open statuses; a create or update is only replayed while the booking is still open
RESYNC_STATUSES = tuple(status.value for status, nxt in ALLOWED_TRANSITIONS.items() if nxt)


@dataclass
class ResyncReport:
    attempted: int = 0
    synced: int = 0
    failed: int = 0
    skipped: int = 0


async def resync_pending_appointments(
    db: Session,
    sync_adapter: Optional[SquareSyncAdapter] = None,
    batch_size: int = SQUARE_RESYNC_BATCH_SIZE,
) -> ResyncReport:
    """One pass over bookings that still owe Square an operation; each is handled independently"""
    orchestrator = BookingOrchestrator(db, sync_adapter=sync_adapter)
    report = ResyncReport()

    pending = AppointmentRepository.find_pending_sync(db, RESYNC_STATUSES, utcnow(), limit=batch_size)
    if not pending:
        logger.info("✅ No appointments waiting on Square")
        return report

    logger.info(f"🔁 Retrying Square sync for {len(pending)} appointment(s)")
    for appointment_id in [a.id for a in pending]:
        report.attempted += 1
        try:
            result = await orchestrator.retry_external_sync(appointment_id, actor_id="system")
        except Exception as e:
            db.rollback()
            report.failed += 1
            logger.error(f"❌ Error retrying Square sync for appointment {appointment_id}: {e}")
            continue

        if result.sync is None or result.sync.status == SKIPPED:
            report.skipped += 1
        elif result.sync.succeeded:
            report.synced += 1
        else:
            report.failed += 1

    logger.info(
        f"✅ Square resync finished: {report.synced} synced, "
        f"{report.failed} failed, {report.skipped} skipped"
    )
    return report


async def run_square_resync_worker(interval_seconds: int = SQUARE_RESYNC_INTERVAL_SECONDS):
    """
    Main worker loop
    """
    logger.info("🚀 Starting Square resync worker...")

    while True:
        db = SessionLocal()
        try:
            await resync_pending_appointments(db)
        except Exception as e:
            logger.error(f"❌ Error in Square resync loop: {e}")
        finally:
            db.close()

        await asyncio.sleep(interval_seconds)
