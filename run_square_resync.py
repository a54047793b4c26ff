"""
Square resync job

Replays Square creates, updates and cancels that failed while the local
booking was saved. Runs forever on an interval, or a single pass with
--once (for cron).

    python run_square_resync.py [--once] [--interval SECONDS]
"""

import argparse
import asyncio
import logging
import sys

from tattoo_shop.config import SQUARE_RESYNC_INTERVAL_SECONDS
from tattoo_shop.database import SessionLocal
from tattoo_shop.services.square_resync import resync_pending_appointments, run_square_resync_worker

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def run_once() -> int:
    """Single pass; exit status 1 when any booking still failed to reach Square"""
    db = SessionLocal()
    try:
        report = await resync_pending_appointments(db)
    finally:
        db.close()
    return 1 if report.failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Replay failed Square booking syncs")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=SQUARE_RESYNC_INTERVAL_SECONDS,
        help="Seconds between passes when running continuously",
    )
    args = parser.parse_args()

    try:
        if args.once:
            sys.exit(asyncio.run(run_once()))
        logger.info(f"🔁 Square resync every {args.interval}s")
        asyncio.run(run_square_resync_worker(interval_seconds=args.interval))
    except KeyboardInterrupt:
        logger.info("👋 Square resync stopped")
    except Exception as e:
        logger.error(f"❌ Square resync aborted: {e}")
        sys.exit(1)
