"""
Periodic Freshdesk synchronization job

Runs ReconciliationEngine.sync_all once or on a fixed interval.

Usage:
    python -m ticketdesk.jobs.sync_job --once
    python -m ticketdesk.jobs.sync_job --interval 15
"""
import argparse
import asyncio
from typing import Optional

from dotenv import load_dotenv

from ticketdesk.config import get_settings
from ticketdesk.exceptions import IntegrationDisabled
from ticketdesk.models.schemas import SyncResult
from ticketdesk.services.reconciliation import ReconciliationEngine
from ticketdesk.utils.logger import get_logger

logger = get_logger(__name__)


async def run_sync_once(engine: Optional[ReconciliationEngine] = None) -> Optional[SyncResult]:
    """
    Run one sync batch

    Returns:
        SyncResult, or None when the integration is disabled
    """
    engine = engine or ReconciliationEngine()
    try:
        return await engine.sync_all()
    except IntegrationDisabled:
        logger.info("Freshdesk integration not enabled, skipping sync")
        return None


async def run_forever(
    interval_minutes: int,
    engine: Optional[ReconciliationEngine] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Run sync batches until stop_event is set

    A batch that raises is logged; the next batch still runs on schedule.
    """
    engine = engine or ReconciliationEngine()
    stop_event = stop_event or asyncio.Event()
    interval_seconds = interval_minutes * 60

    logger.info(f"Freshdesk sync job started (every {interval_minutes} min)")
    while not stop_event.is_set():
        try:
            await run_sync_once(engine)
        except Exception as e:
            logger.error(f"Freshdesk sync batch failed: {e}", exc_info=True)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info("Freshdesk sync job stopped")


def parse_args(argv=None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Synchronize linked tickets with Freshdesk")
    parser.add_argument("--once", action="store_true", help="Run a single batch and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.sync_interval_minutes,
        help="Minutes between batches (default: SYNC_INTERVAL_MINUTES)",
    )
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)

    if args.once:
        result = await run_sync_once()
        if result is not None:
            logger.info(f"Synced={result.synced} failed={result.failed}")
            return 1 if result.failed and not result.synced else 0
        return 0

    await run_forever(args.interval)
    return 0


if __name__ == "__main__":
    load_dotenv()
    raise SystemExit(asyncio.run(main()))
