"""
Daily payouts task.

Runs the payout engine in a worker process when the scheduler is configured
with ``PAYOUT_DISPATCH=queue``.
"""

import asyncio

import dramatiq
from loguru import logger

from yieldledger.config.database import Database
from yieldledger.config.settings import load_settings
from yieldledger.services.ledger_store import LedgerStore
from yieldledger.services.payout.engine import PayoutEngine
from yieldledger.utils.security import SystemPrincipal


# No retries; the next daily run catches up.
@dramatiq.actor(max_retries=0, time_limit=30 * 60 * 1000)
def process_daily_payouts() -> None:
    """Process all due purchases."""
    logger.info("Starting daily payouts processing...")

    try:
        result = asyncio.run(_process_daily_payouts_async())
    except Exception as e:
        logger.exception(f"Daily payouts processing failed: {e}")
        raise

    logger.info(
        f"Daily payouts processing complete: {result['processed']} processed, "
        f"total: {result['total_amount']} KZ, {result['errors']} errors"
    )


async def _process_daily_payouts_async() -> dict:
    """Async implementation of daily payouts processing."""
    settings = load_settings()
    database = Database(settings)
    try:
        engine = PayoutEngine(LedgerStore(database, settings))
        batch = await engine.process_due_payouts(SystemPrincipal(name="worker"))
        return {
            "processed": batch.processed,
            "total_amount": str(batch.total_amount),
            "errors": len(batch.errors),
        }
    finally:
        await database.dispose()
