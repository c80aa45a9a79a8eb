"""
Scheduler process entry point.

Startup order: settings, logging, database check (fatal on failure),
scheduler, health server. Stops on SIGINT/SIGTERM.
"""

import asyncio
import signal
import sys

from loguru import logger

from jobs.health import create_health_app, start_health_server, stop_health_server
from jobs.scheduler import PayoutScheduler
from yieldledger.config.database import Database
from yieldledger.config.settings import Settings, load_settings
from yieldledger.services.ledger_store import LedgerStore
from yieldledger.services.payout.engine import PayoutEngine
from yieldledger.services.payout.status import PayoutStatusService
from yieldledger.utils.logging import setup_logging


async def run(settings: Settings) -> int:
    """
    Run the scheduler process until a stop signal arrives.

    Returns:
        Process exit code
    """
    database = Database(settings)
    try:
        await database.check_connection()
    except Exception as e:
        logger.critical(f"Database unreachable, refusing to start: {e}")
        await database.dispose()
        return 1

    store = LedgerStore(database, settings)

    enqueue = None
    if settings.payout_dispatch == "queue":
        from jobs.broker import setup_broker

        setup_broker(settings)
        from jobs.tasks.daily_payouts import process_daily_payouts

        enqueue = process_daily_payouts.send

    scheduler = PayoutScheduler(settings, PayoutEngine(store), enqueue)
    scheduler.start()

    app = create_health_app(scheduler, PayoutStatusService(store))
    runner, _ = await start_health_server(app, port=settings.health_check_port)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
    finally:
        logger.info("Graceful shutdown initiated...")
        scheduler.shutdown()
        await stop_health_server(runner)
        await database.dispose()
        logger.info("Graceful shutdown complete")
    return 0


def main() -> None:
    """Console script entry point."""
    settings = load_settings()
    setup_logging(settings, component="payout scheduler")
    sys.exit(asyncio.run(run(settings)))


if __name__ == "__main__":
    main()
