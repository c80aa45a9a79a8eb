"""
Dramatiq worker entry point.

Usage:
    dramatiq jobs.worker
"""

from jobs.broker import setup_broker
from yieldledger.config.settings import load_settings
from yieldledger.utils.logging import setup_logging


settings = load_settings()
setup_logging(settings, component="payout worker")
setup_broker(settings)

from jobs.tasks import daily_payouts  # noqa: E402,F401
