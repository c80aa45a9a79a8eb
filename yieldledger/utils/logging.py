"""
Logging setup.

Configures loguru sinks for every entry point.
"""

import sys

from loguru import logger

from yieldledger.config.settings import Settings


def setup_logging(settings: Settings, component: str = "yieldledger") -> None:
    """
    Configure logger with stderr output and optional file rotation.

    Args:
        settings: Application settings
        component: Name written in the startup line
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        enqueue=False,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )

    logger.info(f"Starting {component} ({settings.environment})...")
