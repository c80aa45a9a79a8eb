"""
Dramatiq broker configuration.

Redis-based message broker for the payout queue. Built from explicit
settings by each process that sends or consumes messages.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, ShutdownNotifications
from loguru import logger

from yieldledger.config.settings import Settings


def setup_broker(settings: Settings) -> RedisBroker:
    """
    Create the Redis broker and make it the dramatiq default.

    Must run before ``jobs.tasks`` modules are imported.

    Args:
        settings: Application settings

    Returns:
        Configured RedisBroker
    """
    redis_broker = RedisBroker(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password if settings.redis_password else None,
        db=settings.redis_db,
    )

    # ShutdownNotifications: lets workers stop gracefully
    # CurrentMessage: gives actors access to the message being processed
    redis_broker.add_middleware(ShutdownNotifications())
    redis_broker.add_middleware(CurrentMessage())

    dramatiq.set_broker(redis_broker)

    logger.info(
        f"Dramatiq broker initialized: "
        f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
    )
    return redis_broker
