"""
Base service class.

Provides common functionality for store-backed services: the ledger store
handle, the shared clock and a logger bound to the service name.
"""

import functools
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from loguru import logger

from yieldledger.services.ledger_store import LedgerStore


T = TypeVar("T")


class BaseService:
    """Store-backed service with a bound logger and the store clock."""

    def __init__(self, store: LedgerStore) -> None:
        self.store = store
        self.settings = store.settings
        self.logger = logger.bind(service=self.__class__.__name__)

    def now(self) -> datetime:
        """Current UTC time from the store clock."""
        return self.store.now()


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Log start, outcome and duration of an async service method.

    Usage:
        @log_operation
        async def reconcile_all(self, principal):
            ...
    """

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        op_logger = self.logger.bind(operation=func.__name__)
        started = time.perf_counter()
        op_logger.info(f"Starting {func.__name__}")

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            elapsed = round(time.perf_counter() - started, 3)
            op_logger.bind(duration_seconds=elapsed, success=False).error(
                f"Failed {func.__name__} after {elapsed}s: {e}"
            )
            raise

        elapsed = round(time.perf_counter() - started, 3)
        op_logger.bind(duration_seconds=elapsed, success=True).info(
            f"Completed {func.__name__} in {elapsed}s"
        )
        return result

    return wrapper
