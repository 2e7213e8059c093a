"""
Unit of work with a bounded timeout.

Every write operation in the engine runs as one ``session.begin()`` block.
If the block does not finish within the configured bound it is cancelled;
cancellation unwinds through ``session.begin()``, which rolls back, so a
timeout never leaves a partial multi-entity write behind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetride.config import settings
from fleetride.domain.errors import PersistenceTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionRunner:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: float | None = None,
    ):
        self.session_factory = session_factory
        self.timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.db_operation_timeout_seconds
        )

    async def run(
        self, work: Callable[[AsyncSession], Awaitable[T]], label: str = "operation"
    ) -> T:
        async def _in_transaction() -> T:
            async with self.session_factory() as session:
                async with session.begin():
                    return await work(session)

        try:
            return await asyncio.wait_for(_in_transaction(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("%s exceeded %.1fs and was rolled back", label, self.timeout)
            raise PersistenceTimeout(
                f"{label} timed out after {self.timeout:.1f}s; no changes were saved"
            ) from None
