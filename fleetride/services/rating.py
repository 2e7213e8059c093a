"""
Driver rating aggregation.

``Ride.rating`` is the source of truth; ``Driver.rating`` and
``Driver.rating_count`` are a derived cache that may lag.  The refresh
runs in its own transaction after the rating commits and never raises:
a failure is logged and the cache is simply fixed by the next refresh.
"""

from __future__ import annotations

import logging

from fleetride.domain.rating import mean_rating
from fleetride.infrastructure.repositories import DriverRepository, RideRepository
from fleetride.services.uow import TransactionRunner

logger = logging.getLogger(__name__)


class RatingAggregator:
    def __init__(self, runner: TransactionRunner):
        self.runner = runner

    async def refresh(self, driver_id: int) -> bool:
        """Recompute the driver's average.  Returns False if it failed."""

        async def _work(session) -> tuple[float, int]:
            ratings = await RideRepository(session).ratings_for_driver(driver_id)
            average, count = mean_rating(ratings)
            await DriverRepository(session).update_rating(driver_id, average, count)
            return average, count

        try:
            average, count = await self.runner.run(_work, label="rating aggregation")
        except Exception:
            logger.exception("Could not refresh rating for driver %d", driver_id)
            return False

        logger.info(
            "Driver %d rating is now %.2f over %d rides", driver_id, average, count
        )
        return True
