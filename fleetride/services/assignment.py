"""
Resource assignment
===================

Binds one driver and one vehicle to one approved ride, and releases them
again when the ride completes or is cancelled.

Concurrency safety
------------------
* The ride row is read ``FOR UPDATE``; two transitions on the same ride
  serialize.
* Driver and vehicle are claimed with conditional updates
  (``available -> busy``).  Whichever of two racing assignments commits
  first wins; the other sees zero rows updated and fails with
  ``ResourceUnavailable``.
* Everything happens inside the caller's transaction.  Raising rolls back
  the ride write, the driver claim and the vehicle claim together, so no
  partial binding is ever visible.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from fleetride.domain.entities import AssignmentTransaction
from fleetride.domain.enums import DriverStatus, RideStatus, VehicleStatus
from fleetride.domain.errors import (
    NotFound,
    PreconditionFailed,
    ResourceUnavailable,
)
from fleetride.infrastructure.models import DriverModel, RideModel, VehicleModel
from fleetride.infrastructure.repositories import (
    DriverRepository,
    VehicleRepository,
)

logger = logging.getLogger(__name__)


class ResourceAssignmentManager:
    def __init__(self, session: AsyncSession):
        self.drivers = DriverRepository(session)
        self.vehicles = VehicleRepository(session)

    async def bind(
        self, ride: RideModel, txn: AssignmentTransaction
    ) -> tuple[DriverModel, VehicleModel]:
        """
        Claim driver and vehicle for *ride* (already locked by the caller).

        ``PreconditionFailed`` covers resources that cannot be assigned at
        all (inactive, offline, in maintenance) and rides that are not
        approved; ``ResourceUnavailable`` covers resources that are busy,
        whether seen up front or lost in the race.
        """
        if ride.status != RideStatus.APPROVED:
            raise PreconditionFailed(
                f"Ride {ride.id} is {ride.status.value}, not approved"
            )

        driver = await self.drivers.get_by_id(txn.driver_id)
        if driver is None:
            raise NotFound(f"Driver {txn.driver_id} not found")
        vehicle = await self.vehicles.get_by_id(txn.vehicle_id)
        if vehicle is None:
            raise NotFound(f"Vehicle {txn.vehicle_id} not found")

        self._check_assignable(driver, vehicle)

        if not await self.drivers.compare_and_set_status(
            driver.id, DriverStatus.AVAILABLE, DriverStatus.BUSY
        ):
            raise ResourceUnavailable(f"Driver {driver.id} is no longer available")
        if not await self.vehicles.claim(vehicle.id, driver.id):
            raise ResourceUnavailable(f"Vehicle {vehicle.id} is no longer available")

        ride.driver_id = driver.id
        ride.vehicle_id = vehicle.id
        logger.info(
            "Ride %d bound to driver %d and vehicle %d",
            ride.id,
            driver.id,
            vehicle.id,
        )
        return driver, vehicle

    async def release(self, ride: RideModel, accrued_distance: float = 0.0) -> None:
        """Return the ride's driver and vehicle to ``available``, adding *accrued_distance* to both totals."""
        if ride.driver_id is not None:
            await self.drivers.release(ride.driver_id, accrued_distance)
        if ride.vehicle_id is not None:
            await self.vehicles.release(ride.vehicle_id, accrued_distance)
        logger.info(
            "Ride %d released driver %s and vehicle %s (+%.2f km)",
            ride.id,
            ride.driver_id,
            ride.vehicle_id,
            accrued_distance,
        )

    @staticmethod
    def _check_assignable(driver: DriverModel, vehicle: VehicleModel) -> None:
        if not driver.is_active:
            raise PreconditionFailed(f"Driver {driver.id} is deactivated")
        if not vehicle.is_active:
            raise PreconditionFailed(f"Vehicle {vehicle.id} is deactivated")
        if driver.status == DriverStatus.OFFLINE:
            raise PreconditionFailed(f"Driver {driver.id} is offline")
        if vehicle.status == VehicleStatus.MAINTENANCE:
            raise PreconditionFailed(f"Vehicle {vehicle.id} is under maintenance")
        if driver.status == DriverStatus.BUSY:
            raise ResourceUnavailable(f"Driver {driver.id} is not available")
        if vehicle.status == VehicleStatus.BUSY:
            raise ResourceUnavailable(f"Vehicle {vehicle.id} is not available")
