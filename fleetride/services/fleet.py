"""
Fleet operations that touch driver / vehicle availability.

Availability is part of the busy-iff-bound invariant, so even these
"admin" toggles go through compare-and-set: a busy driver cannot go
offline and a busy vehicle cannot enter maintenance underneath a ride.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from fleetride.config import settings
from fleetride.domain.entities import Caller
from fleetride.domain.enums import DriverStatus, VehicleStatus
from fleetride.domain.errors import AuthorizationError, Conflict, NotFound
from fleetride.domain.proximity import location_cell, nearby_cells, rank_by_distance
from fleetride.infrastructure.models import DriverModel, VehicleModel
from fleetride.infrastructure.repositories import (
    DriverRepository,
    RideRepository,
    VehicleRepository,
)
from fleetride.services.uow import TransactionRunner

logger = logging.getLogger(__name__)


def _require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise AuthorizationError("Admin access required")


def _require_driver(caller: Caller) -> None:
    if not caller.is_driver:
        raise AuthorizationError("Driver access required")


class FleetService:
    def __init__(self, runner: TransactionRunner):
        self.runner = runner

    async def register_driver(
        self,
        caller: Caller,
        full_name: str,
        contact: str,
        nic: str,
        email: str | None = None,
    ) -> DriverModel:
        _require_admin(caller)

        async def _work(session: AsyncSession) -> DriverModel:
            return await DriverRepository(session).create(
                DriverModel(
                    full_name=full_name,
                    contact=contact,
                    nic=nic,
                    email=email,
                    status=DriverStatus.AVAILABLE,
                    is_active=True,
                    rating=0.0,
                    rating_count=0,
                    total_distance=0.0,
                )
            )

        return await self.runner.run(_work, label="register driver")

    async def register_vehicle(
        self,
        caller: Caller,
        vehicle_number: str,
        make: str,
        model: str,
        year: int,
        capacity: int,
    ) -> VehicleModel:
        _require_admin(caller)

        async def _work(session: AsyncSession) -> VehicleModel:
            return await VehicleRepository(session).create(
                VehicleModel(
                    vehicle_number=vehicle_number,
                    make=make,
                    model=model,
                    year=year,
                    capacity=capacity,
                    status=VehicleStatus.AVAILABLE,
                    is_active=True,
                    total_distance=0.0,
                )
            )

        return await self.runner.run(_work, label="register vehicle")

    async def set_driver_availability(self, caller: Caller, online: bool) -> DriverModel:
        _require_driver(caller)
        expected, new = (
            (DriverStatus.OFFLINE, DriverStatus.AVAILABLE)
            if online
            else (DriverStatus.AVAILABLE, DriverStatus.OFFLINE)
        )

        async def _work(session: AsyncSession) -> DriverModel:
            repo = DriverRepository(session)
            driver = await repo.get_by_id(caller.id)
            if driver is None:
                raise NotFound(f"Driver {caller.id} not found")
            if driver.status == new:
                return driver
            if not await repo.compare_and_set_status(driver.id, expected, new):
                raise Conflict(
                    f"Driver {driver.id} is {driver.status.value}; "
                    "finish the current ride first"
                )
            logger.info("Driver %d is now %s", driver.id, new.value)
            return driver

        return await self.runner.run(_work, label="set driver availability")

    async def set_vehicle_maintenance(
        self, caller: Caller, vehicle_id: int, in_maintenance: bool
    ) -> VehicleModel:
        _require_admin(caller)
        expected, new = (
            (VehicleStatus.AVAILABLE, VehicleStatus.MAINTENANCE)
            if in_maintenance
            else (VehicleStatus.MAINTENANCE, VehicleStatus.AVAILABLE)
        )

        async def _work(session: AsyncSession) -> VehicleModel:
            repo = VehicleRepository(session)
            vehicle = await repo.get_by_id(vehicle_id)
            if vehicle is None:
                raise NotFound(f"Vehicle {vehicle_id} not found")
            if vehicle.status == new:
                return vehicle
            if not await repo.compare_and_set_status(vehicle.id, expected, new):
                raise Conflict(
                    f"Vehicle {vehicle.id} is {vehicle.status.value} and cannot change"
                )
            logger.info("Vehicle %d is now %s", vehicle.id, new.value)
            return vehicle

        return await self.runner.run(_work, label="set vehicle maintenance")

    async def update_driver_location(
        self, caller: Caller, lat: float, lng: float
    ) -> DriverModel:
        _require_driver(caller)

        async def _work(session: AsyncSession) -> DriverModel:
            repo = DriverRepository(session)
            driver = await repo.get_by_id(caller.id)
            if driver is None:
                raise NotFound(f"Driver {caller.id} not found")
            await repo.update_location(
                driver.id,
                lat,
                lng,
                location_cell(lat, lng, settings.h3_resolution),
                datetime.now(timezone.utc),
            )
            return driver

        return await self.runner.run(_work, label="update driver location")

    async def candidate_drivers(
        self, caller: Caller, ride_id: int
    ) -> list[tuple[DriverModel, float]]:
        """Available drivers near the ride's pickup, nearest first."""
        _require_admin(caller)

        async def _work(session: AsyncSession) -> list[tuple[DriverModel, float]]:
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                raise NotFound(f"Ride {ride_id} not found")
            cells = nearby_cells(
                ride.start_lat,
                ride.start_lng,
                settings.h3_resolution,
                settings.candidate_ring_size,
            )
            drivers = await DriverRepository(session).get_available_in_cells(
                sorted(cells)
            )
            return rank_by_distance(
                drivers,
                ride.start_lat,
                ride.start_lng,
                position=lambda d: (d.current_lat, d.current_lng),
            )

        return await self.runner.run(_work, label="candidate drivers")
