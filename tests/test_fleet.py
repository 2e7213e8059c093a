"""
Fleet administration tests.

Demonstrates:
1. Drivers toggle online / offline, but never while bound to a ride.
2. Vehicles move in and out of maintenance, but never while busy.
3. Location reports store the H3 cell the candidate search filters on.
4. Registering drivers and vehicles is admin-only.
"""

from __future__ import annotations

import pytest

from fleetride.domain.enums import DriverStatus, VehicleStatus
from fleetride.domain.errors import AuthorizationError, Conflict, NotFound
from fleetride.domain.proximity import location_cell
from fleetride.infrastructure.models import DriverModel, VehicleModel


class TestDriverAvailability:
    @pytest.mark.asyncio
    async def test_offline_driver_goes_online(self, fleet, world, load):
        driver = await fleet.set_driver_availability(world.upul, online=True)
        assert driver.status == DriverStatus.AVAILABLE
        stored = await load(DriverModel, world.upul.id)
        assert stored.status == DriverStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_going_offline_twice_is_a_no_op(self, fleet, world, load):
        await fleet.set_driver_availability(world.saman, online=False)
        driver = await fleet.set_driver_availability(world.saman, online=False)
        assert driver.status == DriverStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_busy_driver_cannot_go_offline(
        self, fleet, rides, world, load, busy_iff_bound
    ):
        await rides.assigned(world.saman)
        with pytest.raises(Conflict):
            await fleet.set_driver_availability(world.saman, online=False)

        stored = await load(DriverModel, world.saman.id)
        assert stored.status == DriverStatus.BUSY
        await busy_iff_bound()

    @pytest.mark.asyncio
    async def test_only_drivers_toggle_availability(self, fleet, world):
        with pytest.raises(AuthorizationError):
            await fleet.set_driver_availability(world.admin, online=False)


class TestVehicleMaintenance:
    @pytest.mark.asyncio
    async def test_into_and_out_of_maintenance(self, fleet, world, load):
        vehicle = await fleet.set_vehicle_maintenance(world.admin, world.axio_id, True)
        assert vehicle.status == VehicleStatus.MAINTENANCE

        await fleet.set_vehicle_maintenance(world.admin, world.wagon_id, False)
        stored = await load(VehicleModel, world.wagon_id)
        assert stored.status == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_busy_vehicle_cannot_enter_maintenance(
        self, fleet, rides, world, load
    ):
        await rides.assigned(world.saman, world.axio_id)
        with pytest.raises(Conflict):
            await fleet.set_vehicle_maintenance(world.admin, world.axio_id, True)
        stored = await load(VehicleModel, world.axio_id)
        assert stored.status == VehicleStatus.BUSY

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, fleet, world):
        with pytest.raises(NotFound):
            await fleet.set_vehicle_maintenance(world.admin, 999, True)

    @pytest.mark.asyncio
    async def test_requires_admin(self, fleet, world):
        with pytest.raises(AuthorizationError):
            await fleet.set_vehicle_maintenance(world.staff, world.axio_id, True)


class TestDriverLocation:
    @pytest.mark.asyncio
    async def test_location_update_stores_cell(self, fleet, world, load):
        await fleet.update_driver_location(world.kandy, 6.9022, 79.8607)

        stored = await load(DriverModel, world.kandy.id)
        assert stored.current_lat == pytest.approx(6.9022)
        assert stored.current_lng == pytest.approx(79.8607)
        assert stored.current_h3_cell == location_cell(6.9022, 79.8607, 7)
        assert stored.location_updated_at is not None

    @pytest.mark.asyncio
    async def test_moved_driver_becomes_a_candidate(self, fleet, rides, world):
        await fleet.update_driver_location(world.kandy, 6.9280, 79.8615)
        ride = await rides.approved()

        ranked = await fleet.candidate_drivers(world.admin, ride.id)
        assert world.kandy.id in [driver.id for driver, _ in ranked]


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_driver(self, fleet, world, load):
        driver = await fleet.register_driver(
            world.admin, "Ruwan Bandara", "0771234599", "901234599V"
        )
        stored = await load(DriverModel, driver.id)
        assert stored.full_name == "Ruwan Bandara"
        assert stored.status == DriverStatus.AVAILABLE
        assert stored.rating_count == 0

    @pytest.mark.asyncio
    async def test_register_vehicle(self, fleet, world, load):
        vehicle = await fleet.register_vehicle(
            world.admin, "CAK-1357", "Nissan", "Caravan", 2019, 12
        )
        stored = await load(VehicleModel, vehicle.id)
        assert stored.vehicle_number == "CAK-1357"
        assert stored.status == VehicleStatus.AVAILABLE
        assert stored.current_driver_id is None

    @pytest.mark.asyncio
    async def test_registration_requires_admin(self, fleet, world):
        with pytest.raises(AuthorizationError):
            await fleet.register_driver(world.staff, "Someone", "0770000000", "1V")
        with pytest.raises(AuthorizationError):
            await fleet.register_vehicle(world.staff, "X-1", "Tata", "Nano", 2012, 4)
