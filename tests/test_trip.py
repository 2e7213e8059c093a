"""
Trip execution tests: start, complete, cancel and delete.

Demonstrates:
1. The full round trip returns driver and vehicle to the pool and adds the
   actual distance to both running totals.
2. Missing or zero actual distance still releases resources but accrues
   nothing.
3. Only the bound driver can start / complete.
4. Cancelling frees bound resources; deleting needs a terminal ride.
"""

from __future__ import annotations

import pytest

from fleetride.domain.entities import Location
from fleetride.domain.enums import ApprovalStatus, DriverStatus, RideStatus, VehicleStatus
from fleetride.domain.errors import AuthorizationError, Conflict, ValidationError
from fleetride.domain.transitions import Actor
from fleetride.infrastructure.models import DriverModel, RideModel, VehicleModel


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_complete_round_trip(self, lifecycle, rides, world, load, busy_iff_bound):
        ride = await rides.assigned(world.saman, world.axio_id)

        ride = await lifecycle.start(ride.id, world.saman)
        assert ride.status == RideStatus.ONGOING
        assert ride.start_time is not None

        drop_off = Location(6.9022, 79.8607, "Site A gate 2")
        ride = await lifecycle.complete(
            ride.id, world.saman, actual_end=drop_off, actual_distance=12.5
        )
        assert ride.status == RideStatus.COMPLETED
        assert ride.approval_status == ApprovalStatus.APPROVED
        assert ride.distance == 12.5
        assert ride.end_time is not None
        assert ride.actual_end_address == "Site A gate 2"

        driver = await load(DriverModel, world.saman.id)
        vehicle = await load(VehicleModel, world.axio_id)
        assert driver.status == DriverStatus.AVAILABLE
        assert driver.total_distance == pytest.approx(12.5)
        assert driver.current_lat == pytest.approx(6.9022)
        assert driver.current_h3_cell is not None
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert vehicle.current_driver_id is None
        assert vehicle.total_distance == pytest.approx(12.5)
        await busy_iff_bound()

    @pytest.mark.asyncio
    async def test_totals_accumulate_across_rides(self, lifecycle, rides, world, load):
        await rides.completed(actual_distance=12.5)
        await rides.completed(actual_distance=7.5)

        driver = await load(DriverModel, world.saman.id)
        assert driver.total_distance == pytest.approx(20.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actual_distance", [None, 0])
    async def test_missing_distance_releases_without_accrual(
        self, rides, world, load, actual_distance
    ):
        ride = await rides.completed(actual_distance=actual_distance)
        assert ride.status == RideStatus.COMPLETED
        # the planned distance stands
        assert ride.distance == pytest.approx(2.77, abs=0.05)

        driver = await load(DriverModel, world.saman.id)
        vehicle = await load(VehicleModel, world.axio_id)
        assert driver.status == DriverStatus.AVAILABLE
        assert driver.total_distance == 0
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert vehicle.total_distance == 0

    @pytest.mark.asyncio
    async def test_negative_distance_is_rejected(self, lifecycle, rides, world):
        ride = await rides.ongoing()
        with pytest.raises(ValidationError):
            await lifecycle.complete(ride.id, world.saman, actual_distance=-1)


class TestDriverChecks:
    @pytest.mark.asyncio
    async def test_other_driver_cannot_start(self, lifecycle, rides, world):
        ride = await rides.assigned(world.saman)
        with pytest.raises(AuthorizationError):
            await lifecycle.start(ride.id, world.ajith)

    @pytest.mark.asyncio
    async def test_requester_cannot_complete(self, lifecycle, rides, world):
        ride = await rides.ongoing()
        with pytest.raises(AuthorizationError):
            await lifecycle.complete(ride.id, world.staff, actual_distance=3)

    @pytest.mark.asyncio
    async def test_start_twice_is_conflict(self, lifecycle, rides, world):
        ride = await rides.ongoing()
        with pytest.raises(Conflict):
            await lifecycle.start(ride.id, world.saman)

    @pytest.mark.asyncio
    async def test_complete_before_start_is_conflict(self, lifecycle, rides, world, load):
        ride = await rides.assigned()
        with pytest.raises(Conflict):
            await lifecycle.complete(ride.id, world.saman, actual_distance=5)
        driver = await load(DriverModel, world.saman.id)
        assert driver.status == DriverStatus.BUSY


class TestCancel:
    @pytest.mark.asyncio
    async def test_requester_cancels_pending(self, lifecycle, rides, world):
        ride = await rides.pending()
        ride = await lifecycle.cancel(ride.id, world.staff, "Meeting moved online")
        assert ride.status == RideStatus.CANCELLED
        assert ride.approval_status == ApprovalStatus.PENDING
        assert ride.cancellation_reason == "Meeting moved online"

    @pytest.mark.asyncio
    async def test_admin_cancel_of_assigned_ride_frees_resources(
        self, lifecycle, rides, world, load, busy_iff_bound
    ):
        ride = await rides.assigned(world.saman, world.axio_id)
        ride = await lifecycle.cancel(ride.id, world.admin)
        assert ride.status == RideStatus.CANCELLED
        assert ride.approval_status == ApprovalStatus.APPROVED

        driver = await load(DriverModel, world.saman.id)
        vehicle = await load(VehicleModel, world.axio_id)
        assert driver.status == DriverStatus.AVAILABLE
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert driver.total_distance == 0
        await busy_iff_bound()

    @pytest.mark.asyncio
    async def test_colleague_cannot_cancel(self, lifecycle, rides, world):
        ride = await rides.pending()
        with pytest.raises(AuthorizationError):
            await lifecycle.cancel(ride.id, world.colleague)

    @pytest.mark.asyncio
    async def test_cancel_completed_is_conflict(self, lifecycle, rides, world):
        ride = await rides.completed()
        with pytest.raises(Conflict):
            await lifecycle.cancel(ride.id, world.staff)


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_ongoing_is_conflict_then_completed_succeeds(
        self, lifecycle, rides, world, load
    ):
        ride = await rides.ongoing()
        with pytest.raises(Conflict):
            await lifecycle.delete(ride.id, world.staff)
        assert await load(RideModel, ride.id) is not None

        await lifecycle.complete(ride.id, world.saman, actual_distance=4)
        await lifecycle.delete(ride.id, world.staff)
        assert await load(RideModel, ride.id) is None

    @pytest.mark.asyncio
    async def test_admin_deletes_rejected_ride(self, lifecycle, rides, world, load):
        ride = await rides.pending()
        await lifecycle.reject(ride.id, world.mech_head, Actor.DEPARTMENT_HEAD, "No")
        await lifecycle.delete(ride.id, world.admin)
        assert await load(RideModel, ride.id) is None

    @pytest.mark.asyncio
    async def test_colleague_cannot_delete(self, lifecycle, rides, world):
        ride = await rides.completed()
        with pytest.raises(AuthorizationError):
            await lifecycle.delete(ride.id, world.colleague)
