"""
Read-side tests: ride listings, ride detail visibility and notifications.
"""

from __future__ import annotations

import pytest

from fleetride.domain.enums import NotificationType, RideStatus
from fleetride.domain.errors import AuthorizationError, NotFound


class TestRideDetail:
    @pytest.mark.asyncio
    async def test_detail_carries_names(self, queries, rides, world):
        ride = await rides.assigned(world.saman, world.axio_id)
        view = await queries.ride_detail(ride.id, world.staff)

        assert view.requester_name == "Kasun Silva"
        assert view.driver_name == "Saman Kumara"
        assert view.vehicle_number == "CAB-1234"
        assert view.status == RideStatus.ASSIGNED

    @pytest.mark.asyncio
    async def test_visible_to_parties_of_the_ride(self, queries, rides, world):
        ride = await rides.assigned(world.saman)
        for caller in (world.staff, world.mech_head, world.admin, world.saman):
            assert (await queries.ride_detail(ride.id, caller)).id == ride.id

    @pytest.mark.asyncio
    async def test_hidden_from_everyone_else(self, queries, rides, world):
        ride = await rides.assigned(world.saman)
        for caller in (world.colleague, world.civil_head, world.ajith):
            with pytest.raises(AuthorizationError):
                await queries.ride_detail(ride.id, caller)

    @pytest.mark.asyncio
    async def test_unknown_ride(self, queries, world):
        with pytest.raises(NotFound):
            await queries.ride_detail(999, world.admin)


class TestListings:
    @pytest.mark.asyncio
    async def test_my_rides_newest_first_with_total(self, queries, rides, world):
        first = await rides.pending()
        second = await rides.pending()
        await rides.pending(world.colleague)

        page = await queries.my_rides(world.staff)
        assert page.total == 2
        assert [r.id for r in page.rides] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_my_rides_status_filter_and_limit(self, queries, rides, world):
        await rides.pending()
        await rides.approved()
        await rides.approved()

        page = await queries.my_rides(world.staff, status=RideStatus.APPROVED, limit=1)
        assert page.total == 2
        assert len(page.rides) == 1
        assert page.rides[0].status == RideStatus.APPROVED

    @pytest.mark.asyncio
    async def test_drivers_have_no_requester_listing(self, queries, world):
        with pytest.raises(AuthorizationError):
            await queries.my_rides(world.saman)

    @pytest.mark.asyncio
    async def test_driver_rides_split_active_and_history(self, queries, rides, world):
        done = await rides.completed()
        active = await rides.assigned(world.saman, world.kdh_id)

        listing = await queries.driver_rides(world.saman)
        assert [r.id for r in listing.assigned] == [active.id]
        assert [r.id for r in listing.history] == [done.id]

    @pytest.mark.asyncio
    async def test_admin_listing_by_status(self, queries, rides, world):
        await rides.pending()
        approved = await rides.approved()

        listed = await queries.admin_rides(world.admin, RideStatus.APPROVED)
        assert [r.id for r in listed] == [approved.id]
        assert len(await queries.admin_rides(world.admin)) == 2

        with pytest.raises(AuthorizationError):
            await queries.admin_rides(world.staff)


class TestNotifications:
    @pytest.mark.asyncio
    async def test_driver_is_notified_of_assignment(self, queries, rides, world):
        ride = await rides.assigned(world.saman)

        [note] = await queries.notifications(world.saman)
        assert note.type == NotificationType.RIDE_ASSIGNED
        assert note.data["ride_id"] == ride.id
        assert note.is_read is False

    @pytest.mark.asyncio
    async def test_mark_read(self, queries, rides, world):
        await rides.approved()
        [note] = await queries.notifications(world.staff)

        await queries.mark_read(world.staff, note.id)
        assert await queries.notifications(world.staff, unread_only=True) == []

    @pytest.mark.asyncio
    async def test_cannot_mark_someone_elses(self, queries, rides, world):
        await rides.approved()
        [note] = await queries.notifications(world.staff)

        with pytest.raises(NotFound):
            await queries.mark_read(world.colleague, note.id)
        # user and driver ids share a number space; the recipient type keeps them apart
        with pytest.raises(NotFound):
            await queries.mark_read(world.saman, note.id)

    @pytest.mark.asyncio
    async def test_mark_all_read(self, queries, rides, world):
        await rides.assigned()
        unread = await queries.notifications(world.staff, unread_only=True)
        assert len(unread) == 2  # approved, then assigned

        assert await queries.mark_all_read(world.staff) == 2
        assert await queries.mark_all_read(world.staff) == 0
