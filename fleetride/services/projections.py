"""
Read-side projections.

Listings join each ride with the names the UI needs (requester, driver,
vehicle number) through batched lookups instead of per-row queries.
Nothing here writes ride, driver or vehicle state.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from fleetride.domain.entities import Caller
from fleetride.domain.enums import (
    ApprovalStatus,
    NotificationType,
    RecipientType,
    RideStatus,
    UserRole,
)
from fleetride.domain.errors import AuthorizationError, NotFound
from fleetride.infrastructure.models import RideModel
from fleetride.infrastructure.repositories import (
    DriverRepository,
    NotificationRepository,
    RideRepository,
    UserRepository,
    VehicleRepository,
)
from fleetride.services.uow import TransactionRunner

DRIVER_HISTORY_LIMIT = 20


class RideView(BaseModel):
    id: int
    requester_id: int
    requester_name: Optional[str] = None
    status: RideStatus
    approval_status: ApprovalStatus

    start_lat: float
    start_lng: float
    start_address: str
    end_lat: float
    end_lng: float
    end_address: str
    actual_end_address: Optional[str] = None

    department_head_id: Optional[int] = None
    project_manager_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None

    driver_id: Optional[int] = None
    driver_name: Optional[str] = None
    driver_contact: Optional[str] = None
    vehicle_id: Optional[int] = None
    vehicle_number: Optional[str] = None

    distance: Optional[float] = None
    rating: Optional[int] = None
    requested_time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RidePage(BaseModel):
    rides: list[RideView]
    total: int


class DriverRides(BaseModel):
    assigned: list[RideView]
    history: list[RideView]


class NotificationView(BaseModel):
    id: int
    title: str
    message: str
    type: NotificationType
    data: dict
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


async def _views(session: AsyncSession, rides: Iterable[RideModel]) -> list[RideView]:
    rides = list(rides)
    users = await UserRepository(session).get_many(r.requester_id for r in rides)
    drivers = await DriverRepository(session).get_many(r.driver_id for r in rides)
    vehicles = await VehicleRepository(session).get_many(r.vehicle_id for r in rides)

    views = []
    for ride in rides:
        view = RideView.model_validate(ride)
        requester = users.get(ride.requester_id)
        driver = drivers.get(ride.driver_id)
        vehicle = vehicles.get(ride.vehicle_id)
        view.requester_name = requester.full_name if requester else None
        view.driver_name = driver.full_name if driver else None
        view.driver_contact = driver.contact if driver else None
        view.vehicle_number = vehicle.vehicle_number if vehicle else None
        views.append(view)
    return views


def _can_view(ride: RideModel, caller: Caller) -> bool:
    if caller.is_driver:
        return ride.driver_id == caller.id
    return caller.is_admin or caller.id in (
        ride.requester_id,
        ride.department_head_id,
        ride.project_manager_id,
    )


def _recipient_type(caller: Caller) -> RecipientType:
    return RecipientType.DRIVER if caller.is_driver else RecipientType.USER


class RideQueryService:
    def __init__(self, runner: TransactionRunner):
        self.runner = runner

    async def ride_detail(self, ride_id: int, caller: Caller) -> RideView:
        async def _work(session: AsyncSession) -> RideView:
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                raise NotFound(f"Ride {ride_id} not found")
            if not _can_view(ride, caller):
                raise AuthorizationError("Not permitted to view this ride")
            (view,) = await _views(session, [ride])
            return view

        return await self.runner.run(_work, label="ride detail")

    async def my_rides(
        self,
        caller: Caller,
        status: Optional[RideStatus] = None,
        limit: int = 10,
    ) -> RidePage:
        if caller.is_driver:
            raise AuthorizationError("Drivers do not request rides")

        async def _work(session: AsyncSession) -> RidePage:
            rides, total = await RideRepository(session).list_for_requester(
                caller.id, status=status, limit=limit
            )
            return RidePage(rides=await _views(session, rides), total=total)

        return await self.runner.run(_work, label="list my rides")

    async def driver_rides(self, caller: Caller) -> DriverRides:
        if not caller.is_driver:
            raise AuthorizationError("Driver access required")

        async def _work(session: AsyncSession) -> DriverRides:
            repo = RideRepository(session)
            assigned = await repo.list_for_driver(
                caller.id, [RideStatus.ASSIGNED, RideStatus.ONGOING]
            )
            history = await repo.list_for_driver(
                caller.id,
                [RideStatus.COMPLETED, RideStatus.CANCELLED],
                limit=DRIVER_HISTORY_LIMIT,
            )
            return DriverRides(
                assigned=await _views(session, assigned),
                history=await _views(session, history),
            )

        return await self.runner.run(_work, label="list driver rides")

    async def department_head_queue(self, caller: Caller) -> list[RideView]:
        if caller.role != UserRole.DEPARTMENT_HEAD:
            raise AuthorizationError("Department head access required")

        async def _work(session: AsyncSession) -> list[RideView]:
            rides = await RideRepository(session).list_awaiting_department_head(
                caller.id
            )
            return await _views(session, rides)

        return await self.runner.run(_work, label="department head queue")

    async def project_manager_queue(self, caller: Caller) -> list[RideView]:
        if caller.role != UserRole.PROJECT_MANAGER:
            raise AuthorizationError("Project manager access required")

        async def _work(session: AsyncSession) -> list[RideView]:
            rides = await RideRepository(session).list_awaiting_project_manager(
                caller.id
            )
            return await _views(session, rides)

        return await self.runner.run(_work, label="project manager queue")

    async def admin_rides(
        self, caller: Caller, status: Optional[RideStatus] = None
    ) -> list[RideView]:
        if not caller.is_admin:
            raise AuthorizationError("Admin access required")

        async def _work(session: AsyncSession) -> list[RideView]:
            rides = await RideRepository(session).list_by_status(status)
            return await _views(session, rides)

        return await self.runner.run(_work, label="admin ride listing")

    # ── Notifications ─────────────────────────────────────────────────

    async def notifications(
        self, caller: Caller, unread_only: bool = False
    ) -> list[NotificationView]:
        async def _work(session: AsyncSession) -> list[NotificationView]:
            rows = await NotificationRepository(session).list_for_recipient(
                _recipient_type(caller), caller.id, unread_only=unread_only
            )
            return [NotificationView.model_validate(n) for n in rows]

        return await self.runner.run(_work, label="list notifications")

    async def mark_read(self, caller: Caller, notification_id: int) -> None:
        async def _work(session: AsyncSession) -> None:
            marked = await NotificationRepository(session).mark_read(
                notification_id, _recipient_type(caller), caller.id
            )
            if not marked:
                raise NotFound(f"Notification {notification_id} not found")

        await self.runner.run(_work, label="mark notification read")

    async def mark_all_read(self, caller: Caller) -> int:
        async def _work(session: AsyncSession) -> int:
            return await NotificationRepository(session).mark_all_read(
                _recipient_type(caller), caller.id
            )

        return await self.runner.run(_work, label="mark all notifications read")
