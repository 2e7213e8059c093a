"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.

Driver and vehicle availability are only ever changed through the
conditional ``UPDATE ... WHERE status = <expected>`` helpers below.  Under
read-committed isolation a second writer blocks on the row lock, then
re-evaluates the predicate against the committed row and updates nothing,
which is what turns a double assignment into a clean
``ResourceUnavailable``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    DriverModel,
    NotificationModel,
    RideModel,
    UserModel,
    VehicleModel,
)
from fleetride.domain.enums import (
    ApprovalStatus,
    Department,
    DriverStatus,
    RecipientType,
    RideStatus,
    UserRole,
    VehicleStatus,
)


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_for_update(self, ride_id: int) -> Optional[RideModel]:
        """SELECT ... FOR UPDATE so competing transitions serialize on the ride."""
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete(self, ride_id: int) -> None:
        await self.session.execute(delete(RideModel).where(RideModel.id == ride_id))

    async def ratings_for_driver(self, driver_id: int) -> list[int]:
        result = await self.session.execute(
            select(RideModel.rating).where(
                RideModel.driver_id == driver_id,
                RideModel.rating.is_not(None),
            )
        )
        return list(result.scalars().all())

    async def list_for_requester(
        self,
        requester_id: int,
        status: Optional[RideStatus] = None,
        limit: int = 10,
    ) -> tuple[list[RideModel], int]:
        conditions = [RideModel.requester_id == requester_id]
        if status is not None:
            conditions.append(RideModel.status == status)
        rows = await self.session.execute(
            select(RideModel)
            .where(*conditions)
            .order_by(RideModel.created_at.desc(), RideModel.id.desc())
            .limit(limit)
        )
        total = await self.session.execute(
            select(func.count()).select_from(RideModel).where(*conditions)
        )
        return list(rows.scalars().all()), total.scalar() or 0

    async def list_for_driver(
        self,
        driver_id: int,
        statuses: Iterable[RideStatus],
        limit: Optional[int] = None,
    ) -> list[RideModel]:
        query = (
            select(RideModel)
            .where(
                RideModel.driver_id == driver_id,
                RideModel.status.in_(list(statuses)),
            )
            .order_by(RideModel.updated_at.desc(), RideModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_awaiting_department_head(self, user_id: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.department_head_id == user_id,
                RideModel.status == RideStatus.PENDING,
                RideModel.approval_status == ApprovalStatus.PENDING,
            )
            .order_by(RideModel.created_at)
        )
        return list(result.scalars().all())

    async def list_awaiting_project_manager(self, user_id: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.project_manager_id == user_id,
                RideModel.status == RideStatus.PENDING,
                RideModel.approval_status == ApprovalStatus.APPROVED,
            )
            .order_by(RideModel.created_at)
        )
        return list(result.scalars().all())

    async def list_by_status(
        self, status: Optional[RideStatus] = None, limit: int = 100
    ) -> list[RideModel]:
        query = select(RideModel).order_by(RideModel.created_at.desc(), RideModel.id.desc())
        if status is not None:
            query = query.where(RideModel.status == status)
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, driver: DriverModel) -> DriverModel:
        self.session.add(driver)
        await self.session.flush()
        return driver

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_many(self, driver_ids: Iterable[int]) -> dict[int, DriverModel]:
        ids = {i for i in driver_ids if i is not None}
        if not ids:
            return {}
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.id.in_(ids))
        )
        return {d.id: d for d in result.scalars().all()}

    async def compare_and_set_status(
        self, driver_id: int, expected: DriverStatus, new: DriverStatus
    ) -> bool:
        """Move *expected* -> *new* atomically.  False if the row was not *expected*."""
        result = await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id, DriverModel.status == expected)
            .values(status=new)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1

    async def release(self, driver_id: int, distance: float = 0.0) -> None:
        await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(
                status=DriverStatus.AVAILABLE,
                total_distance=DriverModel.total_distance + distance,
            )
            .execution_options(synchronize_session="fetch")
        )

    async def update_location(
        self,
        driver_id: int,
        lat: float,
        lng: float,
        h3_cell: str,
        at: datetime,
    ) -> None:
        await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(
                current_lat=lat,
                current_lng=lng,
                current_h3_cell=h3_cell,
                location_updated_at=at,
            )
            .execution_options(synchronize_session="evaluate")
        )

    async def update_rating(self, driver_id: int, rating: float, count: int) -> None:
        await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(rating=rating, rating_count=count)
            .execution_options(synchronize_session="evaluate")
        )

    async def get_available_in_cells(self, cells: Sequence[str]) -> list[DriverModel]:
        if not cells:
            return []
        result = await self.session.execute(
            select(DriverModel).where(
                DriverModel.status == DriverStatus.AVAILABLE,
                DriverModel.is_active.is_(True),
                DriverModel.current_h3_cell.in_(list(cells)),
            )
        )
        return list(result.scalars().all())


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, vehicle: VehicleModel) -> VehicleModel:
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_many(self, vehicle_ids: Iterable[int]) -> dict[int, VehicleModel]:
        ids = {i for i in vehicle_ids if i is not None}
        if not ids:
            return {}
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.id.in_(ids))
        )
        return {v.id: v for v in result.scalars().all()}

    async def claim(self, vehicle_id: int, driver_id: int) -> bool:
        result = await self.session.execute(
            update(VehicleModel)
            .where(
                VehicleModel.id == vehicle_id,
                VehicleModel.status == VehicleStatus.AVAILABLE,
            )
            .values(status=VehicleStatus.BUSY, current_driver_id=driver_id)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1

    async def compare_and_set_status(
        self, vehicle_id: int, expected: VehicleStatus, new: VehicleStatus
    ) -> bool:
        result = await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.id == vehicle_id, VehicleModel.status == expected)
            .values(status=new)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1

    async def release(self, vehicle_id: int, distance: float = 0.0) -> None:
        await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .values(
                status=VehicleStatus.AVAILABLE,
                current_driver_id=None,
                total_distance=VehicleModel.total_distance + distance,
            )
            .execution_options(synchronize_session="fetch")
        )


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, UserModel]:
        ids = {i for i in user_ids if i is not None}
        if not ids:
            return {}
        result = await self.session.execute(
            select(UserModel).where(UserModel.id.in_(ids))
        )
        return {u.id: u for u in result.scalars().all()}

    async def find_department_head(
        self, department: Department
    ) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel)
            .where(
                UserModel.role == UserRole.DEPARTMENT_HEAD,
                UserModel.department == department,
                UserModel.is_active.is_(True),
            )
            .order_by(UserModel.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_project_manager(
        self, exclude_user_id: Optional[int] = None
    ) -> Optional[UserModel]:
        query = select(UserModel).where(
            UserModel.role == UserRole.PROJECT_MANAGER,
            UserModel.is_active.is_(True),
        )
        if exclude_user_id is not None:
            query = query.where(UserModel.id != exclude_user_id)
        result = await self.session.execute(query.order_by(UserModel.id).limit(1))
        return result.scalar_one_or_none()


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, notification: NotificationModel) -> None:
        self.session.add(notification)

    async def list_for_recipient(
        self,
        recipient_type: RecipientType,
        recipient_id: int,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[NotificationModel]:
        query = select(NotificationModel).where(
            NotificationModel.recipient_type == recipient_type,
            NotificationModel.recipient_id == recipient_id,
        )
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        result = await self.session.execute(
            query.order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            ).limit(limit)
        )
        return list(result.scalars().all())

    async def mark_read(
        self, notification_id: int, recipient_type: RecipientType, recipient_id: int
    ) -> bool:
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.recipient_type == recipient_type,
                NotificationModel.recipient_id == recipient_id,
            )
            .values(is_read=True)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1

    async def mark_all_read(
        self, recipient_type: RecipientType, recipient_id: int
    ) -> int:
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.recipient_type == recipient_type,
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    async def get_undispatched_for_update(
        self, limit: int, max_attempts: int
    ) -> list[NotificationModel]:
        """Oldest undelivered rows; SKIP LOCKED so parallel drains never collide."""
        result = await self.session.execute(
            select(NotificationModel)
            .where(
                NotificationModel.dispatched_at.is_(None),
                NotificationModel.attempts < max_attempts,
            )
            .order_by(NotificationModel.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(result.scalars().all())
