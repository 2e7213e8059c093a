"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetride.domain.entities import Caller
from fleetride.domain.enums import UserRole
from fleetride.domain.errors import AuthenticationError
from fleetride.infrastructure.database import async_session_factory
from fleetride.infrastructure.repositories import DriverRepository, UserRepository
from fleetride.services.fleet import FleetService
from fleetride.services.lifecycle import RideLifecycleService
from fleetride.services.projections import RideQueryService
from fleetride.services.uow import TransactionRunner


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


def get_runner(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> TransactionRunner:
    return TransactionRunner(session_factory)


def get_lifecycle(runner: TransactionRunner = Depends(get_runner)) -> RideLifecycleService:
    return RideLifecycleService(runner)


def get_fleet(runner: TransactionRunner = Depends(get_runner)) -> FleetService:
    return FleetService(runner)


def get_queries(runner: TransactionRunner = Depends(get_runner)) -> RideQueryService:
    return RideQueryService(runner)


async def get_caller(
    x_user_id: Optional[int] = Header(None),
    x_driver_id: Optional[int] = Header(None),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> Caller:
    """
    Resolve the caller from ``X-Driver-Id`` (drivers) or ``X-User-Id``
    (everyone else).  Unknown or deactivated identities are rejected.

    The lookup session is closed before the route runs; the services open
    their own transactions.
    """
    if x_driver_id is None and x_user_id is None:
        raise AuthenticationError("X-User-Id or X-Driver-Id header is required")

    async with session_factory() as session:
        if x_driver_id is not None:
            driver = await DriverRepository(session).get_by_id(x_driver_id)
            if driver is None or not driver.is_active:
                raise AuthenticationError("Unknown or inactive driver")
            return Caller(id=driver.id, role=UserRole.DRIVER)

        user = await UserRepository(session).get_by_id(x_user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Unknown or inactive user")
        return Caller(id=user.id, role=user.role, department=user.department)
