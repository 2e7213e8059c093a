"""
Shared test fixtures.

Each test gets its own file-backed SQLite database (via aiosqlite) so tests
run without Docker / PostgreSQL / Redis.  Transactions open with
``BEGIN IMMEDIATE``: SQLite has no row locks, so taking the write lock up
front is what makes two concurrent units of work serialize the way
``SELECT ... FOR UPDATE`` does on PostgreSQL.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fleetride.api.middleware import limiter
from fleetride.domain.entities import Caller, Location
from fleetride.domain.enums import (
    ACTIVE_BINDING_STATUSES,
    Department,
    DriverStatus,
    UserRole,
    VehicleStatus,
)
from fleetride.domain.proximity import location_cell
from fleetride.domain.transitions import Actor
from fleetride.infrastructure.database import Base
from fleetride.infrastructure.models import (
    DriverModel,
    RideModel,
    UserModel,
    VehicleModel,
)
from fleetride.services.fleet import FleetService
from fleetride.services.lifecycle import RideLifecycleService
from fleetride.services.projections import RideQueryService
from fleetride.services.uow import TransactionRunner

HEAD_OFFICE = Location(6.9271, 79.8612, "Head Office, Colombo 01")
SITE_A = Location(6.9022, 79.8607, "Site A, Colombo 05")


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fleetride.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _no_implicit_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def runner(session_factory) -> TransactionRunner:
    return TransactionRunner(session_factory, timeout_seconds=10)


@pytest.fixture
def lifecycle(runner) -> RideLifecycleService:
    return RideLifecycleService(runner)


@pytest.fixture
def fleet(runner) -> FleetService:
    return FleetService(runner)


@pytest.fixture
def queries(runner) -> RideQueryService:
    return RideQueryService(runner)


@pytest.fixture
def load(session_factory):
    """Fetch a fresh copy of a row, bypassing any caller's identity map."""

    async def _load(model, pk):
        async with session_factory() as session:
            return await session.get(model, pk)

    return _load


@pytest.fixture
def busy_iff_bound(session_factory):
    """Assert every busy driver/vehicle is bound to exactly one active ride, and vice versa."""

    async def _check() -> None:
        async with session_factory() as session:
            active = (
                await session.execute(
                    select(RideModel).where(
                        RideModel.status.in_(ACTIVE_BINDING_STATUSES)
                    )
                )
            ).scalars().all()
            drivers = (await session.execute(select(DriverModel))).scalars().all()
            vehicles = (await session.execute(select(VehicleModel))).scalars().all()

        bound_drivers = [r.driver_id for r in active]
        bound_vehicles = [r.vehicle_id for r in active]
        assert len(bound_drivers) == len(set(bound_drivers))
        assert len(bound_vehicles) == len(set(bound_vehicles))
        for driver in drivers:
            assert (driver.status == DriverStatus.BUSY) == (driver.id in bound_drivers)
        for vehicle in vehicles:
            assert (vehicle.status == VehicleStatus.BUSY) == (
                vehicle.id in bound_vehicles
            )

    return _check


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield


# ── Seed data ─────────────────────────────────────────────────────────


def _driver(name: str, nic: str, lat: float, lng: float, status=DriverStatus.AVAILABLE):
    return DriverModel(
        full_name=name,
        contact="07712345" + nic[-2:],
        nic=nic,
        status=status,
        current_lat=lat,
        current_lng=lng,
        current_h3_cell=location_cell(lat, lng, 7),
    )


@pytest_asyncio.fixture
async def world(session_factory) -> SimpleNamespace:
    """
    Two departments with a head each, staff, a project manager, an admin,
    a requester with no department, four drivers and three vehicles.
    """
    async with session_factory() as session:
        users = {
            "mech_head": UserModel(
                full_name="Nimal Perera",
                email="nimal@fleetride.example",
                role=UserRole.DEPARTMENT_HEAD,
                department=Department.MECHANICAL,
            ),
            "civil_head": UserModel(
                full_name="Sunethra Fernando",
                email="sunethra@fleetride.example",
                role=UserRole.DEPARTMENT_HEAD,
                department=Department.CIVIL,
            ),
            "staff": UserModel(
                full_name="Kasun Silva",
                email="kasun@fleetride.example",
                role=UserRole.USER,
                department=Department.MECHANICAL,
            ),
            "colleague": UserModel(
                full_name="Tharindu Jayasuriya",
                email="tharindu@fleetride.example",
                role=UserRole.USER,
                department=Department.MECHANICAL,
            ),
            "pm": UserModel(
                full_name="Dinesh Chandimal",
                email="dinesh@fleetride.example",
                role=UserRole.PROJECT_MANAGER,
            ),
            "admin": UserModel(
                full_name="Fleet Admin",
                email="admin@fleetride.example",
                role=UserRole.ADMIN,
            ),
            "contractor": UserModel(
                full_name="Hiruni Rathnayake",
                email="hiruni@fleetride.example",
                role=UserRole.USER,
            ),
        }
        drivers = {
            "saman": _driver("Saman Kumara", "851234501V", 6.9275, 79.8620),
            "ajith": _driver("Ajith Rajapaksha", "821234502V", 6.9300, 79.8580),
            "upul": _driver(
                "Upul Shantha", "791234503V", 6.9150, 79.8700, DriverStatus.OFFLINE
            ),
            "kandy": _driver("Kumar Dharmasena", "871234506V", 7.2906, 80.6337),
        }
        vehicles = {
            "axio": VehicleModel(
                vehicle_number="CAB-1234", make="Toyota", model="Axio", year=2018, capacity=4
            ),
            "kdh": VehicleModel(
                vehicle_number="CAC-5678", make="Toyota", model="KDH", year=2017, capacity=14
            ),
            "wagon": VehicleModel(
                vehicle_number="CAG-2468",
                make="Suzuki",
                model="Wagon R",
                year=2021,
                capacity=4,
                status=VehicleStatus.MAINTENANCE,
            ),
        }
        session.add_all([*users.values(), *drivers.values(), *vehicles.values()])
        await session.commit()

    ns = SimpleNamespace()
    for key, user in users.items():
        setattr(ns, key, Caller(id=user.id, role=user.role, department=user.department))
    for key, driver in drivers.items():
        setattr(ns, key, Caller(id=driver.id, role=UserRole.DRIVER))
    for key, vehicle in vehicles.items():
        setattr(ns, f"{key}_id", vehicle.id)
    return ns


# ── Ride builders ─────────────────────────────────────────────────────


class RideFactory:
    """Drives rides through the real lifecycle to the state a test needs."""

    def __init__(self, lifecycle: RideLifecycleService, world: SimpleNamespace):
        self.lifecycle = lifecycle
        self.world = world

    async def pending(self, requester: Caller | None = None):
        return await self.lifecycle.create_ride(
            requester or self.world.staff, HEAD_OFFICE, SITE_A
        )

    async def approved(self, requester: Caller | None = None):
        ride = await self.pending(requester)
        return await self.lifecycle.approve(
            ride.id, self.world.mech_head, Actor.DEPARTMENT_HEAD
        )

    async def assigned(self, driver: Caller | None = None, vehicle_id: int | None = None):
        ride = await self.approved()
        return await self.lifecycle.assign(
            ride.id,
            self.world.admin,
            (driver or self.world.saman).id,
            vehicle_id or self.world.axio_id,
        )

    async def ongoing(self, driver: Caller | None = None, vehicle_id: int | None = None):
        driver = driver or self.world.saman
        ride = await self.assigned(driver, vehicle_id)
        return await self.lifecycle.start(ride.id, driver)

    async def completed(self, actual_distance: float | None = 12.5):
        ride = await self.ongoing()
        return await self.lifecycle.complete(
            ride.id, self.world.saman, actual_distance=actual_distance
        )


@pytest.fixture
def rides(lifecycle, world) -> RideFactory:
    return RideFactory(lifecycle, world)
