"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - one department head and two staff members per department
  - 1 project manager and 1 admin
  - 6 drivers (with last-known positions around the head office)
  - 6 vehicles (one in maintenance)
"""

import asyncio
from datetime import datetime, timezone

from sqlalchemy import text

from fleetride.config import settings
from fleetride.domain.enums import Department, DriverStatus, UserRole, VehicleStatus
from fleetride.domain.proximity import location_cell
from fleetride.infrastructure.database import async_session_factory, engine
from fleetride.infrastructure.models import DriverModel, UserModel, VehicleModel

# Head office (Colombo) coordinates, approx
OFFICE_LAT, OFFICE_LNG = 6.9271, 79.8612

STAFF = {
    Department.MECHANICAL: ("Nimal Perera", ["Kasun Silva", "Tharindu Jayasuriya"]),
    Department.CIVIL: ("Sunethra Fernando", ["Ishara Bandara", "Dilan Wickramasinghe"]),
    Department.ELECTRICAL: ("Ruwan Dissanayake", ["Hiruni Rathnayake", "Sahan Kumara"]),
    Department.HSEQ: ("Anoma Gunasekara", ["Chamath Herath", "Nadeesha Peiris"]),
    Department.HR: ("Lalith Senanayake", ["Madushani Weerasinghe", "Pasindu Abeysekara"]),
}

DRIVERS = [
    {"full_name": "Saman Kumara", "contact": "0771234501", "nic": "851234501V", "lat": 6.9275, "lng": 79.8620},
    {"full_name": "Ajith Rajapaksha", "contact": "0771234502", "nic": "821234502V", "lat": 6.9300, "lng": 79.8580},
    {"full_name": "Upul Shantha", "contact": "0771234503", "nic": "791234503V", "lat": 6.9150, "lng": 79.8700},
    {"full_name": "Chaminda Vaas", "contact": "0771234504", "nic": "881234504V", "lat": 6.9400, "lng": 79.8500},
    {"full_name": "Roshan Mahanama", "contact": "0771234505", "nic": "901234505V", "lat": 6.8900, "lng": 79.8800},
    {"full_name": "Kumar Dharmasena", "contact": "0771234506", "nic": "871234506V", "lat": 7.0000, "lng": 79.9000},
]

VEHICLES = [
    {"vehicle_number": "CAB-1234", "make": "Toyota", "model": "Axio", "year": 2018, "capacity": 4},
    {"vehicle_number": "CAC-5678", "make": "Toyota", "model": "KDH", "year": 2017, "capacity": 14},
    {"vehicle_number": "CAD-9012", "make": "Nissan", "model": "X-Trail", "year": 2020, "capacity": 5},
    {"vehicle_number": "CAE-3456", "make": "Honda", "model": "Vezel", "year": 2019, "capacity": 4},
    {"vehicle_number": "CAF-7890", "make": "Mitsubishi", "model": "Montero", "year": 2016, "capacity": 7},
    {"vehicle_number": "CAG-2468", "make": "Suzuki", "model": "Wagon R", "year": 2021, "capacity": 4, "maintenance": True},
]


def _email(name: str) -> str:
    return name.lower().replace(" ", ".") + "@fleetride.example"


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        users = []
        for department, (head, staff) in STAFF.items():
            users.append(
                UserModel(
                    full_name=head,
                    email=_email(head),
                    role=UserRole.DEPARTMENT_HEAD,
                    department=department,
                )
            )
            for name in staff:
                users.append(
                    UserModel(
                        full_name=name,
                        email=_email(name),
                        role=UserRole.USER,
                        department=department,
                    )
                )
        users.append(
            UserModel(
                full_name="Dinesh Chandimal",
                email=_email("Dinesh Chandimal"),
                role=UserRole.PROJECT_MANAGER,
            )
        )
        users.append(
            UserModel(
                full_name="Fleet Admin",
                email="admin@fleetride.example",
                role=UserRole.ADMIN,
            )
        )
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(users)} users")

        # ── Drivers ───────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        drivers = [
            DriverModel(
                full_name=d["full_name"],
                contact=d["contact"],
                nic=d["nic"],
                status=DriverStatus.AVAILABLE,
                current_lat=d["lat"],
                current_lng=d["lng"],
                current_h3_cell=location_cell(d["lat"], d["lng"], settings.h3_resolution),
                location_updated_at=now,
            )
            for d in DRIVERS
        ]
        session.add_all(drivers)
        await session.flush()
        print(f"  Created {len(drivers)} drivers")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicles = [
            VehicleModel(
                vehicle_number=v["vehicle_number"],
                make=v["make"],
                model=v["model"],
                year=v["year"],
                capacity=v["capacity"],
                status=(
                    VehicleStatus.MAINTENANCE
                    if v.get("maintenance")
                    else VehicleStatus.AVAILABLE
                ),
            )
            for v in VEHICLES
        ]
        session.add_all(vehicles)
        await session.flush()
        print(f"  Created {len(vehicles)} vehicles")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
