"""
Value objects shared by the services and the API layer.

``AssignmentTransaction`` is the unit the assignment manager executes
atomically: one ride, one driver, one vehicle, all or nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import Department, UserRole


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: str = ""


@dataclass(frozen=True)
class Caller:
    """Identity of whoever is invoking an operation (supplied by AuthContext)."""

    id: int
    role: UserRole
    department: Optional[Department] = None

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class AssignmentTransaction:
    ride_id: int
    driver_id: int
    vehicle_id: int
