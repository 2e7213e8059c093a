"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``          -- requesters and approvers (role + department)
* ``drivers``        -- fleet drivers, with availability and running totals
* ``vehicles``       -- fleet vehicles, with availability and odometer total
* ``rides``          -- ride requests through approval, execution and rating
* ``notifications``  -- outbox of lifecycle notifications

Indexes
-------
* **B-Tree** on ``status`` for drivers, vehicles and rides: the assignment
  compare-and-set and every queue listing filter on it.
* **B-Tree** on the ride's ``requester_id``, ``driver_id``,
  ``department_head_id`` and ``project_manager_id`` for the per-caller
  listings, and on ``drivers.current_h3_cell`` for proximity lookups.
* Composite ``(dispatched_at, attempts)`` index drives the outbox drain.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from fleetride.domain.enums import (
    ApprovalStatus,
    Department,
    DriverStatus,
    NotificationType,
    RecipientType,
    RideStatus,
    UserRole,
    VehicleStatus,
)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    department = Column(Enum(Department), nullable=True)
    contact = Column(String(40), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_users_role_department", "role", "department"),)


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(120), nullable=False)
    contact = Column(String(40), nullable=False)
    email = Column(String(255), nullable=True)
    nic = Column(String(20), unique=True, nullable=False)
    status = Column(
        Enum(DriverStatus), default=DriverStatus.AVAILABLE, nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)

    current_lat = Column(Float, nullable=True)
    current_lng = Column(Float, nullable=True)
    current_h3_cell = Column(String(20), nullable=True)
    location_updated_at = Column(DateTime(timezone=True), nullable=True)

    rating = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    total_distance = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_drivers_status", "status"),
        Index("idx_drivers_cell", "current_h3_cell"),
    )


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_number = Column(String(20), unique=True, nullable=False)
    make = Column(String(60), nullable=False)
    model = Column(String(60), nullable=False)
    year = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False)
    status = Column(
        Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False
    )
    # lookup convenience only; cleared whenever the bound ride ends
    current_driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    total_distance = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_vehicles_status", "status"),)


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)

    start_lat = Column(Float, nullable=False)
    start_lng = Column(Float, nullable=False)
    start_address = Column(String(255), nullable=False)
    end_lat = Column(Float, nullable=False)
    end_lng = Column(Float, nullable=False)
    end_address = Column(String(255), nullable=False)

    # Captured by the driver at start / completion
    actual_start_lat = Column(Float, nullable=True)
    actual_start_lng = Column(Float, nullable=True)
    actual_end_lat = Column(Float, nullable=True)
    actual_end_lng = Column(Float, nullable=True)
    actual_end_address = Column(String(255), nullable=True)

    status = Column(Enum(RideStatus), default=RideStatus.PENDING, nullable=False)
    approval_status = Column(
        Enum(ApprovalStatus), default=ApprovalStatus.PENDING, nullable=False
    )
    department_head_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    project_manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    distance = Column(Float, nullable=True)
    rating = Column(Integer, nullable=True)

    requested_time = Column(DateTime(timezone=True), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_requester", "requester_id"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_department_head", "department_head_id"),
        Index("idx_rides_project_manager", "project_manager_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(Integer, nullable=False)
    recipient_type = Column(Enum(RecipientType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationType), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    is_read = Column(Boolean, default=False, nullable=False)

    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_notifications_recipient", "recipient_type", "recipient_id", "is_read"),
        Index("idx_notifications_outbox", "dispatched_at", "attempts"),
    )
