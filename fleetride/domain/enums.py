"""Domain enumerations."""

import enum


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED})

# Ride statuses during which a driver and vehicle are held
ACTIVE_BINDING_STATUSES = frozenset({RideStatus.ASSIGNED, RideStatus.ONGOING})


class DriverStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    MAINTENANCE = "maintenance"


class UserRole(str, enum.Enum):
    USER = "user"
    DRIVER = "driver"
    DEPARTMENT_HEAD = "department_head"
    PROJECT_MANAGER = "project_manager"
    ADMIN = "admin"


class Department(str, enum.Enum):
    MECHANICAL = "mechanical"
    CIVIL = "civil"
    ELECTRICAL = "electrical"
    HSEQ = "HSEQ"
    HR = "HR"


class RecipientType(str, enum.Enum):
    USER = "user"
    DRIVER = "driver"


class NotificationType(str, enum.Enum):
    RIDE_REQUEST = "ride_request"
    RIDE_APPROVED = "ride_approved"
    RIDE_REJECTED = "ride_rejected"
    RIDE_ASSIGNED = "ride_assigned"
    RIDE_STARTED = "ride_started"
    RIDE_COMPLETED = "ride_completed"
    RIDE_CANCELLED = "ride_cancelled"
