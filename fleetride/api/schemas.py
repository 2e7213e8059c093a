"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from fleetride.domain.entities import Location
from fleetride.domain.enums import DriverStatus, VehicleStatus


# ── Requests ──────────────────────────────────────────────────────────


class LocationIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: str = Field("", max_length=255)

    def to_location(self) -> Location:
        return Location(self.lat, self.lng, self.address)


class RideCreateRequest(BaseModel):
    start_location: LocationIn
    end_location: LocationIn
    distance: Optional[float] = Field(
        None, description="Planned distance in km; computed when omitted."
    )
    requested_time: Optional[datetime] = None


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RatingRequest(BaseModel):
    # checked by the rating rules, so a bad value reports a validation_error
    rating: Any = None


class AssignRequest(BaseModel):
    driver_id: int
    vehicle_id: int


class StartRequest(BaseModel):
    actual_start: Optional[LocationIn] = None


class CompleteRequest(BaseModel):
    actual_end: Optional[LocationIn] = None
    actual_distance: Optional[float] = Field(None, description="Odometer km.")


class AvailabilityRequest(BaseModel):
    online: bool


class LocationUpdateRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class MaintenanceRequest(BaseModel):
    in_maintenance: bool


class DriverCreateRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=120)
    contact: str = Field(..., min_length=1, max_length=40)
    nic: str = Field(..., min_length=1, max_length=20)
    email: Optional[str] = Field(None, max_length=255)


class VehicleCreateRequest(BaseModel):
    vehicle_number: str = Field(..., min_length=1, max_length=20)
    make: str = Field(..., min_length=1, max_length=60)
    model: str = Field(..., min_length=1, max_length=60)
    year: int = Field(..., ge=1950, le=2100)
    capacity: int = Field(..., ge=1, le=60)


# ── Responses ─────────────────────────────────────────────────────────


class DriverResponse(BaseModel):
    id: int
    full_name: str
    contact: str
    email: Optional[str] = None
    status: DriverStatus
    is_active: bool
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    rating: float
    rating_count: int
    total_distance: float

    model_config = {"from_attributes": True}


class VehicleResponse(BaseModel):
    id: int
    vehicle_number: str
    make: str
    model: str
    year: int
    capacity: int
    status: VehicleStatus
    current_driver_id: Optional[int] = None
    total_distance: float
    is_active: bool

    model_config = {"from_attributes": True}


class CandidateResponse(BaseModel):
    driver: DriverResponse
    distance_km: float


class MarkedResponse(BaseModel):
    updated: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    kind: str
    detail: str
