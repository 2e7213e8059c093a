"""
Admin endpoints
===============

GET   /api/v1/admin/rides                        -- all rides, optional status filter
PATCH /api/v1/admin/rides/{ride_id}/approve      -- approve a ride with no department head
PATCH /api/v1/admin/rides/{ride_id}/reject       -- reject a ride with no department head
PATCH /api/v1/admin/rides/{ride_id}/assign       -- bind a driver and a vehicle
GET   /api/v1/admin/rides/{ride_id}/candidates   -- nearby available drivers
POST  /api/v1/admin/drivers                      -- register a driver
POST  /api/v1/admin/vehicles                     -- register a vehicle
PATCH /api/v1/admin/vehicles/{vehicle_id}/maintenance
GET   /api/v1/admin/health                       -- simple health check
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from fleetride.api.dependencies import get_caller, get_fleet, get_lifecycle, get_queries
from fleetride.api.middleware import limiter
from fleetride.api.schemas import (
    AssignRequest,
    CandidateResponse,
    DriverCreateRequest,
    DriverResponse,
    HealthResponse,
    MaintenanceRequest,
    ReasonRequest,
    VehicleCreateRequest,
    VehicleResponse,
)
from fleetride.config import settings
from fleetride.domain.entities import Caller
from fleetride.domain.enums import RideStatus
from fleetride.domain.transitions import Actor
from fleetride.services.fleet import FleetService
from fleetride.services.lifecycle import RideLifecycleService
from fleetride.services.projections import RideQueryService, RideView

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/rides", response_model=list[RideView], summary="List rides by status")
@limiter.limit(settings.rate_limit)
async def list_rides(
    request: Request,
    status: Optional[RideStatus] = None,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return await queries.admin_rides(caller, status)


@router.patch(
    "/rides/{ride_id}/approve",
    response_model=RideView,
    summary="Approve a ride that has no department head",
)
@limiter.limit(settings.rate_limit)
async def approve_ride(
    request: Request,
    ride_id: int,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.approve(ride_id, caller, Actor.ADMIN_APPROVER)
    return await queries.ride_detail(ride.id, caller)


@router.patch(
    "/rides/{ride_id}/reject",
    response_model=RideView,
    summary="Reject a ride that has no department head",
)
@limiter.limit(settings.rate_limit)
async def reject_ride(
    request: Request,
    ride_id: int,
    body: Optional[ReasonRequest] = None,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.reject(
        ride_id, caller, Actor.ADMIN_APPROVER, body.reason if body else None
    )
    return await queries.ride_detail(ride.id, caller)


@router.patch(
    "/rides/{ride_id}/assign",
    response_model=RideView,
    summary="Assign a driver and vehicle",
    description=(
        "Claims the driver and vehicle atomically. A driver or vehicle that "
        "is already busy, or taken by a concurrent assignment, yields 409 "
        "resource_unavailable and leaves everything unchanged."
    ),
)
@limiter.limit(settings.rate_limit)
async def assign_ride(
    request: Request,
    ride_id: int,
    body: AssignRequest,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    await lifecycle.assign(ride_id, caller, body.driver_id, body.vehicle_id)
    return await queries.ride_detail(ride_id, caller)


@router.get(
    "/rides/{ride_id}/candidates",
    response_model=list[CandidateResponse],
    summary="Available drivers near the pickup, nearest first",
)
@limiter.limit(settings.rate_limit)
async def candidate_drivers(
    request: Request,
    ride_id: int,
    caller: Caller = Depends(get_caller),
    fleet: FleetService = Depends(get_fleet),
):
    ranked = await fleet.candidate_drivers(caller, ride_id)
    return [
        CandidateResponse(
            driver=DriverResponse.model_validate(driver), distance_km=distance
        )
        for driver, distance in ranked
    ]


@router.post(
    "/drivers", status_code=201, response_model=DriverResponse, summary="Register a driver"
)
@limiter.limit(settings.rate_limit)
async def register_driver(
    request: Request,
    body: DriverCreateRequest,
    caller: Caller = Depends(get_caller),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.register_driver(
        caller, body.full_name, body.contact, body.nic, email=body.email
    )


@router.post(
    "/vehicles",
    status_code=201,
    response_model=VehicleResponse,
    summary="Register a vehicle",
)
@limiter.limit(settings.rate_limit)
async def register_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    caller: Caller = Depends(get_caller),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.register_vehicle(
        caller, body.vehicle_number, body.make, body.model, body.year, body.capacity
    )


@router.patch(
    "/vehicles/{vehicle_id}/maintenance",
    response_model=VehicleResponse,
    summary="Move a vehicle in or out of maintenance",
)
@limiter.limit(settings.rate_limit)
async def set_vehicle_maintenance(
    request: Request,
    vehicle_id: int,
    body: MaintenanceRequest,
    caller: Caller = Depends(get_caller),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.set_vehicle_maintenance(caller, vehicle_id, body.in_maintenance)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
