"""
Driver endpoints
================

GET   /api/v1/driver/rides                     -- assigned rides and recent history
PATCH /api/v1/driver/rides/{ride_id}/start     -- pick up the requester
PATCH /api/v1/driver/rides/{ride_id}/complete  -- drop off; frees driver and vehicle
PATCH /api/v1/driver/availability              -- go online / offline
PUT   /api/v1/driver/location                  -- report current position
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from fleetride.api.dependencies import get_caller, get_fleet, get_lifecycle, get_queries
from fleetride.api.middleware import limiter
from fleetride.api.schemas import (
    AvailabilityRequest,
    CompleteRequest,
    DriverResponse,
    LocationUpdateRequest,
    StartRequest,
)
from fleetride.config import settings
from fleetride.domain.entities import Caller
from fleetride.services.fleet import FleetService
from fleetride.services.lifecycle import RideLifecycleService
from fleetride.services.projections import DriverRides, RideQueryService, RideView

router = APIRouter(prefix="/driver", tags=["driver"])


@router.get("/rides", response_model=DriverRides, summary="My assigned rides and history")
@limiter.limit(settings.rate_limit)
async def my_rides(
    request: Request,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return await queries.driver_rides(caller)


@router.patch("/rides/{ride_id}/start", response_model=RideView, summary="Start a ride")
@limiter.limit(settings.rate_limit)
async def start_ride(
    request: Request,
    ride_id: int,
    body: Optional[StartRequest] = None,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    actual_start = body.actual_start.to_location() if body and body.actual_start else None
    ride = await lifecycle.start(ride_id, caller, actual_start=actual_start)
    return await queries.ride_detail(ride.id, caller)


@router.patch(
    "/rides/{ride_id}/complete",
    response_model=RideView,
    summary="Complete a ride",
    description=(
        "Records the end of the trip. The actual distance, when given, "
        "replaces the planned one and is added to the driver's and the "
        "vehicle's running totals."
    ),
)
@limiter.limit(settings.rate_limit)
async def complete_ride(
    request: Request,
    ride_id: int,
    body: Optional[CompleteRequest] = None,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    body = body or CompleteRequest()
    ride = await lifecycle.complete(
        ride_id,
        caller,
        actual_end=body.actual_end.to_location() if body.actual_end else None,
        actual_distance=body.actual_distance,
    )
    return await queries.ride_detail(ride.id, caller)


@router.patch("/availability", response_model=DriverResponse, summary="Go online / offline")
@limiter.limit(settings.rate_limit)
async def set_availability(
    request: Request,
    body: AvailabilityRequest,
    caller: Caller = Depends(get_caller),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.set_driver_availability(caller, body.online)


@router.put("/location", response_model=DriverResponse, summary="Report my position")
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    body: LocationUpdateRequest,
    caller: Caller = Depends(get_caller),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.update_driver_location(caller, body.lat, body.lng)
