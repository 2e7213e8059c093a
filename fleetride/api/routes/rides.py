"""
Ride endpoints (requester side)
===============================

POST   /api/v1/rides                  -- request a ride (201 Created)
GET    /api/v1/rides                  -- the caller's rides, newest first
GET    /api/v1/rides/{ride_id}        -- ride detail with driver and vehicle
PATCH  /api/v1/rides/{ride_id}/cancel -- cancel a non-terminal ride
PATCH  /api/v1/rides/{ride_id}/rating -- rate a completed ride (once)
DELETE /api/v1/rides/{ride_id}        -- remove a finished ride
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from fleetride.api.dependencies import get_caller, get_lifecycle, get_queries
from fleetride.api.middleware import limiter
from fleetride.api.schemas import ReasonRequest, RatingRequest, RideCreateRequest
from fleetride.config import settings
from fleetride.domain.entities import Caller
from fleetride.domain.enums import RideStatus
from fleetride.services.lifecycle import RideLifecycleService
from fleetride.services.projections import RidePage, RideQueryService, RideView

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "",
    status_code=201,
    response_model=RideView,
    summary="Request a ride",
    responses={201: {"description": "Ride created and routed for approval."}},
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.create_ride(
        caller,
        body.start_location.to_location(),
        body.end_location.to_location(),
        distance=body.distance,
        requested_time=body.requested_time,
    )
    return await queries.ride_detail(ride.id, caller)


@router.get("", response_model=RidePage, summary="List my rides")
@limiter.limit(settings.rate_limit)
async def list_my_rides(
    request: Request,
    status: Optional[RideStatus] = None,
    limit: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return await queries.my_rides(caller, status=status, limit=limit)


@router.get("/{ride_id}", response_model=RideView, summary="Get a ride")
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return await queries.ride_detail(ride_id, caller)


@router.patch(
    "/{ride_id}/cancel",
    response_model=RideView,
    summary="Cancel a ride",
    description=(
        "Moves any non-terminal ride to CANCELLED. A bound driver and "
        "vehicle are returned to the pool in the same transaction."
    ),
)
@limiter.limit(settings.rate_limit)
async def cancel_ride(
    request: Request,
    ride_id: int,
    body: Optional[ReasonRequest] = None,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.cancel(ride_id, caller, reason=body.reason if body else None)
    return await queries.ride_detail(ride.id, caller)


@router.patch("/{ride_id}/rating", response_model=RideView, summary="Rate a ride")
@limiter.limit(settings.rate_limit)
async def rate_ride(
    request: Request,
    ride_id: int,
    body: RatingRequest,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.rate(ride_id, caller, body.rating)
    return await queries.ride_detail(ride.id, caller)


@router.delete("/{ride_id}", status_code=204, summary="Delete a finished ride")
@limiter.limit(settings.rate_limit)
async def delete_ride(
    request: Request,
    ride_id: int,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
):
    await lifecycle.delete(ride_id, caller)
    return Response(status_code=204)
