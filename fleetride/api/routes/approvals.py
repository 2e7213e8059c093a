"""
Approval endpoints
==================

PATCH /api/v1/department-head/rides/{ride_id}/approve
PATCH /api/v1/department-head/rides/{ride_id}/reject
GET   /api/v1/department-head/rides     -- rides awaiting the caller
PATCH /api/v1/project-manager/rides/{ride_id}/approve
PATCH /api/v1/project-manager/rides/{ride_id}/reject
GET   /api/v1/project-manager/rides     -- escalated rides awaiting the caller
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from fleetride.api.dependencies import get_caller, get_lifecycle, get_queries
from fleetride.api.middleware import limiter
from fleetride.api.schemas import ReasonRequest
from fleetride.config import settings
from fleetride.domain.entities import Caller
from fleetride.domain.transitions import Actor
from fleetride.services.lifecycle import RideLifecycleService
from fleetride.services.projections import RideQueryService, RideView

department_head_router = APIRouter(prefix="/department-head", tags=["approvals"])
project_manager_router = APIRouter(prefix="/project-manager", tags=["approvals"])


# ── Department head ───────────────────────────────────────────────────


@department_head_router.get(
    "/rides", response_model=list[RideView], summary="Rides awaiting my approval"
)
@limiter.limit(settings.rate_limit)
async def department_head_queue(
    request: Request,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return await queries.department_head_queue(caller)


@department_head_router.patch(
    "/rides/{ride_id}/approve",
    response_model=RideView,
    summary="Approve as department head",
    description=(
        "Final approval for ordinary requesters. A ride requested by a "
        "department head is escalated to a project manager instead."
    ),
)
@limiter.limit(settings.rate_limit)
async def department_head_approve(
    request: Request,
    ride_id: int,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.approve(ride_id, caller, Actor.DEPARTMENT_HEAD)
    return await queries.ride_detail(ride.id, caller)


@department_head_router.patch(
    "/rides/{ride_id}/reject",
    response_model=RideView,
    summary="Reject as department head",
)
@limiter.limit(settings.rate_limit)
async def department_head_reject(
    request: Request,
    ride_id: int,
    body: Optional[ReasonRequest] = None,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.reject(
        ride_id, caller, Actor.DEPARTMENT_HEAD, body.reason if body else None
    )
    return await queries.ride_detail(ride.id, caller)


# ── Project manager ───────────────────────────────────────────────────


@project_manager_router.get(
    "/rides", response_model=list[RideView], summary="Escalated rides awaiting me"
)
@limiter.limit(settings.rate_limit)
async def project_manager_queue(
    request: Request,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return await queries.project_manager_queue(caller)


@project_manager_router.patch(
    "/rides/{ride_id}/approve",
    response_model=RideView,
    summary="Approve as project manager",
)
@limiter.limit(settings.rate_limit)
async def project_manager_approve(
    request: Request,
    ride_id: int,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.approve(ride_id, caller, Actor.PROJECT_MANAGER)
    return await queries.ride_detail(ride.id, caller)


@project_manager_router.patch(
    "/rides/{ride_id}/reject",
    response_model=RideView,
    summary="Reject as project manager",
)
@limiter.limit(settings.rate_limit)
async def project_manager_reject(
    request: Request,
    ride_id: int,
    body: Optional[ReasonRequest] = None,
    caller: Caller = Depends(get_caller),
    lifecycle: RideLifecycleService = Depends(get_lifecycle),
    queries: RideQueryService = Depends(get_queries),
):
    ride = await lifecycle.reject(
        ride_id, caller, Actor.PROJECT_MANAGER, body.reason if body else None
    )
    return await queries.ride_detail(ride.id, caller)
