"""
Notification endpoints
======================

GET   /api/v1/notifications                    -- latest 50, newest first
PATCH /api/v1/notifications/{notification_id}/read
PATCH /api/v1/notifications/read-all
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from fleetride.api.dependencies import get_caller, get_queries
from fleetride.api.middleware import limiter
from fleetride.api.schemas import MarkedResponse
from fleetride.config import settings
from fleetride.domain.entities import Caller
from fleetride.services.projections import NotificationView, RideQueryService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationView], summary="My notifications")
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    unread_only: bool = False,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return await queries.notifications(caller, unread_only=unread_only)


@router.patch("/read-all", response_model=MarkedResponse, summary="Mark all as read")
@limiter.limit(settings.rate_limit)
async def mark_all_read(
    request: Request,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    return MarkedResponse(updated=await queries.mark_all_read(caller))


@router.patch("/{notification_id}/read", status_code=204, summary="Mark one as read")
@limiter.limit(settings.rate_limit)
async def mark_read(
    request: Request,
    notification_id: int,
    caller: Caller = Depends(get_caller),
    queries: RideQueryService = Depends(get_queries),
):
    await queries.mark_read(caller, notification_id)
    return Response(status_code=204)
