"""
Ride lifecycle operations.

Every operation follows the same shape:

1. open a bounded transaction (``TransactionRunner``),
2. lock the ride row and work out the caller's capacities on it
   (``ApprovalChainResolver.actors_for``),
3. ask the transition table what the action does from the current state
   (``resolve_transition``), which raises ``AuthorizationError`` or
   ``Conflict`` for illegal moves,
4. apply the new state and the transition's side effects (resource
   binding/release, timestamps, outbox notifications) in the same
   transaction.

Only rating aggregation runs after the commit, best effort.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fleetride.config import settings
from fleetride.domain.distance import LocationProvider
from fleetride.domain.entities import AssignmentTransaction, Caller, Location
from fleetride.domain.enums import NotificationType, RecipientType
from fleetride.domain.errors import (
    AlreadyRated,
    AuthorizationError,
    Conflict,
    NotFound,
    PreconditionFailed,
    ValidationError,
)
from fleetride.domain.proximity import location_cell
from fleetride.domain.rating import validate_rating
from fleetride.domain.transitions import (
    Actor,
    Effect,
    RideAction,
    RideState,
    Transition,
    resolve_transition,
)
from fleetride.infrastructure.models import RideModel
from fleetride.infrastructure.repositories import (
    DriverRepository,
    RideRepository,
    UserRepository,
)
from fleetride.services.approval import ApprovalChainResolver
from fleetride.services.assignment import ResourceAssignmentManager
from fleetride.services.notifications import NotificationEmitter
from fleetride.services.rating import RatingAggregator
from fleetride.services.uow import TransactionRunner

logger = logging.getLogger(__name__)

APPROVER_CAPACITIES = frozenset(
    {Actor.DEPARTMENT_HEAD, Actor.PROJECT_MANAGER, Actor.ADMIN_APPROVER}
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require_approver_capacity(capacity: Actor) -> None:
    if capacity not in APPROVER_CAPACITIES:
        raise ValueError(f"{capacity.value} is not an approval capacity")


def _require_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ValidationError("Rejection reason is required")
    return reason.strip()


def _notifies_department_head(ride: RideModel, transition: Transition) -> bool:
    # an escalated ride usually names its requester as department head
    return (
        transition.has(Effect.NOTIFY_DEPARTMENT_HEAD)
        and ride.department_head_id != ride.requester_id
    )


class RideLifecycleService:
    def __init__(
        self,
        runner: TransactionRunner,
        locations: Optional[LocationProvider] = None,
    ):
        self.runner = runner
        self.locations = locations or LocationProvider()
        self.ratings = RatingAggregator(runner)

    # ── Creation ──────────────────────────────────────────────────────

    async def create_ride(
        self,
        caller: Caller,
        start: Location,
        end: Location,
        distance: Optional[float] = None,
        requested_time: Optional[datetime] = None,
    ) -> RideModel:
        if caller.is_driver:
            raise AuthorizationError("Drivers cannot request rides")
        if not start.address.strip() or not end.address.strip():
            raise ValidationError("Start and end addresses are required")
        if distance is not None and distance <= 0:
            raise ValidationError("Planned distance must be positive")

        async def _work(session: AsyncSession) -> RideModel:
            requester = await UserRepository(session).get_by_id(caller.id)
            if requester is None or not requester.is_active:
                raise NotFound(f"User {caller.id} not found")

            head = await ApprovalChainResolver(session).department_head_for(requester)
            ride = await RideRepository(session).create(
                RideModel(
                    requester_id=requester.id,
                    start_lat=start.latitude,
                    start_lng=start.longitude,
                    start_address=start.address,
                    end_lat=end.latitude,
                    end_lng=end.longitude,
                    end_address=end.address,
                    distance=distance or self.locations.distance(start, end),
                    department_head_id=head.id if head else None,
                    requested_time=requested_time or _now(),
                )
            )
            NotificationEmitter(session).notify(
                ride.department_head_id,
                NotificationType.RIDE_REQUEST,
                "New Ride Request",
                f"{requester.full_name} requested a ride to {end.address}",
                ride.id,
            )
            logger.info(
                "Ride %d created by user %d (department head: %s)",
                ride.id,
                requester.id,
                ride.department_head_id,
            )
            return ride

        return await self.runner.run(_work, label="create ride")

    # ── Approval chain ────────────────────────────────────────────────

    async def approve(self, ride_id: int, caller: Caller, capacity: Actor) -> RideModel:
        """
        Approve as *capacity* (department head, project manager or admin).

        A ride requested by a department head is escalated to a project
        manager instead of being finalised, whether the first approval comes
        from a department head or from an admin.
        """
        _require_approver_capacity(capacity)

        async def _work(session: AsyncSession) -> RideModel:
            resolver = ApprovalChainResolver(session)
            ride = await self._lock(session, ride_id)
            action = RideAction.APPROVE
            if capacity in (Actor.DEPARTMENT_HEAD, Actor.ADMIN_APPROVER):
                requester = await UserRepository(session).get_by_id(ride.requester_id)
                if requester is not None and resolver.requires_escalation(requester):
                    action = RideAction.ESCALATE

            transition = self._resolve(ride, caller, action, only=capacity)
            approver = await UserRepository(session).get_by_id(caller.id)
            approver_name = approver.full_name if approver else "an approver"

            if transition.has(Effect.ASSIGN_PROJECT_MANAGER):
                manager = await resolver.project_manager_for(ride)
                ride.project_manager_id = manager.id

            self._apply(ride, transition)
            self._announce_approval(session, ride, transition, approver_name)
            logger.info(
                "Ride %d %s by %s %d -> %s",
                ride.id,
                action.value,
                capacity.value,
                caller.id,
                RideState(ride.status, ride.approval_status),
            )
            return ride

        return await self.runner.run(_work, label="approve ride")

    async def reject(
        self, ride_id: int, caller: Caller, capacity: Actor, reason: Optional[str]
    ) -> RideModel:
        reason = _require_reason(reason)
        _require_approver_capacity(capacity)

        async def _work(session: AsyncSession) -> RideModel:
            ride = await self._lock(session, ride_id)
            transition = self._resolve(ride, caller, RideAction.REJECT, only=capacity)
            approver = await UserRepository(session).get_by_id(caller.id)
            approver_name = approver.full_name if approver else "an approver"

            self._apply(ride, transition)
            if transition.has(Effect.RECORD_REJECTION):
                ride.rejection_reason = reason

            emitter = NotificationEmitter(session)
            if transition.has(Effect.NOTIFY_REQUESTER):
                emitter.notify(
                    ride.requester_id,
                    NotificationType.RIDE_REJECTED,
                    "Ride Request Rejected",
                    f"Your ride request was rejected by {approver_name}. Reason: {reason}",
                    ride.id,
                    reason=reason,
                )
            if _notifies_department_head(ride, transition):
                emitter.notify(
                    ride.department_head_id,
                    NotificationType.RIDE_REJECTED,
                    "Project Manager Rejection",
                    f"{approver_name} rejected the ride request you approved. Reason: {reason}",
                    ride.id,
                    reason=reason,
                )
            logger.info("Ride %d rejected by %s %d", ride.id, capacity.value, caller.id)
            return ride

        return await self.runner.run(_work, label="reject ride")

    # ── Execution ─────────────────────────────────────────────────────

    async def assign(
        self, ride_id: int, caller: Caller, driver_id: int, vehicle_id: int
    ) -> RideModel:
        txn = AssignmentTransaction(ride_id, driver_id, vehicle_id)

        async def _work(session: AsyncSession) -> RideModel:
            ride = await self._lock(session, txn.ride_id)
            try:
                transition = self._resolve(
                    ride, caller, RideAction.ASSIGN, only=Actor.ADMIN
                )
            except Conflict:
                raise PreconditionFailed(
                    f"Ride {ride.id} is {ride.status.value}, not approved"
                ) from None
            if not transition.has(Effect.BIND_RESOURCES):
                self._apply(ride, transition)
                return ride
            driver, vehicle = await ResourceAssignmentManager(session).bind(ride, txn)
            self._apply(ride, transition)

            emitter = NotificationEmitter(session)
            if transition.has(Effect.NOTIFY_REQUESTER):
                emitter.notify(
                    ride.requester_id,
                    NotificationType.RIDE_ASSIGNED,
                    "Driver Assigned",
                    f"{driver.full_name} will drive you in {vehicle.vehicle_number}",
                    ride.id,
                    driver_id=driver.id,
                    vehicle_id=vehicle.id,
                )
            if transition.has(Effect.NOTIFY_DRIVER):
                emitter.notify(
                    driver.id,
                    NotificationType.RIDE_ASSIGNED,
                    "New Ride Assigned",
                    f"Pick up at {ride.start_address} with {vehicle.vehicle_number}",
                    ride.id,
                    recipient_type=RecipientType.DRIVER,
                    vehicle_id=vehicle.id,
                )
            return ride

        return await self.runner.run(_work, label="assign ride")

    async def start(
        self, ride_id: int, caller: Caller, actual_start: Optional[Location] = None
    ) -> RideModel:
        async def _work(session: AsyncSession) -> RideModel:
            ride = await self._lock(session, ride_id)
            transition = self._resolve(ride, caller, RideAction.START, only=Actor.DRIVER)
            self._apply(ride, transition)
            if transition.has(Effect.STAMP_START):
                ride.start_time = _now()
            if actual_start is not None:
                ride.actual_start_lat = actual_start.latitude
                ride.actual_start_lng = actual_start.longitude

            if transition.has(Effect.NOTIFY_REQUESTER):
                NotificationEmitter(session).notify(
                    ride.requester_id,
                    NotificationType.RIDE_STARTED,
                    "Ride Started",
                    "Your driver has started the trip",
                    ride.id,
                )
            logger.info("Ride %d started by driver %d", ride.id, caller.id)
            return ride

        return await self.runner.run(_work, label="start ride")

    async def complete(
        self,
        ride_id: int,
        caller: Caller,
        actual_end: Optional[Location] = None,
        actual_distance: Optional[float] = None,
    ) -> RideModel:
        if actual_distance is not None and actual_distance < 0:
            raise ValidationError("Actual distance cannot be negative")

        async def _work(session: AsyncSession) -> RideModel:
            ride = await self._lock(session, ride_id)
            transition = self._resolve(
                ride, caller, RideAction.COMPLETE, only=Actor.DRIVER
            )
            self._apply(ride, transition)
            if transition.has(Effect.STAMP_END):
                ride.end_time = _now()
            if actual_distance:
                ride.distance = actual_distance
            if actual_end is not None:
                ride.actual_end_lat = actual_end.latitude
                ride.actual_end_lng = actual_end.longitude
                ride.actual_end_address = actual_end.address or None

            accrued = 0.0
            if transition.has(Effect.ACCRUE_DISTANCE):
                if actual_distance:
                    accrued = actual_distance
                else:
                    logger.warning(
                        "Ride %d completed without an actual distance; "
                        "driver and vehicle totals left unchanged",
                        ride.id,
                    )
            if transition.has(Effect.RELEASE_RESOURCES):
                await ResourceAssignmentManager(session).release(ride, accrued)

            if actual_end is not None:
                await DriverRepository(session).update_location(
                    caller.id,
                    actual_end.latitude,
                    actual_end.longitude,
                    location_cell(
                        actual_end.latitude,
                        actual_end.longitude,
                        settings.h3_resolution,
                    ),
                    _now(),
                )

            if transition.has(Effect.NOTIFY_REQUESTER):
                NotificationEmitter(session).notify(
                    ride.requester_id,
                    NotificationType.RIDE_COMPLETED,
                    "Ride Completed",
                    "Your ride is complete. Please rate your driver.",
                    ride.id,
                    distance=ride.distance,
                )
            return ride

        return await self.runner.run(_work, label="complete ride")

    async def cancel(
        self, ride_id: int, caller: Caller, reason: Optional[str] = None
    ) -> RideModel:
        reason_text = reason.strip() if reason else ""
        message = "The ride was cancelled" + (f": {reason_text}" if reason_text else "")

        async def _work(session: AsyncSession) -> RideModel:
            ride = await self._lock(session, ride_id)
            transition = self._resolve(ride, caller, RideAction.CANCEL)
            self._apply(ride, transition)
            ride.cancellation_reason = reason_text or None
            if transition.has(Effect.RELEASE_RESOURCES):
                await ResourceAssignmentManager(session).release(ride)

            emitter = NotificationEmitter(session)
            if transition.has(Effect.NOTIFY_REQUESTER) and caller.id != ride.requester_id:
                emitter.notify(
                    ride.requester_id,
                    NotificationType.RIDE_CANCELLED,
                    "Ride Cancelled",
                    message,
                    ride.id,
                )
            if transition.has(Effect.NOTIFY_DRIVER):
                emitter.notify(
                    ride.driver_id,
                    NotificationType.RIDE_CANCELLED,
                    "Ride Cancelled",
                    message,
                    ride.id,
                    recipient_type=RecipientType.DRIVER,
                )
            logger.info("Ride %d cancelled by %s %d", ride.id, caller.role.value, caller.id)
            return ride

        return await self.runner.run(_work, label="cancel ride")

    async def delete(self, ride_id: int, caller: Caller) -> None:
        async def _work(session: AsyncSession) -> None:
            ride = await self._lock(session, ride_id)
            transition = self._resolve(ride, caller, RideAction.DELETE)
            if transition.has(Effect.HARD_DELETE):
                await RideRepository(session).delete(ride.id)
                logger.info("Ride %d deleted by %s %d", ride_id, caller.role.value, caller.id)

        await self.runner.run(_work, label="delete ride")

    # ── Rating ────────────────────────────────────────────────────────

    async def rate(self, ride_id: int, caller: Caller, rating: object) -> RideModel:
        value = validate_rating(rating)

        async def _work(session: AsyncSession) -> tuple[RideModel, Transition]:
            ride = await self._lock(session, ride_id)
            transition = self._resolve(ride, caller, RideAction.RATE, only=Actor.REQUESTER)
            if ride.rating is not None:
                raise AlreadyRated(f"Ride {ride.id} has already been rated")
            ride.rating = value
            return ride, transition

        ride, transition = await self.runner.run(_work, label="rate ride")
        if transition.has(Effect.AGGREGATE_RATING) and ride.driver_id is not None:
            await self.ratings.refresh(ride.driver_id)
        return ride

    # ── Helpers ───────────────────────────────────────────────────────

    @staticmethod
    async def _lock(session: AsyncSession, ride_id: int) -> RideModel:
        ride = await RideRepository(session).get_for_update(ride_id)
        if ride is None:
            raise NotFound(f"Ride {ride_id} not found")
        return ride

    @staticmethod
    def _resolve(
        ride: RideModel,
        caller: Caller,
        action: RideAction,
        only: Optional[Actor] = None,
    ) -> Transition:
        actors = ApprovalChainResolver.actors_for(ride, caller)
        if only is not None:
            actors &= {only}
        return resolve_transition(
            RideState(ride.status, ride.approval_status), action, actors
        )

    @staticmethod
    def _apply(ride: RideModel, transition: Transition) -> None:
        if transition.next_state is None:
            return
        ride.status = transition.next_state.status
        ride.approval_status = transition.next_state.approval

    @staticmethod
    def _announce_approval(
        session: AsyncSession,
        ride: RideModel,
        transition: Transition,
        approver_name: str,
    ) -> None:
        emitter = NotificationEmitter(session)
        escalated = transition.has(Effect.ASSIGN_PROJECT_MANAGER)
        if transition.has(Effect.NOTIFY_REQUESTER):
            emitter.notify(
                ride.requester_id,
                NotificationType.RIDE_APPROVED,
                "Ride Request Approved",
                (
                    f"{approver_name} approved your ride request; "
                    "awaiting project manager approval"
                    if escalated
                    else f"Your ride request has been approved by {approver_name}"
                ),
                ride.id,
            )
        if transition.has(Effect.NOTIFY_PROJECT_MANAGER):
            emitter.notify(
                ride.project_manager_id,
                NotificationType.RIDE_REQUEST,
                "Department Head Approval",
                f"{approver_name} approved a ride request - awaiting final approval",
                ride.id,
            )
        if _notifies_department_head(ride, transition):
            emitter.notify(
                ride.department_head_id,
                NotificationType.RIDE_APPROVED,
                "Project Manager Approval",
                f"{approver_name} approved the ride request you recommended",
                ride.id,
            )
