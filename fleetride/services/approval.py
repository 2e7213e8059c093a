"""
Approval chain resolution.

Decides who must approve a ride and, on every later call, in what capacity
the caller stands towards that specific ride.  Holding the
``department_head`` role is not enough to approve a ride; the caller has
to be the department head recorded on it.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fleetride.domain.entities import Caller
from fleetride.domain.enums import UserRole
from fleetride.domain.errors import PreconditionFailed
from fleetride.domain.transitions import Actor
from fleetride.infrastructure.models import RideModel, UserModel
from fleetride.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)


class ApprovalChainResolver:
    def __init__(self, session: AsyncSession):
        self.users = UserRepository(session)

    async def department_head_for(self, requester: UserModel) -> Optional[UserModel]:
        """The department head who must approve *requester*'s rides, if any."""
        if requester.department is None:
            return None
        head = await self.users.find_department_head(requester.department)
        if head is None:
            logger.info(
                "No department head for %s; ride from user %d needs admin approval",
                requester.department.value,
                requester.id,
            )
        return head

    async def project_manager_for(self, ride: RideModel) -> UserModel:
        """Pick the project manager for an escalated ride, never its requester."""
        manager = await self.users.find_project_manager(
            exclude_user_id=ride.requester_id
        )
        if manager is None:
            raise PreconditionFailed(
                "No project manager is available to take the escalated approval"
            )
        return manager

    @staticmethod
    def requires_escalation(requester: UserModel) -> bool:
        """A department head's own ride always goes to a project manager."""
        return requester.role == UserRole.DEPARTMENT_HEAD

    @staticmethod
    def actors_for(ride: RideModel, caller: Caller) -> set[Actor]:
        if caller.is_driver:
            if ride.driver_id is not None and ride.driver_id == caller.id:
                return {Actor.DRIVER}
            return set()

        actors: set[Actor] = set()
        if caller.id == ride.requester_id:
            actors.add(Actor.REQUESTER)
        if ride.department_head_id is not None and caller.id == ride.department_head_id:
            actors.add(Actor.DEPARTMENT_HEAD)
        if (
            ride.project_manager_id is not None
            and caller.id == ride.project_manager_id
            and caller.id != ride.requester_id
        ):
            actors.add(Actor.PROJECT_MANAGER)
        if caller.is_admin:
            actors.add(Actor.ADMIN)
            if ride.department_head_id is None and caller.id != ride.requester_id:
                actors.add(Actor.ADMIN_APPROVER)
        return actors
