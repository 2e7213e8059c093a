"""
Ride lifecycle state machine.

A ride's state is the ``(status, approval_status)`` pair.  Every legal
move is a row in ``TRANSITIONS``, keyed by
``(state, action, actor) -> Transition(next state, side effects)``.

``actor`` is the capacity in which the caller acts *on this ride* (the
ride's own department head, its bound driver, its requester, ...), not the
caller's role in general.  Working that out is the approval resolver's job;
this module only answers "is that move legal, and what does it do".
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional

from .enums import ApprovalStatus, RideStatus
from .errors import AuthorizationError, Conflict


class RideAction(str, enum.Enum):
    APPROVE = "approve"
    ESCALATE = "escalate"
    REJECT = "reject"
    ASSIGN = "assign"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    DELETE = "delete"
    RATE = "rate"


class Actor(str, enum.Enum):
    REQUESTER = "requester"
    DEPARTMENT_HEAD = "department_head"
    PROJECT_MANAGER = "project_manager"
    ADMIN = "admin"
    # admin approving a ride that has no department head on record
    ADMIN_APPROVER = "admin_approver"
    DRIVER = "driver"


class Effect(str, enum.Enum):
    ASSIGN_PROJECT_MANAGER = "assign_project_manager"
    RECORD_REJECTION = "record_rejection"
    BIND_RESOURCES = "bind_resources"
    RELEASE_RESOURCES = "release_resources"
    ACCRUE_DISTANCE = "accrue_distance"
    STAMP_START = "stamp_start"
    STAMP_END = "stamp_end"
    AGGREGATE_RATING = "aggregate_rating"
    HARD_DELETE = "hard_delete"
    NOTIFY_REQUESTER = "notify_requester"
    NOTIFY_DEPARTMENT_HEAD = "notify_department_head"
    NOTIFY_PROJECT_MANAGER = "notify_project_manager"
    NOTIFY_DRIVER = "notify_driver"


class RideState(NamedTuple):
    status: RideStatus
    approval: ApprovalStatus

    def __str__(self) -> str:
        return f"{self.status.value}/{self.approval.value}"


@dataclass(frozen=True)
class Transition:
    # ``None`` means the ride ceases to exist (hard delete)
    next_state: Optional[RideState]
    effects: frozenset[Effect] = field(default_factory=frozenset)

    def has(self, effect: Effect) -> bool:
        return effect in self.effects


_S = RideStatus
_A = ApprovalStatus

PENDING = RideState(_S.PENDING, _A.PENDING)
ESCALATED = RideState(_S.PENDING, _A.APPROVED)
APPROVED = RideState(_S.APPROVED, _A.APPROVED)
ASSIGNED = RideState(_S.ASSIGNED, _A.APPROVED)
ONGOING = RideState(_S.ONGOING, _A.APPROVED)
COMPLETED = RideState(_S.COMPLETED, _A.APPROVED)
REJECTED = RideState(_S.CANCELLED, _A.REJECTED)


def _t(next_state: Optional[RideState], *effects: Effect) -> Transition:
    return Transition(next_state, frozenset(effects))


TRANSITIONS: dict[tuple[RideState, RideAction, Actor], Transition] = {
    # ── Approval chain ───────────────────────────────────────────────
    (PENDING, RideAction.APPROVE, Actor.DEPARTMENT_HEAD): _t(
        APPROVED, Effect.NOTIFY_REQUESTER
    ),
    (PENDING, RideAction.ESCALATE, Actor.DEPARTMENT_HEAD): _t(
        ESCALATED,
        Effect.ASSIGN_PROJECT_MANAGER,
        Effect.NOTIFY_REQUESTER,
        Effect.NOTIFY_PROJECT_MANAGER,
    ),
    (PENDING, RideAction.REJECT, Actor.DEPARTMENT_HEAD): _t(
        REJECTED, Effect.RECORD_REJECTION, Effect.NOTIFY_REQUESTER
    ),
    (PENDING, RideAction.APPROVE, Actor.ADMIN_APPROVER): _t(
        APPROVED, Effect.NOTIFY_REQUESTER
    ),
    (PENDING, RideAction.ESCALATE, Actor.ADMIN_APPROVER): _t(
        ESCALATED,
        Effect.ASSIGN_PROJECT_MANAGER,
        Effect.NOTIFY_REQUESTER,
        Effect.NOTIFY_PROJECT_MANAGER,
    ),
    (PENDING, RideAction.REJECT, Actor.ADMIN_APPROVER): _t(
        REJECTED, Effect.RECORD_REJECTION, Effect.NOTIFY_REQUESTER
    ),
    (ESCALATED, RideAction.APPROVE, Actor.PROJECT_MANAGER): _t(
        APPROVED, Effect.NOTIFY_REQUESTER, Effect.NOTIFY_DEPARTMENT_HEAD
    ),
    (ESCALATED, RideAction.REJECT, Actor.PROJECT_MANAGER): _t(
        REJECTED,
        Effect.RECORD_REJECTION,
        Effect.NOTIFY_REQUESTER,
        Effect.NOTIFY_DEPARTMENT_HEAD,
    ),
    # ── Execution ────────────────────────────────────────────────────
    (APPROVED, RideAction.ASSIGN, Actor.ADMIN): _t(
        ASSIGNED,
        Effect.BIND_RESOURCES,
        Effect.NOTIFY_REQUESTER,
        Effect.NOTIFY_DRIVER,
    ),
    (ASSIGNED, RideAction.START, Actor.DRIVER): _t(
        ONGOING, Effect.STAMP_START, Effect.NOTIFY_REQUESTER
    ),
    (ONGOING, RideAction.COMPLETE, Actor.DRIVER): _t(
        COMPLETED,
        Effect.STAMP_END,
        Effect.RELEASE_RESOURCES,
        Effect.ACCRUE_DISTANCE,
        Effect.NOTIFY_REQUESTER,
    ),
    (COMPLETED, RideAction.RATE, Actor.REQUESTER): _t(
        COMPLETED, Effect.AGGREGATE_RATING
    ),
}


# Administrative override: any non-terminal state may be cancelled by the
# requester or an admin.  Cancelling keeps the approval status as it was.
for _state in (PENDING, ESCALATED, APPROVED, ASSIGNED, ONGOING):
    _effects = [Effect.NOTIFY_REQUESTER]
    if _state.status in (_S.ASSIGNED, _S.ONGOING):
        _effects += [Effect.RELEASE_RESOURCES, Effect.NOTIFY_DRIVER]
    for _actor in (Actor.REQUESTER, Actor.ADMIN):
        TRANSITIONS[(_state, RideAction.CANCEL, _actor)] = _t(
            RideState(_S.CANCELLED, _state.approval), *_effects
        )

# Hard delete is only possible once the ride is terminal.
for _state in (
    COMPLETED,
    REJECTED,
    RideState(_S.CANCELLED, _A.PENDING),
    RideState(_S.CANCELLED, _A.APPROVED),
):
    for _actor in (Actor.REQUESTER, Actor.ADMIN):
        TRANSITIONS[(_state, RideAction.DELETE, _actor)] = _t(
            None, Effect.HARD_DELETE
        )


# action -> every actor that can perform it in at least one state
ACTION_ACTORS: dict[RideAction, frozenset[Actor]] = {
    action: frozenset(a for (_, act, a) in TRANSITIONS if act == action)
    for action in RideAction
}


def resolve_transition(
    state: RideState, action: RideAction, actors: Iterable[Actor]
) -> Transition:
    """
    Pick the transition for *action* from *state* given the caller's actors.

    Raises ``AuthorizationError`` when none of the caller's capacities may
    ever perform *action*, and ``Conflict`` when they may but not from the
    ride's current state.
    """
    actors = set(actors)
    permitted = actors & ACTION_ACTORS[action]
    if not permitted:
        raise AuthorizationError(f"Not permitted to {action.value} this ride")

    # deterministic preference when a caller holds several capacities
    for actor in Actor:
        if actor in permitted:
            transition = TRANSITIONS.get((state, action, actor))
            if transition is not None:
                return transition

    raise Conflict(f"Cannot {action.value} a ride in state {state}")
