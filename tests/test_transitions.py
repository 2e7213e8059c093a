"""
Unit tests for the ride state machine.

Covers:
1. Every (state, action) pair resolves to a transition or a typed error.
2. Terminal states only admit delete (and rating, once completed).
3. Authorization vs. conflict: wrong capacity vs. wrong state.
4. Cancel keeps the approval status and frees resources when bound.
"""

from __future__ import annotations

import itertools

import pytest

from fleetride.domain.enums import ApprovalStatus, RideStatus, TERMINAL_STATUSES
from fleetride.domain.errors import AuthorizationError, Conflict
from fleetride.domain.transitions import (
    ACTION_ACTORS,
    APPROVED,
    ASSIGNED,
    COMPLETED,
    ESCALATED,
    ONGOING,
    PENDING,
    REJECTED,
    TRANSITIONS,
    Actor,
    Effect,
    RideAction,
    RideState,
    resolve_transition,
)

ALL_STATES = [
    RideState(status, approval)
    for status, approval in itertools.product(RideStatus, ApprovalStatus)
]


class TestTableShape:
    def test_every_pair_resolves_or_raises_typed_error(self):
        for state, action in itertools.product(ALL_STATES, RideAction):
            try:
                transition = resolve_transition(state, action, set(Actor))
            except Conflict:
                continue
            assert transition is not None

    def test_next_states_are_reachable_states(self):
        for transition in TRANSITIONS.values():
            if transition.next_state is not None:
                assert isinstance(transition.next_state.status, RideStatus)
                assert isinstance(transition.next_state.approval, ApprovalStatus)

    def test_terminal_states_only_allow_delete_and_rating(self):
        for (state, action, _actor), transition in TRANSITIONS.items():
            if state.status in TERMINAL_STATUSES:
                assert action in (RideAction.DELETE, RideAction.RATE)
                if action == RideAction.RATE:
                    assert state == COMPLETED

    def test_delete_only_from_terminal_states(self):
        for (state, action, _actor) in TRANSITIONS:
            if action == RideAction.DELETE:
                assert state.status in TERMINAL_STATUSES

    def test_only_assign_binds_resources(self):
        binding = {
            key for key, t in TRANSITIONS.items() if t.has(Effect.BIND_RESOURCES)
        }
        assert {action for (_, action, _) in binding} == {RideAction.ASSIGN}


class TestApprovalChain:
    def test_department_head_approves_ordinary_ride(self):
        t = resolve_transition(PENDING, RideAction.APPROVE, {Actor.DEPARTMENT_HEAD})
        assert t.next_state == APPROVED
        assert t.has(Effect.NOTIFY_REQUESTER)

    def test_escalation_waits_for_project_manager(self):
        t = resolve_transition(PENDING, RideAction.ESCALATE, {Actor.DEPARTMENT_HEAD})
        assert t.next_state == ESCALATED
        assert t.has(Effect.ASSIGN_PROJECT_MANAGER)
        assert t.has(Effect.NOTIFY_PROJECT_MANAGER)

    def test_admin_approver_can_escalate(self):
        t = resolve_transition(PENDING, RideAction.ESCALATE, {Actor.ADMIN_APPROVER})
        assert t.next_state == ESCALATED
        assert t.has(Effect.ASSIGN_PROJECT_MANAGER)
        assert t.has(Effect.NOTIFY_PROJECT_MANAGER)

    def test_project_manager_finalises_escalated_ride(self):
        t = resolve_transition(ESCALATED, RideAction.APPROVE, {Actor.PROJECT_MANAGER})
        assert t.next_state == APPROVED
        assert t.has(Effect.NOTIFY_DEPARTMENT_HEAD)

    def test_project_manager_rejection_tells_department_head(self):
        t = resolve_transition(ESCALATED, RideAction.REJECT, {Actor.PROJECT_MANAGER})
        assert t.next_state == REJECTED
        assert t.has(Effect.NOTIFY_DEPARTMENT_HEAD)

    def test_reapproving_is_a_conflict(self):
        with pytest.raises(Conflict):
            resolve_transition(APPROVED, RideAction.APPROVE, {Actor.DEPARTMENT_HEAD})

    def test_rejecting_a_rejected_ride_is_a_conflict(self):
        with pytest.raises(Conflict):
            resolve_transition(REJECTED, RideAction.REJECT, {Actor.DEPARTMENT_HEAD})

    def test_project_manager_cannot_act_before_escalation(self):
        with pytest.raises(Conflict):
            resolve_transition(PENDING, RideAction.APPROVE, {Actor.PROJECT_MANAGER})

    def test_plain_admin_capacity_cannot_approve(self):
        with pytest.raises(AuthorizationError):
            resolve_transition(PENDING, RideAction.APPROVE, {Actor.ADMIN})

    def test_requester_cannot_approve(self):
        with pytest.raises(AuthorizationError):
            resolve_transition(PENDING, RideAction.APPROVE, {Actor.REQUESTER})


class TestExecution:
    def test_only_admin_assigns(self):
        assert ACTION_ACTORS[RideAction.ASSIGN] == frozenset({Actor.ADMIN})

    def test_driver_starts_and_completes(self):
        start = resolve_transition(ASSIGNED, RideAction.START, {Actor.DRIVER})
        assert start.next_state == ONGOING
        complete = resolve_transition(ONGOING, RideAction.COMPLETE, {Actor.DRIVER})
        assert complete.next_state == COMPLETED
        assert complete.has(Effect.RELEASE_RESOURCES)
        assert complete.has(Effect.ACCRUE_DISTANCE)

    def test_completing_an_assigned_ride_is_a_conflict(self):
        with pytest.raises(Conflict):
            resolve_transition(ASSIGNED, RideAction.COMPLETE, {Actor.DRIVER})

    def test_requester_cannot_start(self):
        with pytest.raises(AuthorizationError):
            resolve_transition(ASSIGNED, RideAction.START, {Actor.REQUESTER})

    def test_rating_stays_completed(self):
        t = resolve_transition(COMPLETED, RideAction.RATE, {Actor.REQUESTER})
        assert t.next_state == COMPLETED
        assert t.has(Effect.AGGREGATE_RATING)


class TestCancelAndDelete:
    @pytest.mark.parametrize("state", [PENDING, ESCALATED, APPROVED])
    def test_cancel_before_assignment_keeps_approval(self, state):
        t = resolve_transition(state, RideAction.CANCEL, {Actor.REQUESTER})
        assert t.next_state == RideState(RideStatus.CANCELLED, state.approval)
        assert not t.has(Effect.RELEASE_RESOURCES)

    @pytest.mark.parametrize("state", [ASSIGNED, ONGOING])
    def test_cancel_after_assignment_releases_resources(self, state):
        t = resolve_transition(state, RideAction.CANCEL, {Actor.ADMIN})
        assert t.has(Effect.RELEASE_RESOURCES)
        assert t.has(Effect.NOTIFY_DRIVER)

    def test_cancelling_a_completed_ride_is_a_conflict(self):
        with pytest.raises(Conflict):
            resolve_transition(COMPLETED, RideAction.CANCEL, {Actor.REQUESTER})

    def test_deleting_an_ongoing_ride_is_a_conflict(self):
        with pytest.raises(Conflict):
            resolve_transition(ONGOING, RideAction.DELETE, {Actor.REQUESTER})

    def test_delete_completed_is_hard_delete(self):
        t = resolve_transition(COMPLETED, RideAction.DELETE, {Actor.ADMIN})
        assert t.next_state is None
        assert t.has(Effect.HARD_DELETE)

    def test_driver_cannot_delete(self):
        with pytest.raises(AuthorizationError):
            resolve_transition(COMPLETED, RideAction.DELETE, {Actor.DRIVER})
