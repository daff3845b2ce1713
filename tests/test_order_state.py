import pytest
from core.exceptions import InvalidTransition, Forbidden, ValidationError
from services.order_state import (
    OrderStatus, TERMINAL_STATUSES, TRANSITIONS, can_transition, validate_transition, check_role_transition,
    parse_status,
)


def test_happy_path_moves_forward():
    path = ["pending", "confirmed", "preparing", "ready", "out_for_delivery", "delivered"]
    for current, target in zip(path, path[1:]):
        assert validate_transition(current, target) == OrderStatus(target)


def test_delivered_to_preparing_is_rejected():
    with pytest.raises(InvalidTransition):
        validate_transition("delivered", "preparing")


def test_terminal_states_have_no_exits():
    for terminal in TERMINAL_STATUSES:
        assert TRANSITIONS[terminal] == set()
        with pytest.raises(InvalidTransition):
            validate_transition(terminal, "cancelled")


def test_skipping_a_step_is_rejected():
    assert not can_transition("pending", "ready")
    with pytest.raises(InvalidTransition):
        validate_transition("pending", "ready")


def test_same_state_is_rejected():
    with pytest.raises(InvalidTransition):
        validate_transition("preparing", "preparing")


def test_every_open_status_can_be_cancelled():
    for status in OrderStatus:
        if status not in TERMINAL_STATUSES:
            assert can_transition(status, OrderStatus.CANCELLED)


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        parse_status("shipped")


def test_invalid_transition_is_a_409():
    assert InvalidTransition().status_code == 409
    assert InvalidTransition.code == "invalid_transition"


class TestRoleTargets:
    def test_restaurant_cannot_mark_delivered(self):
        with pytest.raises(Forbidden):
            check_role_transition("restaurant", "out_for_delivery", "delivered")

    def test_rider_cannot_confirm(self):
        with pytest.raises(Forbidden):
            check_role_transition("rider", "pending", "confirmed")

    def test_rider_delivers(self):
        assert check_role_transition("rider", "out_for_delivery", "delivered") == OrderStatus.DELIVERED

    def test_customer_cancels_pending(self):
        assert check_role_transition("customer", "pending", "cancelled") == OrderStatus.CANCELLED

    def test_customer_cannot_cancel_once_confirmed(self):
        with pytest.raises(InvalidTransition):
            check_role_transition("customer", "confirmed", "cancelled")

    def test_admin_may_set_any_valid_target(self):
        assert check_role_transition("admin", "ready", "out_for_delivery") == OrderStatus.OUT_FOR_DELIVERY

    def test_admin_still_bound_by_graph(self):
        with pytest.raises(InvalidTransition):
            check_role_transition("admin", "delivered", "preparing")
