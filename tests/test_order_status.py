import pytest

from orderdesk.domain.models import Order
from orderdesk.domain.order_status import (
    TRANSITIONS,
    OrderStatus,
    SideEffect,
    is_terminal,
    parse_status,
    view_status,
)
from orderdesk.services.projection import get_next_status_action

from conftest import order_doc


def _order(**overrides) -> Order:
    return Order.from_document("ord-1", order_doc(**overrides))


def test_every_status_has_a_rule():
    assert set(TRANSITIONS) == set(OrderStatus)


@pytest.mark.parametrize("status", ["pending", "preparing", "ready"])
def test_regressions_clear_the_courier(status):
    assert TRANSITIONS[OrderStatus(status)].clears_courier


def test_only_cancel_requires_reason():
    assert [s for s, r in TRANSITIONS.items() if r.requires_reason] == [
        OrderStatus.CANCELLED
    ]
    assert TRANSITIONS[OrderStatus.CANCELLED].side_effects == (
        SideEffect.SESSION_CASCADE,
        SideEffect.NOTIFY_CANCELLED,
    )


def test_parse_status_rejects_unknown_values():
    assert parse_status("onTheWay") is OrderStatus.ON_THE_WAY
    with pytest.raises(ValueError):
        parse_status("shipped")


def test_served_is_merged_with_delivered_in_views():
    assert view_status("served") == "delivered"
    assert view_status(OrderStatus.SERVED) == "delivered"
    assert view_status(OrderStatus.READY) == "ready"
    assert is_terminal("served")
    assert not is_terminal("bogus")


def test_pending_without_checks_has_no_action():
    assert get_next_status_action(_order()) is None


def test_pending_fully_checked_offers_accept():
    order = _order(checkedItems={"0": True, "1": True, "2": True})
    action = get_next_status_action(order)
    assert action.action == "accept"
    assert action.target is OrderStatus.ACCEPTED
    assert not action.has_unavailable


def test_pending_partially_checked_offers_accept_with_shortages():
    order = _order(checkedItems={"0": True, "2": False})
    action = get_next_status_action(order)
    assert action.action == "accept_with_shortages"
    assert action.has_unavailable


@pytest.mark.parametrize(
    "status, action, target",
    [
        ("accepted", "start_preparing", OrderStatus.PREPARING),
        ("preparing", "mark_ready", OrderStatus.READY),
    ],
)
def test_linear_actions(status, action, target):
    result = get_next_status_action(_order(status=status))
    assert (result.action, result.target) == (action, target)


def test_dine_in_ready_is_marked_served_as_delivered():
    result = get_next_status_action(_order(status="ready", orderType="dineIn"))
    assert result.action == "mark_served"
    assert result.target is OrderStatus.DELIVERED


@pytest.mark.parametrize("status", ["ready", "onTheWay", "delivered", "cancelled"])
def test_no_action_elsewhere(status):
    assert get_next_status_action(_order(status=status)) is None
