import pytest

from shopcrm.domain.errors import InvalidStatusTransition
from shopcrm.domain.order_status import (
    OrderStatus, can_transition, ensure_admin_transition, ensure_customer_cancellable,
)

ALLOWED = {
    (OrderStatus.PENDING, OrderStatus.SHIPPED),
    (OrderStatus.PENDING, OrderStatus.BACKORDERED),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.BACKORDERED, OrderStatus.PENDING),
    (OrderStatus.BACKORDERED, OrderStatus.CANCELLED),
}


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("target", list(OrderStatus))
def test_transition_table(current, target):
    assert can_transition(current, target) == ((current, target) in ALLOWED)


def test_ensure_admin_transition_returns_target():
    assert ensure_admin_transition("PENDING", "SHIPPED") is OrderStatus.SHIPPED


@pytest.mark.parametrize("current", ["SHIPPED", "CANCELLED", "COMPLETED"])
def test_terminal_states_reject_everything(current):
    for target in OrderStatus:
        with pytest.raises(InvalidStatusTransition) as exc:
            ensure_admin_transition(current, target)
        assert exc.value.code == "INVALID_STATUS_TRANSITION"
        assert exc.value.status_code == 400


def test_self_transition_is_rejected():
    with pytest.raises(InvalidStatusTransition):
        ensure_admin_transition("PENDING", "PENDING")


@pytest.mark.parametrize("current", ["PENDING", "BACKORDERED"])
def test_customer_can_cancel_open_orders(current):
    ensure_customer_cancellable(current)


@pytest.mark.parametrize("current", ["SHIPPED", "CANCELLED", "COMPLETED"])
def test_customer_cannot_cancel_closed_orders(current):
    with pytest.raises(InvalidStatusTransition) as exc:
        ensure_customer_cancellable(current)
    assert str(exc.value) == f"Cannot change order status from {current} to CANCELLED"
