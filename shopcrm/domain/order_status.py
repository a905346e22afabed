"""Order status machine.

All transitions are triggered explicitly by an admin or by the customer who
owns the order; nothing moves on a timer.
"""
from enum import Enum
from typing import Union

from .errors import InvalidStatusTransition


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"
    BACKORDERED = "BACKORDERED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class CancelledBy(str, Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"


# SHIPPED, CANCELLED and COMPLETED are terminal
ADMIN_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.SHIPPED, OrderStatus.BACKORDERED, OrderStatus.CANCELLED}),
    OrderStatus.BACKORDERED: frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED}),
}

CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.BACKORDERED})

DEFAULT_CANCEL_REASONS = {
    CancelledBy.ADMIN: "Cancelled by administrator",
    CancelledBy.CUSTOMER: "Cancelled by customer",
}


def can_transition(current: Union[str, OrderStatus], target: Union[str, OrderStatus]) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)
    return target in ADMIN_TRANSITIONS.get(current, frozenset())


def ensure_admin_transition(current: Union[str, OrderStatus], target: Union[str, OrderStatus]) -> OrderStatus:
    """Return the target status, or raise if the table does not allow the move."""
    if not can_transition(current, target):
        raise InvalidStatusTransition(OrderStatus(current).value, OrderStatus(target).value)
    return OrderStatus(target)


def ensure_customer_cancellable(current: Union[str, OrderStatus]) -> None:
    current = OrderStatus(current)
    if current not in CUSTOMER_CANCELLABLE:
        raise InvalidStatusTransition(current.value, OrderStatus.CANCELLED.value)
