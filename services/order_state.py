# services/order_state.py
from enum import Enum
from core.exceptions import InvalidTransition, Forbidden, ValidationError

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# forward edges only; cancelled is reachable from every non-terminal state
TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# which targets each role may request; ownership is checked by the caller
ROLE_TARGETS = {
    "admin": set(OrderStatus),
    "restaurant": {OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED},
    "rider": {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED},
    "customer": {OrderStatus.CANCELLED},
}
CUSTOMER_CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING})

# statuses in which an assigned rider is still working on the order
ACTIVE_DELIVERY_STATUSES = (OrderStatus.READY.value, OrderStatus.OUT_FOR_DELIVERY.value)


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown order status: {value}")

def can_transition(current, target) -> bool:
    return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]

def validate_transition(current, target) -> OrderStatus:
    """Return the target status if current -> target is an edge of the lifecycle graph."""
    current = parse_status(current)
    target = parse_status(target)
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Order is already {current.value}; status cannot change")
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(f"Invalid status transition from {current.value} -> {target.value}")
    return target

def check_role_transition(role: str, current, target) -> OrderStatus:
    """Validate the move against the graph and against what the acting role may request."""
    target = validate_transition(current, target)
    if target not in ROLE_TARGETS.get(role, set()):
        raise Forbidden(f"Role {role} cannot set order status to {target.value}")
    if role == "customer" and OrderStatus(current) not in CUSTOMER_CANCELLABLE_STATUSES:
        raise InvalidTransition("Order cannot be cancelled at this stage")
    return target
