"""
Order state machine
Pure decision table for order status transitions plus the business guards
callers check before attempting one. Guards answer (allowed, reason) like
the model-level can_transition_to checks; assert_transition raises.
"""

from decimal import Decimal
from typing import Dict, List, Tuple

from pos_orders.core.errors import InvalidStateError
from pos_orders.models.order import Order, OrderStatus, PaymentStatus

ALLOWED_TRANSITIONS: Dict[OrderStatus, List[OrderStatus]] = {
    OrderStatus.DRAFT: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.COMPLETED, OrderStatus.CANCELLED],
    OrderStatus.COMPLETED: [],  # Final state, no transitions
    OrderStatus.CANCELLED: [],  # Final state, no transitions
}

OPEN_STATUSES = [OrderStatus.DRAFT, OrderStatus.CONFIRMED]
CLOSED_STATUSES = [OrderStatus.COMPLETED, OrderStatus.CANCELLED]


def is_terminal_status(status: OrderStatus) -> bool:
    return not ALLOWED_TRANSITIONS[OrderStatus(status)]


def get_allowed_next_statuses(status: OrderStatus) -> List[OrderStatus]:
    return list(ALLOWED_TRANSITIONS[OrderStatus(status)])


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]


def assert_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise InvalidStateError unless the table allows current -> target"""
    current, target = OrderStatus(current), OrderStatus(target)
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Invalid status transition: cannot change from '{current.value}' to '{target.value}'",
            current_status=current.value,
            target_status=target.value
        )


def can_confirm_order(order: Order) -> Tuple[bool, str]:
    if order.status != OrderStatus.DRAFT:
        return False, f"Cannot confirm order with status '{order.status.value}'. Order must be in draft status"
    if not order.items:
        return False, "Order must have at least one item"
    return True, "Can confirm"


def can_complete_order(order: Order) -> Tuple[bool, str]:
    if order.status != OrderStatus.CONFIRMED:
        return False, f"Cannot complete order with status '{order.status.value}'. Order must be confirmed"
    if order.total_amount != Decimal("0") and order.payment_status != PaymentStatus.PAID:
        return False, (
            f"Cannot complete order with payment status '{order.payment_status.value}'. "
            "Payment must be completed first"
        )
    return True, "Can complete"


def can_cancel_order(order: Order) -> Tuple[bool, str]:
    if is_terminal_status(order.status):
        return False, f"Cannot cancel order in '{order.status.value}' status"
    return True, "Can cancel"
