"""
Unit tests for the order state machine
"""

import pytest
from decimal import Decimal
from itertools import product
import uuid

from pos_orders.core.errors import InvalidStateError
from pos_orders.models.order import Order, OrderStatus, PaymentStatus
from pos_orders.models.order_item import OrderItem
from pos_orders.services import order_state

LEGAL = {
    (OrderStatus.DRAFT, OrderStatus.CONFIRMED),
    (OrderStatus.DRAFT, OrderStatus.CANCELLED),
    (OrderStatus.CONFIRMED, OrderStatus.COMPLETED),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
}


def build_order(status, total="100.00", paid_status=PaymentStatus.UNPAID, with_item=True):
    order = Order(
        id=uuid.uuid4(),
        tenant_id=uuid.uuid4(),
        order_number="ORD-20250314-0001",
        status=status,
        payment_status=paid_status,
        total_amount=Decimal(total),
        version=1
    )
    if with_item:
        order.items = [OrderItem(
            product_id="p1",
            product_name="Kopi",
            base_price=Decimal("100.00"),
            quantity=1,
            item_price=Decimal("100.00"),
            item_subtotal=Decimal("100.00")
        )]
    return order


class TestTransitionTable:
    """Pure status legality"""

    @pytest.mark.parametrize("current,target", sorted(LEGAL, key=str))
    def test_legal_transitions_pass(self, current, target):
        """Test every transition in the table is accepted"""
        order_state.assert_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [pair for pair in product(OrderStatus, OrderStatus) if pair not in LEGAL]
    )
    def test_illegal_transitions_raise(self, current, target):
        """Test every transition outside the table raises, naming both states"""
        with pytest.raises(InvalidStateError) as exc_info:
            order_state.assert_transition(current, target)

        assert f"'{current.value}'" in exc_info.value.message
        assert f"'{target.value}'" in exc_info.value.message

    def test_terminal_statuses(self):
        """Test completed and cancelled are absorbing"""
        assert order_state.is_terminal_status(OrderStatus.COMPLETED)
        assert order_state.is_terminal_status(OrderStatus.CANCELLED)
        assert not order_state.is_terminal_status(OrderStatus.DRAFT)
        assert order_state.get_allowed_next_statuses(OrderStatus.CANCELLED) == []
        assert order_state.get_allowed_next_statuses(OrderStatus.DRAFT) == [
            OrderStatus.CONFIRMED, OrderStatus.CANCELLED
        ]

    def test_accepts_plain_strings(self):
        """Test status values given as strings are understood"""
        assert order_state.can_transition("draft", "confirmed")
        assert not order_state.can_transition("completed", "draft")


class TestGuards:
    """Business guards checked before a transition"""

    def test_can_confirm_draft_with_items(self):
        allowed, _ = order_state.can_confirm_order(build_order(OrderStatus.DRAFT))
        assert allowed is True

    def test_cannot_confirm_draft_without_items(self):
        """Test an empty draft cannot be confirmed"""
        allowed, reason = order_state.can_confirm_order(build_order(OrderStatus.DRAFT, with_item=False))

        assert allowed is False
        assert "at least one item" in reason

    def test_cannot_confirm_confirmed_order(self):
        allowed, reason = order_state.can_confirm_order(build_order(OrderStatus.CONFIRMED))

        assert allowed is False
        assert "draft" in reason

    def test_can_complete_paid_confirmed_order(self):
        order = build_order(OrderStatus.CONFIRMED, paid_status=PaymentStatus.PAID)
        assert order_state.can_complete_order(order)[0] is True

    def test_can_complete_free_order_without_payment(self):
        """Test a zero-total order completes without payment"""
        order = build_order(OrderStatus.CONFIRMED, total="0.00")
        assert order_state.can_complete_order(order)[0] is True

    @pytest.mark.parametrize("paid_status", [PaymentStatus.UNPAID, PaymentStatus.PARTIAL])
    def test_cannot_complete_unpaid_order(self, paid_status):
        """Test an order with an outstanding balance cannot complete"""
        allowed, reason = order_state.can_complete_order(
            build_order(OrderStatus.CONFIRMED, paid_status=paid_status)
        )

        assert allowed is False
        assert "Payment must be completed" in reason

    def test_cannot_complete_draft(self):
        order = build_order(OrderStatus.DRAFT, paid_status=PaymentStatus.PAID)
        assert order_state.can_complete_order(order)[0] is False

    @pytest.mark.parametrize("status", [OrderStatus.DRAFT, OrderStatus.CONFIRMED])
    def test_can_cancel_open_orders(self, status):
        assert order_state.can_cancel_order(build_order(status))[0] is True

    @pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_cannot_cancel_closed_orders(self, status):
        allowed, reason = order_state.can_cancel_order(build_order(status))

        assert allowed is False
        assert status.value in reason
