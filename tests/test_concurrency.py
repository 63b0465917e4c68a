"""
Concurrent access tests: operations on one order must serialize
"""

import pytest
import threading
from decimal import Decimal

from pos_orders.core.errors import InvalidInputError, InvalidStateError, PosError
from pos_orders.models.order import OrderStatus, PaymentStatus


def run_concurrently(*calls):
    """Start every call at the same moment; return (results, errors)"""
    barrier = threading.Barrier(len(calls))
    results, errors = [], []
    lock = threading.Lock()

    def worker(call):
        barrier.wait()
        try:
            outcome = call()
        except PosError as e:
            with lock:
                errors.append(e)
        else:
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=worker, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results, errors


class TestConcurrentPayments:
    """Payments racing on the same order"""

    def test_two_half_payments_both_succeed(self, payment_service, order_service, draft_order, test_tenant):
        """Test two concurrent payments that fit the balance are both credited"""
        def pay():
            return payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("63250"), "cash")

        results, errors = run_concurrently(pay, pay)

        assert errors == []
        assert len(results) == 2
        order = order_service.get_order(draft_order.id, test_tenant.id)
        assert order.paid_amount == Decimal("126500.00")
        assert order.payment_status == PaymentStatus.PAID
        assert order.version == draft_order.version + 2

    def test_cannot_overpay_under_contention(self, payment_service, order_service, draft_order, test_tenant):
        """Test three concurrent half payments credit at most the total"""
        def pay():
            return payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("63250"), "card")

        results, errors = run_concurrently(pay, pay, pay)

        assert len(results) == 2
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidInputError)

        order = order_service.get_order(draft_order.id, test_tenant.id)
        payments = payment_service.list_payments(draft_order.id, test_tenant.id)
        assert order.paid_amount == order.total_amount
        assert sum(p.amount for p in payments) == order.paid_amount


class TestConcurrentTransitions:
    """Status changes racing on the same order"""

    def test_complete_and_cancel_have_one_winner(
        self, payment_service, order_service, confirmed_order, test_tenant
    ):
        """Test a paid order is either completed or cancelled, never both"""
        payment_service.record_payment(confirmed_order.id, test_tenant.id, Decimal("126500"), "cash")

        results, errors = run_concurrently(
            lambda: order_service.complete_order(confirmed_order.id, test_tenant.id),
            lambda: order_service.cancel_order(confirmed_order.id, test_tenant.id, reason="Race")
        )

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStateError)

        order = order_service.get_order(confirmed_order.id, test_tenant.id)
        assert order.status == results[0].status
        assert order.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    def test_payment_and_cancel_stay_consistent(
        self, payment_service, order_service, draft_order, test_tenant
    ):
        """Test a payment never lands on an order after it was cancelled"""
        results, errors = run_concurrently(
            lambda: payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("1000"), "cash"),
            lambda: order_service.cancel_order(draft_order.id, test_tenant.id)
        )

        order = order_service.get_order(draft_order.id, test_tenant.id)
        payments = payment_service.list_payments(draft_order.id, test_tenant.id)
        assert order.status == OrderStatus.CANCELLED
        assert sum((p.amount for p in payments), Decimal("0")) == order.paid_amount
        if errors:
            assert isinstance(errors[0], InvalidStateError)
        else:
            assert "Refund may be required" in order.notes


@pytest.mark.parametrize("workers", [4])
def test_concurrent_creates_get_distinct_numbers(order_service, test_tenant, make_item, workers):
    """Test order numbers stay unique when orders are created at once"""
    results, errors = run_concurrently(
        *[lambda: order_service.create_order(test_tenant.id, [make_item()]) for _ in range(workers)]
    )

    assert errors == []
    numbers = {result.order.order_number for result in results}
    assert len(numbers) == workers
