"""
Integration tests for the payment ledger
"""

import pytest
from decimal import Decimal
import uuid

from pos_orders.core.errors import InvalidInputError, InvalidStateError, OrderNotFoundError
from pos_orders.models.order import PaymentStatus
from pos_orders.models.order_payment import PaymentMethod
from pos_orders.services.payments import derive_payment_status


class TestDerivePaymentStatus:
    """Payment status from paid against total"""

    @pytest.mark.parametrize("paid,total,expected", [
        ("0", "100", PaymentStatus.UNPAID),
        ("40", "100", PaymentStatus.PARTIAL),
        ("100", "100", PaymentStatus.PAID),
        ("0", "0", PaymentStatus.UNPAID),
    ])
    def test_status(self, paid, total, expected):
        assert derive_payment_status(Decimal(paid), Decimal(total)) == expected


class TestRecordPayment:
    """RecordPayment use case"""

    def test_exact_payment_marks_order_paid(self, payment_service, draft_order, test_tenant):
        """Test paying the full total settles the order"""
        result = payment_service.record_payment(
            draft_order.id, test_tenant.id, Decimal("126500.00"), "cash"
        )

        assert result.order.payment_status == PaymentStatus.PAID
        assert result.order.paid_amount == Decimal("126500.00")
        assert result.remaining_amount == Decimal("0")
        assert result.payment.payment_method == PaymentMethod.CASH
        assert result.order.version == draft_order.version + 1

    def test_partial_payments_accumulate(self, payment_service, draft_order, test_tenant):
        first = payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("26500"), "card")
        assert first.order.payment_status == PaymentStatus.PARTIAL
        assert first.remaining_amount == Decimal("100000.00")

        second = payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("100000"), "ewallet")
        assert second.order.payment_status == PaymentStatus.PAID
        assert second.order.paid_amount == second.order.total_amount

    def test_overpayment_rejected(self, payment_service, order_service, draft_order, test_tenant):
        """Test a payment above the remaining balance changes nothing"""
        payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("26500"), "cash")

        with pytest.raises(InvalidInputError) as exc_info:
            payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("100001"), "cash")

        assert "exceeds remaining balance" in str(exc_info.value)
        order = order_service.get_order(draft_order.id, test_tenant.id)
        assert order.paid_amount == Decimal("26500.00")
        assert order.payment_status == PaymentStatus.PARTIAL
        assert len(payment_service.list_payments(draft_order.id, test_tenant.id)) == 1

    def test_payment_on_settled_order_rejected(self, payment_service, draft_order, test_tenant):
        payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("126500"), "cash")

        with pytest.raises(InvalidInputError):
            payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("0.01"), "cash")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10"), "abc"])
    def test_non_positive_amount_rejected(self, payment_service, draft_order, test_tenant, amount):
        with pytest.raises(InvalidInputError):
            payment_service.record_payment(draft_order.id, test_tenant.id, amount, "cash")

    def test_sub_cent_amount_rejected(self, payment_service, draft_order, test_tenant):
        """Test amounts with more than two decimal places are refused"""
        with pytest.raises(InvalidInputError) as exc_info:
            payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("10.005"), "cash")

        assert "two decimal places" in str(exc_info.value)

    def test_unknown_method_rejected(self, payment_service, draft_order, test_tenant):
        with pytest.raises(InvalidInputError) as exc_info:
            payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("100"), "cheque")

        assert "cash" in str(exc_info.value)

    def test_cancelled_order_rejected(self, payment_service, order_service, draft_order, test_tenant):
        order_service.cancel_order(draft_order.id, test_tenant.id)

        with pytest.raises(InvalidStateError):
            payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("1000"), "cash")

    def test_completed_order_is_already_settled(
        self, payment_service, order_service, confirmed_order, test_tenant
    ):
        payment_service.record_payment(confirmed_order.id, test_tenant.id, Decimal("126500"), "cash")
        order_service.complete_order(confirmed_order.id, test_tenant.id)

        with pytest.raises(InvalidInputError):
            payment_service.record_payment(confirmed_order.id, test_tenant.id, Decimal("1"), "cash")

    def test_foreign_tenant_sees_not_found(self, payment_service, draft_order, other_tenant):
        with pytest.raises(OrderNotFoundError):
            payment_service.record_payment(draft_order.id, other_tenant.id, Decimal("1000"), "cash")

    def test_unknown_order_not_found(self, payment_service, test_tenant):
        with pytest.raises(OrderNotFoundError):
            payment_service.record_payment(uuid.uuid4(), test_tenant.id, Decimal("1000"), "cash")

    def test_publishes_payment_recorded(self, payment_service, draft_order, test_tenant, published_events):
        result = payment_service.record_payment(
            draft_order.id, test_tenant.id, Decimal("500"), "card", transaction_ref="EDC-001"
        )

        event = published_events[-1].to_dict()
        assert event["event_type"] == "PaymentRecorded"
        assert event["payment_id"] == str(result.payment.id)
        assert event["amount"] == "500.00"
        assert event["payment_status"] == "partial"


class TestListPayments:
    def test_payments_in_recorded_order(self, payment_service, draft_order, test_tenant):
        payment_service.record_payment(draft_order.id, test_tenant.id, Decimal("1000"), "cash")
        payment_service.record_payment(
            draft_order.id, test_tenant.id, Decimal("2000"), "card", transaction_ref="EDC-42", notes="Visa"
        )

        payments = payment_service.list_payments(draft_order.id, test_tenant.id)

        assert [p.amount for p in payments] == [Decimal("1000.00"), Decimal("2000.00")]
        assert payments[1].transaction_ref == "EDC-42"
        assert payments[1].notes == "Visa"
        assert sum(p.amount for p in payments) == Decimal("3000.00")

    def test_foreign_tenant_sees_not_found(self, payment_service, draft_order, other_tenant):
        with pytest.raises(OrderNotFoundError):
            payment_service.list_payments(draft_order.id, other_tenant.id)
