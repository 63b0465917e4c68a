"""
Payment ledger service
Records payments against an order and keeps paid_amount and payment_status
in step with them. The balance read, the payment insert and the order update
happen in one locked transaction, so concurrent payments can never credit
more than the remaining balance.
"""

from decimal import Decimal, InvalidOperation
from typing import List, NamedTuple, Optional, Union
import uuid

import structlog

from pos_orders.core.database import SessionFactory
from pos_orders.core.errors import (
    InvalidInputError,
    InvalidStateError,
    OrderNotFoundError,
    operation_context,
)
from pos_orders.core.events import EventBus, PaymentRecorded, event_bus
from pos_orders.core.providers import Clock, IdGenerator, new_id, utcnow
from pos_orders.models.order import Order, OrderStatus, PaymentStatus
from pos_orders.models.order_payment import OrderPayment, PaymentMethod
from pos_orders.repositories.unit_of_work import unit_of_work
from pos_orders.services.pricing import CENT
from pos_orders.services.tenants import require_active_tenant

logger = structlog.get_logger(__name__)


def derive_payment_status(paid_amount: Decimal, total_amount: Decimal) -> PaymentStatus:
    """paid on exact equality, partial strictly between zero and total"""
    if paid_amount > 0 and paid_amount == total_amount:
        return PaymentStatus.PAID
    if 0 < paid_amount < total_amount:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


class PaymentResult(NamedTuple):
    payment: OrderPayment
    order: Order
    remaining_amount: Decimal


class PaymentLedgerService:
    """Append-only payment recording for orders"""

    def __init__(
        self,
        session_factory: SessionFactory,
        id_generator: IdGenerator = new_id,
        clock: Clock = utcnow,
        events: EventBus = event_bus
    ):
        self.session_factory = session_factory
        self.id_generator = id_generator
        self.clock = clock
        self.events = events

    @staticmethod
    def _validate_amount(amount: Union[Decimal, str, int]) -> Decimal:
        try:
            amount = Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidInputError(f"Invalid payment amount: {amount!r}")
        if not amount.is_finite() or amount <= 0:
            raise InvalidInputError("Payment amount must be greater than zero", amount=amount)
        if amount != amount.quantize(CENT):
            raise InvalidInputError(
                "Payment amount cannot have more than two decimal places", amount=amount
            )
        return amount.quantize(CENT)

    @staticmethod
    def _validate_method(payment_method: Union[PaymentMethod, str]) -> PaymentMethod:
        try:
            return PaymentMethod(payment_method)
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            raise InvalidInputError(
                f"Invalid payment method '{payment_method}'. Must be one of: {allowed}"
            )

    def record_payment(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        amount: Union[Decimal, str, int],
        payment_method: Union[PaymentMethod, str],
        transaction_ref: Optional[str] = None,
        notes: Optional[str] = None
    ) -> PaymentResult:
        """
        Record a payment of at most the order's remaining balance.

        Args:
            order_id: Order being paid
            tenant_id: Tenant that owns the order
            amount: Positive amount with at most two decimal places
            payment_method: cash, card, ewallet or other
            transaction_ref: External reference of the payment
            notes: Free text stored on the payment

        Returns:
            PaymentResult with the stored payment, the updated order and
            the balance still outstanding
        """
        with operation_context("record payment", order_id=order_id, tenant_id=tenant_id):
            amount = self._validate_amount(amount)
            method = self._validate_method(payment_method)

            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                order = uow.orders.find_by_id(order_id, tenant_id, for_update=True)
                if order is None:
                    raise OrderNotFoundError("Order not found", order_id=order_id)
                if order.status == OrderStatus.CANCELLED:
                    logger.warning("Payment rejected for cancelled order", order_id=str(order_id))
                    raise InvalidStateError("Cannot record payment for cancelled order")

                remaining = order.total_amount - order.paid_amount
                if amount > remaining:
                    logger.warning(
                        "Payment rejected, exceeds remaining balance",
                        order_id=str(order_id),
                        amount=str(amount),
                        remaining=str(remaining)
                    )
                    raise InvalidInputError(
                        f"Payment amount {amount} exceeds remaining balance {remaining}",
                        amount=amount,
                        remaining_amount=remaining
                    )

                now = self.clock()
                payment = uow.payments.create(
                    OrderPayment(
                        id=self.id_generator(),
                        tenant_id=tenant_id,
                        order_id=order_id,
                        amount=amount,
                        payment_method=method,
                        transaction_ref=transaction_ref,
                        notes=notes,
                        paid_at=now
                    ),
                    tenant_id
                )

                new_paid = order.paid_amount + amount
                order = uow.orders.update(
                    order,
                    paid_amount=new_paid,
                    payment_status=derive_payment_status(new_paid, order.total_amount),
                    updated_at=now
                )

                ledger_total = uow.payments.total_for_order(order_id, tenant_id)
                if ledger_total != order.paid_amount:
                    logger.warning(
                        "Paid amount drifted from payment ledger",
                        order_id=str(order_id),
                        paid_amount=str(order.paid_amount),
                        ledger_total=str(ledger_total)
                    )

            remaining_amount = order.total_amount - order.paid_amount

        logger.info(
            "Payment recorded",
            order_id=str(order_id),
            tenant_id=str(tenant_id),
            payment_id=str(payment.id),
            amount=str(amount),
            payment_status=order.payment_status.value,
            remaining_amount=str(remaining_amount)
        )
        self.events.publish(PaymentRecorded(
            payment_id=payment.id,
            order_id=order.id,
            tenant_id=tenant_id,
            amount=amount,
            payment_method=method.value,
            payment_status=order.payment_status.value,
            remaining_amount=remaining_amount
        ))
        return PaymentResult(payment, order, remaining_amount)

    def list_payments(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> List[OrderPayment]:
        """Payments of an order in the order they were made"""
        with operation_context("list payments", order_id=order_id, tenant_id=tenant_id):
            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                if uow.orders.find_by_id(order_id, tenant_id) is None:
                    raise OrderNotFoundError("Order not found", order_id=order_id)
                return uow.payments.find_by_order(order_id, tenant_id)
