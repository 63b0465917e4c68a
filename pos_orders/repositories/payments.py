"""
Payment repository - append only
"""

from decimal import Decimal
from typing import List
import uuid

from sqlmodel import Session, col, select

from pos_orders.core.errors import InvalidInputError
from pos_orders.models.order_payment import OrderPayment


class PaymentRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, payment: OrderPayment, tenant_id: uuid.UUID) -> OrderPayment:
        if payment.tenant_id != tenant_id:
            raise InvalidInputError("Payment tenant does not match", tenant_id=tenant_id)
        self.session.add(payment)
        self.session.flush()
        return payment

    def find_by_order(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> List[OrderPayment]:
        statement = (
            select(OrderPayment)
            .where(OrderPayment.order_id == order_id, OrderPayment.tenant_id == tenant_id)
            .order_by(col(OrderPayment.paid_at))
        )
        return list(self.session.exec(statement).all())

    def total_for_order(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> Decimal:
        """Sum of stored payments, added up as decimals in Python"""
        return sum(
            (payment.amount for payment in self.find_by_order(order_id, tenant_id)),
            Decimal("0.00")
        )
