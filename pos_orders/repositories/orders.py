"""
Order repository
Every query is scoped by an explicit tenant_id.
"""

from datetime import datetime
from typing import List, Optional, Sequence
import uuid

from sqlalchemy import func, update
from sqlmodel import Session, col, select
import structlog

from pos_orders.core.errors import ConcurrencyConflictError
from pos_orders.models.order import Order, OrderStatus
from pos_orders.models.order_item import OrderItem

logger = structlog.get_logger(__name__)


def next_sequence_number(numbers: Sequence[str], prefix: str) -> int:
    """Highest numeric suffix after prefix, plus one"""
    highest = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


class OrderRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        for_update: bool = False
    ) -> Optional[Order]:
        """
        Load an order with its items and payments.

        With for_update the row is locked until the transaction ends and any
        copy already in the session is overwritten with the current row.
        """
        statement = select(Order).where(Order.id == order_id, Order.tenant_id == tenant_id)
        if for_update:
            statement = statement.with_for_update().execution_options(populate_existing=True)
        return self.session.exec(statement).first()

    def create(self, order: Order) -> Order:
        self.session.add(order)
        self.session.flush()
        return order

    def update(self, order: Order, **fields) -> Order:
        """Write fields if the order is still at the version it was read at"""
        values = dict(fields)
        values["version"] = order.version + 1
        result = self.session.exec(
            update(Order)
            .where(
                col(Order.id) == order.id,
                col(Order.tenant_id) == order.tenant_id,
                col(Order.version) == order.version
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Order version check failed",
                order_id=str(order.id),
                tenant_id=str(order.tenant_id),
                expected_version=order.version
            )
            raise ConcurrencyConflictError(
                "Order was modified by another request. Please refresh and try again.",
                order_id=order.id
            )
        return self.find_by_id(order.id, order.tenant_id, for_update=True)

    def update_with_items(self, order: Order, items: List[OrderItem], **fields) -> Order:
        """Replace the whole item set and write fields as one change"""
        order.items.clear()
        for position, item in enumerate(items):
            item.order_id = order.id
            item.sort_order = position
            order.items.append(item)
        self.session.flush()
        return self.update(order, **fields)

    def generate_order_number(self, tenant_id: uuid.UUID, now: datetime) -> str:
        prefix = f"ORD-{now:%Y%m%d}-"
        numbers = self.session.exec(
            select(Order.order_number).where(
                Order.tenant_id == tenant_id,
                col(Order.order_number).startswith(prefix)
            )
        ).all()
        return f"{prefix}{next_sequence_number(numbers, prefix):04d}"

    def _filtered(
        self,
        statement,
        tenant_id: uuid.UUID,
        statuses: Optional[Sequence[OrderStatus]],
        from_date: Optional[datetime],
        to_date: Optional[datetime]
    ):
        statement = statement.where(Order.tenant_id == tenant_id)
        if statuses:
            statement = statement.where(col(Order.status).in_(list(statuses)))
        if from_date:
            statement = statement.where(Order.created_at >= from_date)
        if to_date:
            statement = statement.where(Order.created_at <= to_date)
        return statement

    def find_by_tenant(
        self,
        tenant_id: uuid.UUID,
        statuses: Optional[Sequence[OrderStatus]] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Order]:
        """Orders newest first"""
        statement = self._filtered(select(Order), tenant_id, statuses, from_date, to_date)
        statement = statement.order_by(col(Order.created_at).desc(), col(Order.order_number).desc())
        if offset:
            statement = statement.offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.exec(statement).all())

    def count_by_tenant(
        self,
        tenant_id: uuid.UUID,
        statuses: Optional[Sequence[OrderStatus]] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> int:
        statement = self._filtered(
            select(func.count()).select_from(Order), tenant_id, statuses, from_date, to_date
        )
        return self.session.exec(statement).one()
