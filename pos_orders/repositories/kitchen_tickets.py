"""
Kitchen ticket repository
"""

from datetime import datetime
from typing import List
import uuid

from sqlmodel import Session, col, select

from pos_orders.models.kitchen_ticket import KitchenTicket
from pos_orders.repositories.orders import next_sequence_number


class KitchenTicketRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, ticket: KitchenTicket) -> KitchenTicket:
        self.session.add(ticket)
        self.session.flush()
        return ticket

    def generate_ticket_number(self, tenant_id: uuid.UUID, now: datetime) -> str:
        prefix = f"KT-{now:%Y%m%d}-"
        numbers = self.session.exec(
            select(KitchenTicket.ticket_number).where(
                KitchenTicket.tenant_id == tenant_id,
                col(KitchenTicket.ticket_number).startswith(prefix)
            )
        ).all()
        return f"{prefix}{next_sequence_number(numbers, prefix):04d}"

    def find_by_order(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> List[KitchenTicket]:
        statement = (
            select(KitchenTicket)
            .where(KitchenTicket.order_id == order_id, KitchenTicket.tenant_id == tenant_id)
            .order_by(col(KitchenTicket.created_at))
        )
        return list(self.session.exec(statement).all())
