"""
Unit of work: one transaction and the repositories bound to it
"""

from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session

from pos_orders.core.database import SessionFactory, transaction
from pos_orders.repositories.kitchen_tickets import KitchenTicketRepository
from pos_orders.repositories.orders import OrderRepository
from pos_orders.repositories.payments import PaymentRepository
from pos_orders.repositories.tenants import TenantFeatureRepository, TenantRepository


class UnitOfWork:
    def __init__(self, session: Session):
        self.session = session
        self.orders = OrderRepository(session)
        self.tenants = TenantRepository(session)
        self.tenant_features = TenantFeatureRepository(session)
        self.payments = PaymentRepository(session)
        self.kitchen_tickets = KitchenTicketRepository(session)


@contextmanager
def unit_of_work(session_factory: SessionFactory) -> Iterator[UnitOfWork]:
    """Commit when the block exits normally, roll back on any exception"""
    with transaction(session_factory) as session:
        yield UnitOfWork(session)
