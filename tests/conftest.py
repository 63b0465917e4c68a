"""
Test configuration for pytest
"""

import pytest
import os
import threading
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Generator
import uuid

# Test environment variables
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DEFAULT_TAX_RATE"] = "0.10"
os.environ["DEFAULT_SERVICE_CHARGE_RATE"] = "0.05"

from sqlalchemy.engine import Engine

from pos_orders.core.config import Settings
from pos_orders.core.database import create_db_engine, create_session_factory, init_db, transaction
from pos_orders.core.events import EventBus
from pos_orders.models.order import Order
from pos_orders.models.tenant import Tenant
from pos_orders.schemas.orders import OrderItemInput, SelectedOption
from pos_orders.services.kitchen import KitchenTicketService
from pos_orders.services.orders import OrderLifecycleService
from pos_orders.services.payments import PaymentLedgerService
from pos_orders.services.pricing import PricingCalculator
from pos_orders.services.tenants import TenantFeatureService


class TickingClock:
    """Deterministic clock that advances one second per reading"""

    def __init__(self, start: datetime):
        self.current = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            self.current += timedelta(seconds=1)
            return self.current


class SequentialIds:
    """Deterministic, thread-safe UUID generator"""

    def __init__(self):
        self.counter = 0
        self._lock = threading.Lock()

    def __call__(self) -> uuid.UUID:
        with self._lock:
            self.counter += 1
            return uuid.UUID(int=self.counter)


@pytest.fixture(scope="function")
def engine(tmp_path) -> Generator[Engine, None, None]:
    """File-backed SQLite database per test so threads get real connections"""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'pos_orders.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine):
    return create_session_factory(engine)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock(datetime(2025, 3, 14, 9, 0, 0))


@pytest.fixture
def id_generator() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published_events(bus: EventBus) -> list:
    """Every event published on the test bus, in order"""
    events = []
    for event_type in (
        "OrderCreated", "OrderUpdated", "OrderStatusChanged",
        "PaymentRecorded", "KitchenTicketCreated",
    ):
        bus.subscribe(event_type, events.append)
    return events


@pytest.fixture
def order_service(session_factory, id_generator, clock, bus, settings) -> OrderLifecycleService:
    return OrderLifecycleService(
        session_factory,
        pricing=PricingCalculator(),
        id_generator=id_generator,
        clock=clock,
        events=bus,
        settings=settings
    )


@pytest.fixture
def payment_service(session_factory, id_generator, clock, bus) -> PaymentLedgerService:
    return PaymentLedgerService(session_factory, id_generator=id_generator, clock=clock, events=bus)


@pytest.fixture
def kitchen_service(session_factory, id_generator, clock, bus) -> KitchenTicketService:
    return KitchenTicketService(session_factory, id_generator=id_generator, clock=clock, events=bus)


@pytest.fixture
def feature_service(session_factory, clock) -> TenantFeatureService:
    return TenantFeatureService(session_factory, clock=clock)


def _add_tenant(session_factory, **fields) -> Tenant:
    tenant = Tenant(**fields)
    with transaction(session_factory) as session:
        session.add(tenant)
    return tenant


@pytest.fixture
def test_tenant(session_factory) -> Tenant:
    """Create an active test tenant"""
    return _add_tenant(
        session_factory,
        name="Warung Kopi",
        slug="warung-kopi",
        currency="IDR",
        is_active=True
    )


@pytest.fixture
def other_tenant(session_factory) -> Tenant:
    return _add_tenant(session_factory, name="Other Cafe", slug="other-cafe", is_active=True)


@pytest.fixture
def inactive_tenant(session_factory) -> Tenant:
    return _add_tenant(session_factory, name="Closed Cafe", slug="closed-cafe", is_active=False)


@pytest.fixture
def make_item():
    """Build an OrderItemInput with sensible defaults"""
    def _make_item(
        base_price="45000",
        quantity=2,
        option_deltas=("10000",),
        product_name="Nasi Goreng",
        **fields
    ) -> OrderItemInput:
        options = [
            SelectedOption(
                group_id="extras",
                group_name="Extras",
                option_id=f"extra-{index}",
                option_name=f"Extra {index}",
                price_delta=Decimal(delta)
            )
            for index, delta in enumerate(option_deltas)
        ]
        return OrderItemInput(
            product_id=fields.pop("product_id", "prod-nasi-goreng"),
            product_name=product_name,
            base_price=Decimal(base_price),
            quantity=quantity,
            selected_options=fields.pop("selected_options", options),
            **fields
        )
    return _make_item


@pytest.fixture
def draft_order(order_service, test_tenant, make_item) -> Order:
    """Draft order priced at 126500 (110000 + 10% tax + 5% service)"""
    result = order_service.create_order(
        test_tenant.id,
        [make_item()],
        customer_name="Budi",
        table_number="T1",
        tax_rate=Decimal("0.1"),
        service_charge_rate=Decimal("0.05")
    )
    return result.order


@pytest.fixture
def confirmed_order(order_service, draft_order, test_tenant) -> Order:
    return order_service.confirm_order(draft_order.id, test_tenant.id)
