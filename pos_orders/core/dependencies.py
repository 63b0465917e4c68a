"""
FastAPI dependencies: tenant resolution and service wiring
"""

from fastapi import Depends, HTTPException, Request, status
import uuid
import structlog

from pos_orders.core.config import Settings, get_settings
from pos_orders.core.database import SessionFactory, get_session_factory
from pos_orders.core.events import event_bus
from pos_orders.services.kitchen import KitchenTicketService
from pos_orders.services.orders import OrderLifecycleService
from pos_orders.services.payments import PaymentLedgerService
from pos_orders.services.pricing import PricingCalculator
from pos_orders.services.tenants import TenantFeatureService

logger = structlog.get_logger(__name__)


def get_tenant_id(request: Request, settings: Settings = Depends(get_settings)) -> uuid.UUID:
    """Tenant ID of the already-authenticated caller, taken from the tenant header"""
    raw_tenant_id = request.headers.get(settings.TENANT_HEADER)
    if not raw_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing {settings.TENANT_HEADER} header"
        )
    try:
        return uuid.UUID(raw_tenant_id)
    except ValueError:
        logger.debug(f"Malformed tenant header: {raw_tenant_id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {settings.TENANT_HEADER} header"
        )


def get_order_service(
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: Settings = Depends(get_settings)
) -> OrderLifecycleService:
    return OrderLifecycleService(
        session_factory,
        pricing=PricingCalculator(),
        events=event_bus,
        settings=settings
    )


def get_payment_service(
    session_factory: SessionFactory = Depends(get_session_factory)
) -> PaymentLedgerService:
    return PaymentLedgerService(session_factory, events=event_bus)


def get_kitchen_service(
    session_factory: SessionFactory = Depends(get_session_factory)
) -> KitchenTicketService:
    return KitchenTicketService(session_factory, events=event_bus)


def get_tenant_feature_service(
    session_factory: SessionFactory = Depends(get_session_factory)
) -> TenantFeatureService:
    return TenantFeatureService(session_factory)
