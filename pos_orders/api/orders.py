"""
Orders API endpoints: lifecycle, pricing preview, payments and kitchen tickets
"""

from fastapi import APIRouter, Depends, Query, status
from datetime import datetime
from typing import List, Optional
import uuid

from pos_orders.api.schemas import (
    KitchenTicketCreate,
    KitchenTicketRead,
    OrderCancel,
    OrderCreate,
    OrderHistoryResponse,
    OrderPaymentRead,
    OrderRead,
    OrderUpdate,
    OrderWithPricing,
    Pagination,
    PaymentCreate,
    PaymentRecordedResponse,
    PricingPreviewRequest,
)
from pos_orders.core.dependencies import (
    get_kitchen_service,
    get_order_service,
    get_payment_service,
    get_tenant_id,
)
from pos_orders.schemas.pricing import PriceCalculation
from pos_orders.services.kitchen import KitchenTicketService
from pos_orders.services.orders import OrderLifecycleService, OrderResult
from pos_orders.services.payments import PaymentLedgerService

router = APIRouter()


def _with_pricing(result: OrderResult) -> OrderWithPricing:
    return OrderWithPricing(order=OrderRead.model_validate(result.order), pricing=result.pricing)


@router.post("", response_model=OrderWithPricing, status_code=status.HTTP_201_CREATED)
def create_order(
    order_data: OrderCreate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """Create a draft order"""
    result = service.create_order(
        tenant_id,
        order_data.items,
        order_type_id=order_data.order_type_id,
        customer_name=order_data.customer_name,
        table_number=order_data.table_number,
        tax_rate=order_data.tax_rate,
        service_charge_rate=order_data.service_charge_rate,
        notes=order_data.notes,
        discounts=order_data.discounts
    )
    return _with_pricing(result)


@router.post("/pricing", response_model=PriceCalculation)
def preview_pricing(
    request: PricingPreviewRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """Price a cart without creating an order"""
    return service.preview_pricing(
        tenant_id,
        request.items,
        tax_rate=request.tax_rate,
        service_charge_rate=request.service_charge_rate,
        discounts=request.discounts
    )


@router.get("", response_model=List[OrderRead])
def list_open_orders(
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """List draft and confirmed orders, newest first"""
    orders = service.list_open_orders(tenant_id, limit=limit, offset=offset)
    return [OrderRead.model_validate(order) for order in orders]


@router.get("/history", response_model=OrderHistoryResponse)
def list_order_history(
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    from_date: Optional[datetime] = Query(None),
    to_date: Optional[datetime] = Query(None),
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """List completed and cancelled orders with pagination metadata"""
    page = service.list_order_history(
        tenant_id, limit=limit, offset=offset, from_date=from_date, to_date=to_date
    )
    return OrderHistoryResponse(
        orders=[OrderRead.model_validate(order) for order in page.orders],
        pagination=Pagination(
            total=page.total, limit=page.limit, offset=page.offset, has_more=page.has_more
        )
    )


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """Get order by ID"""
    return OrderRead.model_validate(service.get_order(order_id, tenant_id))


@router.put("/{order_id}", response_model=OrderWithPricing)
def update_order(
    order_id: uuid.UUID,
    order_data: OrderUpdate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """Replace the order's items and reprice it"""
    result = service.update_order(
        order_id,
        tenant_id,
        order_data.items,
        order_type_id=order_data.order_type_id,
        customer_name=order_data.customer_name,
        table_number=order_data.table_number,
        tax_rate=order_data.tax_rate,
        service_charge_rate=order_data.service_charge_rate,
        notes=order_data.notes,
        discounts=order_data.discounts
    )
    return _with_pricing(result)


@router.post("/{order_id}/confirm", response_model=OrderRead)
def confirm_order(
    order_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """Confirm a draft order"""
    return OrderRead.model_validate(service.confirm_order(order_id, tenant_id))


@router.post("/{order_id}/complete", response_model=OrderRead)
def complete_order(
    order_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """Complete a confirmed, fully paid order"""
    return OrderRead.model_validate(service.complete_order(order_id, tenant_id))


@router.post("/{order_id}/cancel", response_model=OrderRead)
def cancel_order(
    order_id: uuid.UUID,
    cancel_data: Optional[OrderCancel] = None,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: OrderLifecycleService = Depends(get_order_service)
):
    """Cancel an open order"""
    reason = cancel_data.reason if cancel_data else None
    return OrderRead.model_validate(service.cancel_order(order_id, tenant_id, reason=reason))


@router.post(
    "/{order_id}/payments",
    response_model=PaymentRecordedResponse,
    status_code=status.HTTP_201_CREATED
)
def record_payment(
    order_id: uuid.UUID,
    payment_data: PaymentCreate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: PaymentLedgerService = Depends(get_payment_service)
):
    """Record a (possibly partial) payment"""
    result = service.record_payment(
        order_id,
        tenant_id,
        payment_data.amount,
        payment_data.payment_method,
        transaction_ref=payment_data.transaction_ref,
        notes=payment_data.notes
    )
    return PaymentRecordedResponse(
        payment=OrderPaymentRead.model_validate(result.payment),
        order=OrderRead.model_validate(result.order),
        remaining_amount=result.remaining_amount
    )


@router.get("/{order_id}/payments", response_model=List[OrderPaymentRead])
def list_payments(
    order_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: PaymentLedgerService = Depends(get_payment_service)
):
    """List payments recorded for an order"""
    payments = service.list_payments(order_id, tenant_id)
    return [OrderPaymentRead.model_validate(payment) for payment in payments]


@router.post(
    "/{order_id}/kitchen-ticket",
    response_model=KitchenTicketRead,
    status_code=status.HTTP_201_CREATED
)
def create_kitchen_ticket(
    order_id: uuid.UUID,
    ticket_data: Optional[KitchenTicketCreate] = None,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: KitchenTicketService = Depends(get_kitchen_service)
):
    """Create a kitchen ticket from the order's pending items"""
    priority = ticket_data.priority if ticket_data else None
    ticket = service.create_kitchen_ticket(order_id, tenant_id, priority=priority)
    return KitchenTicketRead.model_validate(ticket)
