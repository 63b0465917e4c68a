"""
API schemas for orders, payments, kitchen tickets and tenant features
"""

from sqlmodel import SQLModel
from datetime import datetime
from typing import Optional, List
from decimal import Decimal
import uuid

from pos_orders.models.kitchen_ticket import TicketPriority, TicketStatus
from pos_orders.models.order import OrderStatus, PaymentStatus
from pos_orders.models.order_item import OrderItemStatus
from pos_orders.models.order_payment import PaymentMethod
from pos_orders.schemas.orders import AppliedDiscount, OrderItemInput
from pos_orders.schemas.pricing import PriceCalculation

# ============================================================================
# Order Schemas
# ============================================================================

class OrderCreate(SQLModel):
    items: List[OrderItemInput]
    order_type_id: Optional[str] = None
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    tax_rate: Optional[Decimal] = None
    service_charge_rate: Optional[Decimal] = None
    notes: Optional[str] = None
    discounts: Optional[List[AppliedDiscount]] = None


class OrderUpdate(OrderCreate):
    """Full cart replacement; omitted metadata keeps its stored value"""


class PricingPreviewRequest(SQLModel):
    items: List[OrderItemInput]
    tax_rate: Optional[Decimal] = None
    service_charge_rate: Optional[Decimal] = None
    discounts: Optional[List[AppliedDiscount]] = None


class OrderCancel(SQLModel):
    reason: Optional[str] = None


class OrderItemRead(SQLModel):
    id: uuid.UUID
    sort_order: int
    product_id: str
    product_name: str
    base_price: Decimal
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    variant_price_delta: Decimal
    selected_options: List[dict]
    quantity: int
    item_price: Decimal
    item_subtotal: Decimal
    notes: Optional[str] = None
    status: OrderItemStatus

    class Config:
        from_attributes = True


class OrderRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    order_number: str
    order_type_id: Optional[str] = None
    status: OrderStatus
    payment_status: PaymentStatus
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    notes: Optional[str] = None
    subtotal: Decimal
    discount_amount: Decimal
    subtotal_after_discount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    service_charge_rate: Decimal
    service_charge_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    discounts: List[dict]
    items: List[OrderItemRead]
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int

    class Config:
        from_attributes = True


class OrderWithPricing(SQLModel):
    order: OrderRead
    pricing: PriceCalculation


class Pagination(SQLModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class OrderHistoryResponse(SQLModel):
    orders: List[OrderRead]
    pagination: Pagination


# ============================================================================
# Payment Schemas
# ============================================================================

class PaymentCreate(SQLModel):
    amount: Decimal
    payment_method: PaymentMethod
    transaction_ref: Optional[str] = None
    notes: Optional[str] = None


class OrderPaymentRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    amount: Decimal
    payment_method: PaymentMethod
    transaction_ref: Optional[str] = None
    notes: Optional[str] = None
    paid_at: datetime

    class Config:
        from_attributes = True


class PaymentRecordedResponse(SQLModel):
    payment: OrderPaymentRead
    order: OrderRead
    remaining_amount: Decimal


# ============================================================================
# Kitchen Ticket Schemas
# ============================================================================

class KitchenTicketCreate(SQLModel):
    priority: Optional[TicketPriority] = None


class KitchenTicketRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    ticket_number: str
    status: TicketStatus
    priority: TicketPriority
    table_number: Optional[str] = None
    items: List[dict]
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Tenant Feature Schemas
# ============================================================================

class ActiveFeaturesResponse(SQLModel):
    features: List[str]
    total: int


class FeatureCheckRequest(SQLModel):
    feature_code: str


class FeatureCheckResponse(SQLModel):
    enabled: bool
    feature_code: str
    reason: str
    expires_at: Optional[datetime] = None
