"""
Order model - tenant-scoped aggregate root of the order lifecycle

Derived money fields (subtotal through total_amount) are written only by the
pricing path, and paid_amount/payment_status only by the payment ledger.
"""

from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Column, JSON, UniqueConstraint
from datetime import datetime
from typing import Optional, TYPE_CHECKING, List
from decimal import Decimal
from enum import Enum
import uuid

from pos_orders.core.providers import utcnow

if TYPE_CHECKING:
    from pos_orders.models.order_item import OrderItem
    from pos_orders.models.order_payment import OrderPayment


class OrderStatus(str, Enum):
    """Lifecycle status of an order"""
    DRAFT = "draft"              # Being built, items may be replaced
    CONFIRMED = "confirmed"      # Sent for preparation
    COMPLETED = "completed"      # Closed, terminal
    CANCELLED = "cancelled"      # Abandoned, terminal


class PaymentStatus(str, Enum):
    """Payment progress, derived from paid_amount against total_amount"""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class Order(SQLModel, table=True):
    """Order with its priced item set and running payment total"""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "order_number", name="uq_order_tenant_number"),
    )

    # Primary key
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation"
    )

    order_number: str = Field(
        max_length=32,
        index=True,
        description="Per-tenant order number, ORD-YYYYMMDD-NNNN"
    )
    order_type_id: Optional[str] = Field(
        default=None,
        max_length=64,
        nullable=True,
        description="Order type (dine-in, takeaway, ...) from the catalog"
    )

    # Order status
    status: OrderStatus = Field(
        default=OrderStatus.DRAFT,
        index=True,
        description="Current status of the order"
    )
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.UNPAID,
        index=True,
        description="Payment progress of the order"
    )

    # Descriptive metadata
    customer_name: Optional[str] = Field(default=None, max_length=255, nullable=True)
    table_number: Optional[str] = Field(default=None, max_length=50, nullable=True)
    notes: Optional[str] = Field(default=None, nullable=True)

    # Financial amounts
    subtotal: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Sum of item subtotals before discount"
    )
    discount_amount: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Discount absorbed by the subtotal"
    )
    tax_rate: Decimal = Field(
        default=Decimal("0.0000"),
        max_digits=5,
        decimal_places=4,
        description="Tax rate applied to the discounted subtotal"
    )
    tax_amount: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Total tax amount"
    )
    service_charge_rate: Decimal = Field(
        default=Decimal("0.0000"),
        max_digits=5,
        decimal_places=4,
        description="Service charge rate applied to the discounted subtotal"
    )
    service_charge_amount: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Service charge amount"
    )
    total_amount: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="subtotal - discount + tax + service charge"
    )
    paid_amount: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Running sum of recorded payments"
    )
    discounts: List[dict] = Field(
        default_factory=list,
        description="Pre-resolved discounts applied at last pricing",
        sa_column=Column(JSON, nullable=False, default=list)
    )

    # Status timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    confirmed_at: Optional[datetime] = Field(default=None, nullable=True)
    completed_at: Optional[datetime] = Field(default=None, nullable=True)
    cancelled_at: Optional[datetime] = Field(default=None, nullable=True)

    # Optimistic concurrency control
    version: int = Field(
        default=1,
        description="Version number for optimistic concurrency control"
    )

    # Relationships
    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "lazy": "selectin",
            "order_by": "OrderItem.sort_order",
        }
    )
    payments: List["OrderPayment"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "lazy": "selectin",
            "order_by": "OrderPayment.paid_at",
        }
    )

    @property
    def subtotal_after_discount(self) -> Decimal:
        return self.subtotal - self.discount_amount

    @property
    def remaining_amount(self) -> Decimal:
        """Outstanding balance still payable"""
        return self.total_amount - self.paid_amount
