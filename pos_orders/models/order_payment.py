"""
OrderPayment model - append-only payment ledger entries of an Order
"""

from sqlmodel import Field, SQLModel, Relationship
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from decimal import Decimal
from enum import Enum
import uuid

from pos_orders.core.providers import utcnow

if TYPE_CHECKING:
    from pos_orders.models.order import Order


class PaymentMethod(str, Enum):
    """Payment method enumeration"""
    CASH = "cash"
    CARD = "card"
    EWALLET = "ewallet"
    OTHER = "other"


class OrderPayment(SQLModel, table=True):
    """A single payment recorded against an order; never updated or deleted"""

    __tablename__ = "order_payments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation"
    )
    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
        description="Order that this payment is for"
    )

    amount: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Amount paid, always positive"
    )
    payment_method: PaymentMethod = Field(description="How the payment was made")
    transaction_ref: Optional[str] = Field(
        default=None,
        max_length=255,
        nullable=True,
        description="External reference (card terminal, e-wallet)"
    )
    notes: Optional[str] = Field(default=None, nullable=True)
    paid_at: datetime = Field(default_factory=utcnow, index=True)

    # Relationships
    order: Optional["Order"] = Relationship(back_populates="payments")
