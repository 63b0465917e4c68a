"""
OrderItem model - one priced product line owned by an Order
"""

from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import Optional, TYPE_CHECKING, List
from decimal import Decimal
from enum import Enum
import uuid

from pos_orders.core.providers import utcnow

if TYPE_CHECKING:
    from pos_orders.models.order import Order


class OrderItemStatus(str, Enum):
    """Kitchen workflow status, independent of the order status"""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"


class OrderItem(SQLModel, table=True):
    """Line item with a name and price snapshot of the catalog product"""

    __tablename__ = "order_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
        description="Order this item belongs to"
    )
    sort_order: int = Field(default=0, description="Display position within the order")

    # Product snapshot
    product_id: str = Field(max_length=64, index=True)
    product_name: str = Field(max_length=255, description="Name at the time of ordering")
    base_price: Decimal = Field(max_digits=12, decimal_places=2)

    # Legacy single-variant support
    variant_id: Optional[str] = Field(default=None, max_length=64, nullable=True)
    variant_name: Optional[str] = Field(default=None, max_length=255, nullable=True)
    variant_price_delta: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2
    )

    # Modifier selections, deltas stored as decimal strings
    selected_options: List[dict] = Field(
        default_factory=list,
        description="Selected option tree (groups may nest child groups)",
        sa_column=Column(JSON, nullable=False, default=list)
    )

    quantity: int = Field(ge=1)
    item_price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Unit price: base + variant delta + option deltas"
    )
    item_subtotal: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="item_price x quantity"
    )

    notes: Optional[str] = Field(default=None, nullable=True)
    status: OrderItemStatus = Field(default=OrderItemStatus.PENDING)
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    order: Optional["Order"] = Relationship(back_populates="items")

    def is_awaiting_preparation(self) -> bool:
        return self.status in (OrderItemStatus.PENDING, OrderItemStatus.PREPARING)
