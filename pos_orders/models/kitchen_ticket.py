"""
KitchenTicket model - preparation instruction derived from an order
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON, UniqueConstraint
from datetime import datetime
from typing import Optional, List
from enum import Enum
import uuid

from pos_orders.core.providers import utcnow


class TicketStatus(str, Enum):
    """Kitchen ticket status"""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"


class TicketPriority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class KitchenTicket(SQLModel, table=True):
    """Snapshot of an order's unprepared items for the kitchen"""

    __tablename__ = "kitchen_tickets"
    __table_args__ = (
        UniqueConstraint("tenant_id", "ticket_number", name="uq_kitchen_ticket_tenant_number"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation"
    )
    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
        description="Order the ticket was generated from"
    )
    ticket_number: str = Field(max_length=32, description="KT-YYYYMMDD-NNNN")

    status: TicketStatus = Field(default=TicketStatus.PENDING, index=True)
    priority: TicketPriority = Field(default=TicketPriority.NORMAL)
    table_number: Optional[str] = Field(default=None, max_length=50, nullable=True)

    items: List[dict] = Field(
        default_factory=list,
        description="Item snapshot: id, product, variant, quantity, notes, status, modifiers",
        sa_column=Column(JSON, nullable=False, default=list)
    )

    created_at: datetime = Field(default_factory=utcnow)
