"""
Kitchen ticket service
Derives a preparation ticket from the items of an order that the kitchen
has not finished yet. Never changes the order itself.
"""

from typing import List, Optional, Union
import uuid

import structlog

from pos_orders.core.database import SessionFactory
from pos_orders.core.errors import (
    InvalidInputError,
    InvalidStateError,
    OrderNotFoundError,
    operation_context,
)
from pos_orders.core.events import EventBus, KitchenTicketCreated, event_bus
from pos_orders.core.providers import Clock, IdGenerator, new_id, utcnow
from pos_orders.models.kitchen_ticket import KitchenTicket, TicketPriority, TicketStatus
from pos_orders.models.order import OrderStatus
from pos_orders.models.order_item import OrderItem
from pos_orders.repositories.unit_of_work import unit_of_work
from pos_orders.schemas.orders import SelectedOption
from pos_orders.services.pricing import flatten_selected_options
from pos_orders.services.tenants import require_active_tenant

logger = structlog.get_logger(__name__)


def ticket_line(item: OrderItem) -> dict:
    """Kitchen-facing snapshot of one order item"""
    options = [SelectedOption.model_validate(o) for o in item.selected_options]
    return {
        "item_id": str(item.id),
        "product_name": item.product_name,
        "variant_name": item.variant_name,
        "quantity": item.quantity,
        "notes": item.notes,
        "status": item.status.value,
        "modifiers": [o.option_name or o.option_id for o in flatten_selected_options(options)],
    }


class KitchenTicketService:
    def __init__(
        self,
        session_factory: SessionFactory,
        id_generator: IdGenerator = new_id,
        clock: Clock = utcnow,
        events: EventBus = event_bus
    ):
        self.session_factory = session_factory
        self.id_generator = id_generator
        self.clock = clock
        self.events = events

    def create_kitchen_ticket(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        priority: Optional[Union[TicketPriority, str]] = None
    ) -> KitchenTicket:
        """Create a pending ticket for the order's pending and preparing items"""
        with operation_context("create kitchen ticket", order_id=order_id, tenant_id=tenant_id):
            try:
                priority = TicketPriority(priority or TicketPriority.NORMAL)
            except ValueError:
                raise InvalidInputError(f"Invalid ticket priority '{priority}'")

            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                order = uow.orders.find_by_id(order_id, tenant_id)
                if order is None:
                    raise OrderNotFoundError("Order not found", order_id=order_id)
                if order.status == OrderStatus.CANCELLED:
                    raise InvalidStateError("Cannot create kitchen ticket for cancelled order")
                if not order.items:
                    raise InvalidStateError("Order has no items to prepare")

                items: List[OrderItem] = [i for i in order.items if i.is_awaiting_preparation()]
                if not items:
                    raise InvalidStateError("No pending items to prepare")

                now = self.clock()
                ticket = uow.kitchen_tickets.create(KitchenTicket(
                    id=self.id_generator(),
                    tenant_id=tenant_id,
                    order_id=order_id,
                    ticket_number=uow.kitchen_tickets.generate_ticket_number(tenant_id, now),
                    status=TicketStatus.PENDING,
                    priority=priority,
                    table_number=order.table_number,
                    items=[ticket_line(i) for i in items],
                    created_at=now
                ))

        logger.info(
            "Kitchen ticket created",
            ticket_id=str(ticket.id),
            ticket_number=ticket.ticket_number,
            order_id=str(order_id),
            tenant_id=str(tenant_id),
            item_count=len(ticket.items)
        )
        self.events.publish(KitchenTicketCreated(
            ticket_id=ticket.id,
            order_id=order_id,
            tenant_id=tenant_id,
            ticket_number=ticket.ticket_number,
            priority=ticket.priority.value,
            item_count=len(ticket.items)
        ))
        return ticket
