"""
Domain events system

Domain events represent important business events that can be published
and subscribed to by multiple parts of the system. Services publish them
only after the owning transaction has committed.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import uuid
import structlog

logger = structlog.get_logger(__name__)


class DomainEvent:
    """Base class for domain events"""

    def __init__(self, event_id: uuid.UUID = None):
        self.event_id = event_id or uuid.uuid4()
        self.occurred_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "event_type": self.__class__.__name__
        }


class OrderCreated(DomainEvent):
    """Event fired when a draft order is created"""

    def __init__(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        order_number: str,
        item_count: int,
        total_amount: Decimal,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.order_id = order_id
        self.tenant_id = tenant_id
        self.order_number = order_number
        self.item_count = item_count
        self.total_amount = total_amount

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "order_id": str(self.order_id),
            "tenant_id": str(self.tenant_id),
            "order_number": self.order_number,
            "item_count": self.item_count,
            "total_amount": str(self.total_amount)
        })
        return data


class OrderUpdated(DomainEvent):
    """Event fired when an order's item set is replaced and repriced"""

    def __init__(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        item_count: int,
        previous_total: Decimal,
        total_amount: Decimal,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.order_id = order_id
        self.tenant_id = tenant_id
        self.item_count = item_count
        self.previous_total = previous_total
        self.total_amount = total_amount

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "order_id": str(self.order_id),
            "tenant_id": str(self.tenant_id),
            "item_count": self.item_count,
            "previous_total": str(self.previous_total),
            "total_amount": str(self.total_amount)
        })
        return data


class OrderStatusChanged(DomainEvent):
    """Event fired when an order is confirmed, completed or cancelled"""

    def __init__(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        previous_status: str,
        status: str,
        reason: Optional[str] = None,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.order_id = order_id
        self.tenant_id = tenant_id
        self.previous_status = previous_status
        self.status = status
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "order_id": str(self.order_id),
            "tenant_id": str(self.tenant_id),
            "previous_status": self.previous_status,
            "status": self.status,
            "reason": self.reason
        })
        return data


class PaymentRecorded(DomainEvent):
    """Event fired when a payment is recorded against an order"""

    def __init__(
        self,
        payment_id: uuid.UUID,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        amount: Decimal,
        payment_method: str,
        payment_status: str,
        remaining_amount: Decimal,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.payment_id = payment_id
        self.order_id = order_id
        self.tenant_id = tenant_id
        self.amount = amount
        self.payment_method = payment_method
        self.payment_status = payment_status
        self.remaining_amount = remaining_amount

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "payment_id": str(self.payment_id),
            "order_id": str(self.order_id),
            "tenant_id": str(self.tenant_id),
            "amount": str(self.amount),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "remaining_amount": str(self.remaining_amount)
        })
        return data


class KitchenTicketCreated(DomainEvent):
    """Event fired when a kitchen ticket is generated from an order"""

    def __init__(
        self,
        ticket_id: uuid.UUID,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        ticket_number: str,
        priority: str,
        item_count: int,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.ticket_id = ticket_id
        self.order_id = order_id
        self.tenant_id = tenant_id
        self.ticket_number = ticket_number
        self.priority = priority
        self.item_count = item_count

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "ticket_id": str(self.ticket_id),
            "order_id": str(self.order_id),
            "tenant_id": str(self.tenant_id),
            "ticket_number": self.ticket_number,
            "priority": self.priority,
            "item_count": self.item_count
        })
        return data


class EventBus:
    """Simple in-memory event bus for publishing domain events"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, handler: Callable):
        """Subscribe to a specific event type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to event type: {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable):
        """Unsubscribe from an event type"""
        if event_type in self._subscribers:
            self._subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed handler from event type: {event_type}")

    def publish(self, event: DomainEvent):
        """Publish an event to all subscribers"""
        event_type = event.__class__.__name__
        handlers = list(self._subscribers.get(event_type, []))

        if not handlers:
            logger.debug(f"No subscribers for event type: {event_type}")
            return

        logger.info(f"Publishing event {event_type}: {event.event_id}")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event_type}: {e}", exc_info=True)

    def clear_subscribers(self):
        """Clear all subscribers (useful for testing)"""
        self._subscribers.clear()
        logger.debug("Cleared all event subscribers")


# Global event bus instance
event_bus = EventBus()
