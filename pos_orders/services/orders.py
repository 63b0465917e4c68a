"""
Order lifecycle service
Creates orders, replaces their items and moves them through
draft -> confirmed -> completed, or to cancelled. Every operation is a
single transaction that re-reads the order under lock before deciding.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple
import uuid

import structlog

from pos_orders.core.config import Settings, get_settings
from pos_orders.core.database import SessionFactory
from pos_orders.core.errors import (
    InvalidInputError,
    InvalidStateError,
    OrderNotFoundError,
    operation_context,
)
from pos_orders.core.events import EventBus, OrderCreated, OrderStatusChanged, OrderUpdated, event_bus
from pos_orders.core.providers import Clock, IdGenerator, new_id, utcnow
from pos_orders.models.order import Order, OrderStatus, PaymentStatus
from pos_orders.models.order_item import OrderItem, OrderItemStatus
from pos_orders.models.tenant import Tenant
from pos_orders.repositories.unit_of_work import UnitOfWork, unit_of_work
from pos_orders.schemas.orders import AppliedDiscount, OrderItemInput
from pos_orders.schemas.pricing import PriceCalculation
from pos_orders.services import order_state
from pos_orders.services.payments import derive_payment_status
from pos_orders.services.pricing import CENT, PricingCalculator, flatten_selected_options
from pos_orders.services.tenants import require_active_tenant

logger = structlog.get_logger(__name__)

# Scale of the stored tax and service charge rate columns
RATE_STEP = Decimal("0.0001")


class OrderResult(NamedTuple):
    order: Order
    pricing: PriceCalculation


class OrderHistoryPage(NamedTuple):
    orders: List[Order]
    total: int
    limit: int
    offset: int
    has_more: bool


class OrderLifecycleService:
    """Use cases that create and mutate the Order aggregate"""

    def __init__(
        self,
        session_factory: SessionFactory,
        pricing: Optional[PricingCalculator] = None,
        id_generator: IdGenerator = new_id,
        clock: Clock = utcnow,
        events: EventBus = event_bus,
        settings: Optional[Settings] = None
    ):
        self.session_factory = session_factory
        self.pricing = pricing or PricingCalculator()
        self.id_generator = id_generator
        self.clock = clock
        self.events = events
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Validation and pricing helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_items(items: Sequence[OrderItemInput]) -> None:
        if not items:
            raise InvalidInputError("Order must contain at least one item")
        for item in items:
            if item.quantity < 1:
                raise InvalidInputError(
                    f"Quantity for '{item.product_name}' must be at least 1",
                    product_id=item.product_id
                )
            if item.base_price < 0:
                raise InvalidInputError(
                    f"Base price for '{item.product_name}' cannot be negative",
                    product_id=item.product_id
                )

            prices = [("base price", item.base_price), ("variant price", item.variant_price_delta)]
            prices.extend(
                (f"option '{option.option_id}' price", option.price_delta)
                for option in flatten_selected_options(item.selected_options)
            )
            for label, amount in prices:
                if amount != amount.quantize(CENT):
                    raise InvalidInputError(
                        f"{label[0].upper()}{label[1:]} of '{item.product_name}' cannot have more than "
                        "two decimal places",
                        product_id=item.product_id,
                        amount=amount
                    )

    @staticmethod
    def _validate_rate(name: str, rate: Optional[Decimal]) -> Optional[Decimal]:
        if rate is None:
            return None
        rate = Decimal(rate)
        if rate < 0 or rate > 1:
            raise InvalidInputError(f"{name} must be between 0 and 1", **{name: rate})
        if rate != rate.quantize(RATE_STEP):
            raise InvalidInputError(
                f"{name} cannot have more than four decimal places", **{name: rate}
            )
        return rate

    @staticmethod
    def _validate_page(limit: int, offset: int) -> None:
        if limit <= 0:
            raise InvalidInputError("limit must be greater than zero", limit=limit)
        if offset < 0:
            raise InvalidInputError("offset cannot be negative", offset=offset)

    def _tenant_rates(
        self,
        tenant: Tenant,
        tax_rate: Optional[Decimal],
        service_charge_rate: Optional[Decimal]
    ) -> Tuple[Decimal, Decimal]:
        """Caller rate, else the tenant's, else the application default"""
        tax_rate = self._validate_rate("tax_rate", tax_rate)
        service_charge_rate = self._validate_rate("service_charge_rate", service_charge_rate)
        if tax_rate is None:
            tax_rate = tenant.tax_rate if tenant.tax_rate is not None else self.settings.DEFAULT_TAX_RATE
        if service_charge_rate is None:
            service_charge_rate = (
                tenant.service_charge_rate
                if tenant.service_charge_rate is not None
                else self.settings.DEFAULT_SERVICE_CHARGE_RATE
            )
        return tax_rate, service_charge_rate

    def _price(
        self,
        items: Sequence[OrderItemInput],
        tax_rate: Decimal,
        service_charge_rate: Decimal,
        discounts: Optional[Sequence[AppliedDiscount]]
    ) -> PriceCalculation:
        pricing = self.pricing.calculate(items, tax_rate, service_charge_rate, discounts)
        for line in pricing.items:
            if line.item_price < 0:
                raise InvalidInputError(
                    f"Item '{line.product_name}' has a negative price ({line.item_price})",
                    product_id=line.product_id
                )
        return pricing

    @staticmethod
    def _pricing_fields(pricing: PriceCalculation) -> dict:
        return {
            "subtotal": pricing.subtotal,
            "discount_amount": pricing.discount_absorbed,
            "tax_rate": pricing.tax_rate,
            "tax_amount": pricing.tax_amount,
            "service_charge_rate": pricing.service_charge_rate,
            "service_charge_amount": pricing.service_charge_amount,
            "total_amount": pricing.total_amount,
            "discounts": [d.model_dump(mode="json") for d in pricing.discounts],
        }

    def _build_items(
        self,
        items: Sequence[OrderItemInput],
        pricing: PriceCalculation,
        now: datetime
    ) -> List[OrderItem]:
        return [
            OrderItem(
                id=self.id_generator(),
                sort_order=position,
                product_id=item.product_id,
                product_name=item.product_name,
                base_price=line.base_price,
                variant_id=item.variant_id,
                variant_name=item.variant_name,
                variant_price_delta=line.variant_delta,
                selected_options=[o.model_dump(mode="json") for o in item.selected_options],
                quantity=item.quantity,
                item_price=line.item_price,
                item_subtotal=line.item_subtotal,
                notes=item.notes,
                status=OrderItemStatus.PENDING,
                created_at=now
            )
            for position, (item, line) in enumerate(zip(items, pricing.items))
        ]

    @staticmethod
    def _load_for_update(uow: UnitOfWork, order_id: uuid.UUID, tenant_id: uuid.UUID) -> Order:
        order = uow.orders.find_by_id(order_id, tenant_id, for_update=True)
        if order is None:
            raise OrderNotFoundError("Order not found", order_id=order_id)
        return order

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(
        self,
        tenant_id: uuid.UUID,
        items: Sequence[OrderItemInput],
        order_type_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        table_number: Optional[str] = None,
        tax_rate: Optional[Decimal] = None,
        service_charge_rate: Optional[Decimal] = None,
        notes: Optional[str] = None,
        discounts: Optional[Sequence[AppliedDiscount]] = None
    ) -> OrderResult:
        """
        Create a draft order with its items in one transaction.

        Returns:
            OrderResult with the stored order and the price breakdown
        """
        with operation_context("create order", tenant_id=tenant_id):
            self._validate_items(items)

            with unit_of_work(self.session_factory) as uow:
                tenant = require_active_tenant(uow, tenant_id)
                rates = self._tenant_rates(tenant, tax_rate, service_charge_rate)
                pricing = self._price(items, *rates, discounts)

                now = self.clock()
                order = Order(
                    id=self.id_generator(),
                    tenant_id=tenant_id,
                    order_number=uow.orders.generate_order_number(tenant_id, now),
                    order_type_id=order_type_id,
                    status=OrderStatus.DRAFT,
                    payment_status=PaymentStatus.UNPAID,
                    customer_name=customer_name,
                    table_number=table_number,
                    notes=notes,
                    paid_amount=Decimal("0.00"),
                    created_at=now,
                    updated_at=now,
                    **self._pricing_fields(pricing)
                )
                order.items = self._build_items(items, pricing, now)
                order = uow.orders.create(order)

        logger.info(
            "Order created",
            order_id=str(order.id),
            tenant_id=str(tenant_id),
            order_number=order.order_number,
            item_count=len(order.items),
            total_amount=str(order.total_amount)
        )
        self.events.publish(OrderCreated(
            order_id=order.id,
            tenant_id=tenant_id,
            order_number=order.order_number,
            item_count=len(order.items),
            total_amount=order.total_amount
        ))
        return OrderResult(order, pricing)

    def update_order(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        items: Sequence[OrderItemInput],
        order_type_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        table_number: Optional[str] = None,
        tax_rate: Optional[Decimal] = None,
        service_charge_rate: Optional[Decimal] = None,
        notes: Optional[str] = None,
        discounts: Optional[Sequence[AppliedDiscount]] = None
    ) -> OrderResult:
        """
        Save the current cart: replace every item and reprice the order.

        Metadata, rates and discounts left as None keep their stored values.
        Completed and cancelled orders cannot be edited.
        """
        with operation_context("update order", order_id=order_id, tenant_id=tenant_id):
            self._validate_items(items)
            tax_rate = self._validate_rate("tax_rate", tax_rate)
            service_charge_rate = self._validate_rate("service_charge_rate", service_charge_rate)

            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                order = self._load_for_update(uow, order_id, tenant_id)
                if order_state.is_terminal_status(order.status):
                    logger.warning(
                        "Update rejected for closed order",
                        order_id=str(order_id),
                        status=order.status.value
                    )
                    raise InvalidStateError(f"Cannot update order in '{order.status.value}' status")

                if discounts is None:
                    discounts = [AppliedDiscount.model_validate(d) for d in order.discounts]
                pricing = self._price(
                    items,
                    tax_rate if tax_rate is not None else order.tax_rate,
                    service_charge_rate if service_charge_rate is not None else order.service_charge_rate,
                    discounts
                )
                if pricing.total_amount < order.paid_amount:
                    raise InvalidInputError(
                        f"New total {pricing.total_amount} is below the amount already paid "
                        f"({order.paid_amount})",
                        total_amount=pricing.total_amount,
                        paid_amount=order.paid_amount
                    )

                fields = self._pricing_fields(pricing)
                fields["payment_status"] = derive_payment_status(order.paid_amount, pricing.total_amount)
                for name, value in (
                    ("order_type_id", order_type_id),
                    ("customer_name", customer_name),
                    ("table_number", table_number),
                    ("notes", notes),
                ):
                    if value is not None:
                        fields[name] = value

                now = self.clock()
                previous_total = order.total_amount
                order = uow.orders.update_with_items(
                    order,
                    self._build_items(items, pricing, now),
                    updated_at=now,
                    **fields
                )

        logger.info(
            "Order updated",
            order_id=str(order_id),
            tenant_id=str(tenant_id),
            item_count=len(order.items),
            previous_total=str(previous_total),
            total_amount=str(order.total_amount)
        )
        self.events.publish(OrderUpdated(
            order_id=order.id,
            tenant_id=tenant_id,
            item_count=len(order.items),
            previous_total=previous_total,
            total_amount=order.total_amount
        ))
        return OrderResult(order, pricing)

    def _transition(
        self,
        operation: str,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        target: OrderStatus,
        guard: Callable[[Order], Tuple[bool, str]],
        reason: Optional[str] = None
    ) -> Order:
        with operation_context(operation, order_id=order_id, tenant_id=tenant_id):
            with unit_of_work(self.session_factory) as uow:
                tenant = require_active_tenant(uow, tenant_id)
                order = self._load_for_update(uow, order_id, tenant_id)

                allowed, message = guard(order)
                if not allowed:
                    logger.warning(
                        f"Cannot {operation}",
                        order_id=str(order_id),
                        status=order.status.value,
                        reason=message
                    )
                    raise InvalidStateError(message, current_status=order.status.value)
                order_state.assert_transition(order.status, target)

                previous_status = order.status
                now = self.clock()
                fields = {"status": target, "updated_at": now}
                if target == OrderStatus.CONFIRMED:
                    fields["confirmed_at"] = now
                elif target == OrderStatus.COMPLETED:
                    fields["completed_at"] = now
                elif target == OrderStatus.CANCELLED:
                    fields["cancelled_at"] = now
                    fields["notes"] = self._cancellation_notes(order, tenant, reason)
                order = uow.orders.update(order, **fields)

        logger.info(
            "Order status changed",
            order_id=str(order_id),
            tenant_id=str(tenant_id),
            previous_status=previous_status.value,
            status=order.status.value
        )
        self.events.publish(OrderStatusChanged(
            order_id=order.id,
            tenant_id=tenant_id,
            previous_status=previous_status.value,
            status=order.status.value,
            reason=reason
        ))
        return order

    def _cancellation_notes(self, order: Order, tenant: Tenant, reason: Optional[str]) -> Optional[str]:
        lines = [order.notes] if order.notes else []
        if order.paid_amount > 0:
            currency = tenant.currency or self.settings.DEFAULT_CURRENCY
            lines.append(
                f"[WARNING] Order has payments totaling {currency} {order.paid_amount}. "
                "Refund may be required."
            )
        if reason:
            lines.append(f"[CANCELLED] {reason}")
        return "\n".join(lines) or None

    def confirm_order(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> Order:
        return self._transition(
            "confirm order", order_id, tenant_id, OrderStatus.CONFIRMED, order_state.can_confirm_order
        )

    def complete_order(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> Order:
        """Close a confirmed order that is fully paid (or free)"""
        return self._transition(
            "complete order", order_id, tenant_id, OrderStatus.COMPLETED, order_state.can_complete_order
        )

    def cancel_order(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        reason: Optional[str] = None
    ) -> Order:
        """Cancel an open order, flagging any payments that may need a refund"""
        return self._transition(
            "cancel order",
            order_id,
            tenant_id,
            OrderStatus.CANCELLED,
            order_state.can_cancel_order,
            reason=reason
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> Order:
        with operation_context("get order", order_id=order_id, tenant_id=tenant_id):
            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                order = uow.orders.find_by_id(order_id, tenant_id)
                if order is None:
                    raise OrderNotFoundError("Order not found", order_id=order_id)
                return order

    def list_open_orders(
        self,
        tenant_id: uuid.UUID,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Order]:
        """Draft and confirmed orders, newest first"""
        limit = self.settings.OPEN_ORDERS_PAGE_SIZE if limit is None else limit
        with operation_context("list open orders", tenant_id=tenant_id):
            self._validate_page(limit, offset)
            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                return uow.orders.find_by_tenant(
                    tenant_id,
                    statuses=order_state.OPEN_STATUSES,
                    limit=limit,
                    offset=offset
                )

    def list_order_history(
        self,
        tenant_id: uuid.UUID,
        limit: Optional[int] = None,
        offset: int = 0,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> OrderHistoryPage:
        """Completed and cancelled orders, newest first, with paging metadata"""
        limit = self.settings.ORDER_HISTORY_PAGE_SIZE if limit is None else limit
        with operation_context("list order history", tenant_id=tenant_id):
            self._validate_page(limit, offset)
            if from_date and to_date and from_date > to_date:
                raise InvalidInputError("from_date must not be after to_date")

            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                filters = {
                    "statuses": order_state.CLOSED_STATUSES,
                    "from_date": from_date,
                    "to_date": to_date,
                }
                orders = uow.orders.find_by_tenant(tenant_id, limit=limit, offset=offset, **filters)
                total = uow.orders.count_by_tenant(tenant_id, **filters)

        return OrderHistoryPage(
            orders=orders,
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total
        )

    def preview_pricing(
        self,
        tenant_id: uuid.UUID,
        items: Sequence[OrderItemInput],
        tax_rate: Optional[Decimal] = None,
        service_charge_rate: Optional[Decimal] = None,
        discounts: Optional[Sequence[AppliedDiscount]] = None
    ) -> PriceCalculation:
        """Price a cart for the tenant without storing anything"""
        with operation_context("preview pricing", tenant_id=tenant_id):
            self._validate_items(items)
            with unit_of_work(self.session_factory) as uow:
                tenant = require_active_tenant(uow, tenant_id)
                rates = self._tenant_rates(tenant, tax_rate, service_charge_rate)
            return self._price(items, *rates, discounts)
