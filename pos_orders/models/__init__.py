from pos_orders.models.tenant import Tenant, TenantFeature, FeatureSource
from pos_orders.models.order import Order, OrderStatus, PaymentStatus
from pos_orders.models.order_item import OrderItem, OrderItemStatus
from pos_orders.models.order_payment import OrderPayment, PaymentMethod
from pos_orders.models.kitchen_ticket import KitchenTicket, TicketStatus, TicketPriority
