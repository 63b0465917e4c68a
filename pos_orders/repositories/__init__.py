from pos_orders.repositories.kitchen_tickets import KitchenTicketRepository
from pos_orders.repositories.orders import OrderRepository
from pos_orders.repositories.payments import PaymentRepository
from pos_orders.repositories.tenants import TenantFeatureRepository, TenantRepository
from pos_orders.repositories.unit_of_work import UnitOfWork, unit_of_work
