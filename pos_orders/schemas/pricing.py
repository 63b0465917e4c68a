"""
Price breakdown value objects returned by the pricing calculator
"""

from pydantic import BaseModel
from decimal import Decimal
from typing import List

from pos_orders.schemas.orders import AppliedDiscount


class ItemPriceBreakdown(BaseModel):
    product_id: str
    product_name: str
    base_price: Decimal
    variant_delta: Decimal
    options_delta: Decimal
    item_price: Decimal
    quantity: int
    item_subtotal: Decimal

    class Config:
        frozen = True


class PriceCalculation(BaseModel):
    """Full price breakdown of an item list; never persisted as such"""
    items: List[ItemPriceBreakdown]
    subtotal: Decimal
    discounts: List[AppliedDiscount]
    total_discount: Decimal
    subtotal_after_discount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    service_charge_rate: Decimal
    service_charge_amount: Decimal
    total_amount: Decimal

    class Config:
        frozen = True

    @property
    def discount_absorbed(self) -> Decimal:
        """Discount actually taken off; less than total_discount when it exceeds the subtotal"""
        return self.subtotal - self.subtotal_after_discount
