"""
Schemas module
"""

from pos_orders.schemas.orders import (
    AppliedDiscount,
    DiscountType,
    OrderItemInput,
    SelectedOption,
    SelectedOptionGroup,
    SelectionType,
)
from pos_orders.schemas.pricing import ItemPriceBreakdown, PriceCalculation

__all__ = [
    "AppliedDiscount",
    "DiscountType",
    "ItemPriceBreakdown",
    "OrderItemInput",
    "PriceCalculation",
    "SelectedOption",
    "SelectedOptionGroup",
    "SelectionType",
]
