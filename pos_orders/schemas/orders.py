"""
Input schemas for order items, modifier selections and discounts
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from enum import Enum
from typing import List, Optional

# An option's child groups may hold options whose child groups may hold options
MAX_MODIFIER_DEPTH = 3


class SelectionType(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    BUY_X_GET_Y = "buy_x_get_y"


class SelectedOption(BaseModel):
    """A chosen modifier option, optionally carrying nested modifier groups"""
    group_id: str
    group_name: Optional[str] = None
    option_id: str
    option_name: Optional[str] = None
    price_delta: Decimal = Decimal("0")
    child_groups: List["SelectedOptionGroup"] = Field(default_factory=list)

    class Config:
        frozen = True

    def total_price_delta(self) -> Decimal:
        """Own delta plus the deltas of every option below it"""
        total = self.price_delta
        for group in self.child_groups:
            for option in group.selected_options:
                total += option.total_price_delta()
        return total

    def depth(self) -> int:
        child_depths = [
            option.depth()
            for group in self.child_groups
            for option in group.selected_options
        ]
        return 1 + max(child_depths, default=0)


class SelectedOptionGroup(BaseModel):
    group_id: str
    group_name: Optional[str] = None
    selection_type: SelectionType = SelectionType.SINGLE
    selected_options: List[SelectedOption] = Field(default_factory=list)

    class Config:
        frozen = True


SelectedOption.model_rebuild()


class OrderItemInput(BaseModel):
    """A requested order line as submitted by the caller.

    Quantity and prices are checked by the order service so that they
    surface as the same InvalidInput error on every entry point.
    """
    product_id: str = Field(..., min_length=1, max_length=64)
    product_name: str = Field(..., min_length=1, max_length=255)
    base_price: Decimal
    quantity: int
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    variant_price_delta: Decimal = Decimal("0")
    selected_options: List[SelectedOption] = Field(default_factory=list)
    notes: Optional[str] = None

    class Config:
        frozen = True

    @field_validator("selected_options")
    @classmethod
    def check_modifier_depth(cls, options: List[SelectedOption]) -> List[SelectedOption]:
        for option in options:
            if option.depth() > MAX_MODIFIER_DEPTH:
                raise ValueError(
                    f"Modifier nesting deeper than {MAX_MODIFIER_DEPTH} levels "
                    f"under option '{option.option_id}'"
                )
        return options


class AppliedDiscount(BaseModel):
    """A discount already resolved by the caller; only amount_saved is priced"""
    discount_rule_id: str
    discount_name: str
    discount_type: DiscountType
    discount_value: Decimal
    amount_saved: Decimal = Field(..., ge=0)

    class Config:
        frozen = True
