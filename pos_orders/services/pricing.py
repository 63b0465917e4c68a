"""
Pricing calculator
Turns requested order lines, rates and pre-resolved discounts into a full
price breakdown. Pure: no I/O, no clock, same output for the same input.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator, List, Optional, Sequence

from pos_orders.schemas.orders import AppliedDiscount, OrderItemInput, SelectedOption
from pos_orders.schemas.pricing import ItemPriceBreakdown, PriceCalculation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_money(amount: Decimal) -> Decimal:
    """Round to cents, half up"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def flatten_selected_options(options: Iterable[SelectedOption]) -> Iterator[SelectedOption]:
    """Depth-first walk over selected options and everything nested under them"""
    for option in options:
        yield option
        for group in option.child_groups:
            yield from flatten_selected_options(group.selected_options)


class PricingCalculator:
    """Computes order pricing; shared verbatim by the create and update paths"""

    def options_delta(self, item: OrderItemInput) -> Decimal:
        return sum((option.total_price_delta() for option in item.selected_options), Decimal("0"))

    def item_price(self, item: OrderItemInput) -> Decimal:
        """Unit price. Not clamped: a negative result is returned as is."""
        return quantize_money(item.base_price + item.variant_price_delta + self.options_delta(item))

    def item_subtotal(self, item: OrderItemInput) -> Decimal:
        return quantize_money(self.item_price(item) * item.quantity)

    def price_item(self, item: OrderItemInput) -> ItemPriceBreakdown:
        item_price = self.item_price(item)
        return ItemPriceBreakdown(
            product_id=item.product_id,
            product_name=item.product_name,
            base_price=quantize_money(item.base_price),
            variant_delta=quantize_money(item.variant_price_delta),
            options_delta=quantize_money(self.options_delta(item)),
            item_price=item_price,
            quantity=item.quantity,
            item_subtotal=quantize_money(item_price * item.quantity),
        )

    def calculate(
        self,
        items: Sequence[OrderItemInput],
        tax_rate: Decimal,
        service_charge_rate: Decimal,
        discounts: Optional[Sequence[AppliedDiscount]] = None
    ) -> PriceCalculation:
        """
        Price an item list.

        Args:
            items: Requested order lines
            tax_rate: Fraction applied to the discounted subtotal, e.g. 0.1
            service_charge_rate: Fraction applied to the discounted subtotal
            discounts: Pre-resolved discounts; only amount_saved is used

        Returns:
            PriceCalculation with per-item breakdown and order totals
        """
        discounts = list(discounts or [])
        breakdown: List[ItemPriceBreakdown] = [self.price_item(item) for item in items]

        subtotal = quantize_money(sum((line.item_subtotal for line in breakdown), ZERO))
        total_discount = quantize_money(sum((d.amount_saved for d in discounts), ZERO))
        subtotal_after_discount = max(ZERO, subtotal - total_discount)

        tax_amount = quantize_money(subtotal_after_discount * tax_rate)
        service_charge_amount = quantize_money(subtotal_after_discount * service_charge_rate)
        total_amount = subtotal_after_discount + tax_amount + service_charge_amount

        return PriceCalculation(
            items=breakdown,
            subtotal=subtotal,
            discounts=discounts,
            total_discount=total_discount,
            subtotal_after_discount=subtotal_after_discount,
            tax_rate=Decimal(tax_rate),
            tax_amount=tax_amount,
            service_charge_rate=Decimal(service_charge_rate),
            service_charge_amount=service_charge_amount,
            total_amount=total_amount,
        )
