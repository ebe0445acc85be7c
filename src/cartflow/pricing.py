"""Order total calculation.

Everything here is a pure function of its arguments. Totals are computed
exactly in Decimal and only rounded for display.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .models import CartLineItem, PriceBreakdown, to_decimal

ZERO = Decimal("0")


@dataclass(frozen=True)
class PricingRules:
    """Business constants for the cart and checkout totals."""

    tax_rate: Decimal = Decimal("0.08")
    promo_rate: Decimal = Decimal("0.10")
    free_shipping_threshold: Decimal = Decimal("100")
    flat_shipping_fee: Decimal = Decimal("9.99")
    # An empty cart shows no shipping line.
    charge_shipping_on_empty_cart: bool = False

    def __post_init__(self) -> None:
        for name in ("tax_rate", "promo_rate", "free_shipping_threshold", "flat_shipping_fee"):
            value = to_decimal(getattr(self, name))
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
            object.__setattr__(self, name, value)
        if self.promo_rate > 1:
            raise ValueError(f"promo_rate must be at most 1, got {self.promo_rate}")


DEFAULT_RULES = PricingRules()


def compute_subtotal(items: Iterable[CartLineItem]) -> Decimal:
    """Sum of unit price times quantity."""
    total = ZERO
    for item in items:
        if item.unit_price < 0 or item.quantity < 1:
            raise ValueError(f"line {item.id} has negative price or quantity below 1")
        total += item.line_total
    return total


def shipping_fee_for(subtotal: Decimal, item_count: int, rules: PricingRules = DEFAULT_RULES) -> Decimal:
    """
    Cart-page shipping fee.

    Free strictly above the threshold: exactly the threshold still pays the
    flat fee.
    """
    if item_count == 0 and not rules.charge_shipping_on_empty_cart:
        return ZERO
    if subtotal > rules.free_shipping_threshold:
        return ZERO
    return rules.flat_shipping_fee


def compute_breakdown(
    active_items: Iterable[CartLineItem],
    promo_applied: bool = False,
    shipping_fee_override: Decimal | None = None,
    rules: PricingRules = DEFAULT_RULES,
) -> PriceBreakdown:
    """
    Compute the price breakdown for the active cart lines.

    Args:
        active_items: Lines in the active cart (saved-for-later lines must not
            be passed).
        promo_applied: Whether the promo discount is active.
        shipping_fee_override: Fee of the shipping method chosen during
            checkout. When given it replaces the free-shipping threshold rule.
        rules: Pricing constants.

    Raises:
        ValueError: If a line has a negative price, a quantity below 1, or the
            override is negative.
    """
    items = list(active_items)
    subtotal = compute_subtotal(items)
    discount = subtotal * rules.promo_rate if promo_applied else ZERO

    # The threshold looks at the pre-discount subtotal.
    if shipping_fee_override is not None:
        shipping_fee = to_decimal(shipping_fee_override)
        if shipping_fee < 0:
            raise ValueError(f"shipping fee must be non-negative, got {shipping_fee}")
    else:
        shipping_fee = shipping_fee_for(subtotal, len(items), rules)

    tax = (subtotal - discount) * rules.tax_rate
    total = subtotal - discount + shipping_fee + tax
    return PriceBreakdown(
        subtotal=subtotal,
        discount=discount,
        shipping_fee=shipping_fee,
        tax=tax,
        total=total,
    )
