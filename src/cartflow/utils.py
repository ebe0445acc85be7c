"""Formatting helpers for cartflow output."""

from decimal import Decimal

from .checkout import CheckoutWizard
from .models import CartLineItem, PriceBreakdown, quantize_money


def format_money(value: Decimal) -> str:
    """Format as dollars, e.g. ``$1,234.50`` or ``-$5.00``."""
    amount = quantize_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_line_item(item: CartLineItem) -> str:
    stock = "" if item.in_stock else "  [out of stock]"
    return (
        f"  {item.id:>4}  {item.name:<28} {item.quantity:>3} x {format_money(item.unit_price):>10}"
        f"  = {format_money(item.line_total):>10}{stock}"
    )


def format_breakdown(breakdown: PriceBreakdown, promo_code: str | None = None) -> str:
    """
    Render a price breakdown as aligned summary lines.

    Discount is only shown when non-zero; a zero shipping fee prints as FREE.
    """
    rows = [("Subtotal", format_money(breakdown.subtotal))]
    if breakdown.discount:
        label = f"Discount ({promo_code})" if promo_code else "Discount"
        rows.append((label, format_money(-breakdown.discount)))
    shipping = "FREE" if breakdown.shipping_fee == 0 else format_money(breakdown.shipping_fee)
    rows.append(("Shipping", shipping))
    rows.append(("Tax", format_money(breakdown.tax)))
    rows.append(("Total", format_money(breakdown.total)))

    width = max(len(label) for label, _ in rows)
    return "\n".join(f"  {label:<{width}}  {value:>12}" for label, value in rows)


def format_progress(wizard: CheckoutWizard) -> str:
    """One-line step indicator, e.g. ``[x] Shipping > [>] Billing > [ ] Delivery``."""
    parts = []
    for p in wizard.progress():
        mark = ">" if p.current else ("x" if p.reached else " ")
        parts.append(f"[{mark}] {p.name}")
    return " > ".join(parts)
