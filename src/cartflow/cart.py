"""Cart store: active lines, saved-for-later lines and the promo code."""

import logging
from typing import Iterable

from .errors import CheckoutBlockedError, DuplicateLineItemError
from .models import CartLineItem, PriceBreakdown, PromoCode
from .pricing import DEFAULT_RULES, PricingRules, compute_breakdown

logger = logging.getLogger(__name__)


class CartStore:
    """
    Owns one session's cart.

    A line id lives in at most one of ``active`` and ``saved_for_later``.
    Mutations addressed to an unknown id are ignored, since callers only offer
    actions for lines they currently display.
    """

    def __init__(
        self,
        items: Iterable[CartLineItem] = (),
        saved: Iterable[CartLineItem] = (),
        rules: PricingRules = DEFAULT_RULES,
    ):
        self.active: list[CartLineItem] = []
        self.saved_for_later: list[CartLineItem] = []
        self.promo = PromoCode()
        self.rules = rules
        for item in items:
            self.add_item(item)
        for item in saved:
            self._ensure_unique(item.id)
            self.saved_for_later.append(item)

    # --- lookups ---

    def _ensure_unique(self, line_id: str) -> None:
        if self.find(line_id) is not None:
            raise DuplicateLineItemError(line_id)

    def _index(self, items: list[CartLineItem], line_id: str) -> int | None:
        for i, item in enumerate(items):
            if item.id == line_id:
                return i
        return None

    def find(self, line_id: str) -> CartLineItem | None:
        """Return the line with this id from either list, or None."""
        for items in (self.active, self.saved_for_later):
            idx = self._index(items, line_id)
            if idx is not None:
                return items[idx]
        return None

    @property
    def item_count(self) -> int:
        """Number of active lines."""
        return len(self.active)

    @property
    def unit_count(self) -> int:
        """Sum of quantities across active lines."""
        return sum(item.quantity for item in self.active)

    @property
    def is_empty(self) -> bool:
        return not self.active

    @property
    def has_out_of_stock(self) -> bool:
        return any(not item.in_stock for item in self.active)

    # --- mutations ---

    def add_item(self, item: CartLineItem) -> None:
        """Append a new line to the active cart.

        Raises:
            DuplicateLineItemError: If the id is already in either list.
        """
        self._ensure_unique(item.id)
        self.active.append(item)
        logger.debug("added line %s (%s x%d)", item.id, item.product_id, item.quantity)

    def update_quantity(self, line_id: str, delta: int) -> bool:
        """
        Change an active line's quantity by ``delta``.

        A result below 1 is rejected without changing anything. Returns True
        if the quantity changed.
        """
        idx = self._index(self.active, line_id)
        if idx is None:
            return False
        item = self.active[idx]
        new_quantity = item.quantity + delta
        if new_quantity < 1 or delta == 0:
            return False
        self.active[idx] = item.with_quantity(new_quantity)
        logger.debug("line %s quantity %d -> %d", line_id, item.quantity, new_quantity)
        return True

    def set_quantity(self, line_id: str, quantity: int) -> bool:
        """Set an absolute quantity; same rules as ``update_quantity``."""
        item = self.find(line_id)
        if item is None:
            return False
        return self.update_quantity(line_id, quantity - item.quantity)

    def remove(self, line_id: str) -> CartLineItem | None:
        """Delete the line from whichever list holds it."""
        for items in (self.active, self.saved_for_later):
            idx = self._index(items, line_id)
            if idx is not None:
                logger.debug("removed line %s", line_id)
                return items.pop(idx)
        return None

    def save_for_later(self, line_id: str) -> CartLineItem | None:
        """Move an active line to the end of the saved list, unchanged."""
        idx = self._index(self.active, line_id)
        if idx is None:
            return None
        item = self.active.pop(idx)
        self.saved_for_later.append(item)
        logger.debug("saved line %s for later", line_id)
        return item

    def move_to_cart(self, line_id: str) -> CartLineItem | None:
        """Move a saved line back to the end of the active cart, unchanged.

        Stock is not checked here; callers block out-of-stock items.
        """
        idx = self._index(self.saved_for_later, line_id)
        if idx is None:
            return None
        item = self.saved_for_later.pop(idx)
        self.active.append(item)
        logger.debug("moved line %s to cart", line_id)
        return item

    def clear(self) -> None:
        """Empty both lists and reset the promo code."""
        self.active.clear()
        self.saved_for_later.clear()
        self.promo.clear()

    # --- promo ---

    def apply_promo(self, code: str) -> bool:
        already = self.promo.applied
        applied = self.promo.apply(code)
        if applied and not already:
            logger.info("promo code %r applied", self.promo.code)
        return applied

    def clear_promo(self) -> None:
        self.promo.clear()

    # --- totals ---

    def breakdown(self, shipping_fee_override=None) -> PriceBreakdown:
        """Totals for the current active lines. Always recomputed."""
        return compute_breakdown(
            self.active,
            promo_applied=self.promo.applied,
            shipping_fee_override=shipping_fee_override,
            rules=self.rules,
        )

    def ensure_checkout_ready(self) -> None:
        """
        Raises:
            CheckoutBlockedError: If the cart is empty or holds out-of-stock lines.
        """
        if self.is_empty:
            raise CheckoutBlockedError("cart is empty")
        out_of_stock = [item.id for item in self.active if not item.in_stock]
        if out_of_stock:
            raise CheckoutBlockedError("cart has out-of-stock items", out_of_stock)

    def snapshot(self) -> list[CartLineItem]:
        """Copy of the active lines for handing to checkout or an order payload."""
        return list(self.active)

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self.active],
            "saved_for_later": [item.to_dict() for item in self.saved_for_later],
            "promo": self.promo.to_dict(),
            "item_count": self.item_count,
        }
