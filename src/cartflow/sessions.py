"""Shopping sessions: one cart and at most one checkout per session."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from .cart import CartStore
from .checkout import CheckoutWizard
from .errors import CheckoutNotStartedError, OutOfStockError, SessionNotFoundError
from .models import CartLineItem, CustomerProfile, _generate_id, _utc_now
from .orders import OrderConfirmation, OrderSubmitter, StubOrderSubmitter
from .pricing import DEFAULT_RULES, PricingRules

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """
    A single shopper's state.

    This is the caller the cart and checkout expect: it enforces the stock
    rules the storefront applies by disabling controls.
    """

    id: str
    cart: CartStore
    profile: CustomerProfile | None = None
    checkout: CheckoutWizard | None = None
    created_at: str = field(default_factory=_utc_now)
    _mutex: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False, compare=False)

    @contextmanager
    def lock(self) -> Iterator["Session"]:
        """Hold the session exclusively for a read-modify-write sequence."""
        with self._mutex:
            yield self

    def update_quantity(self, line_id: str, delta: int) -> bool:
        item = next((i for i in self.cart.active if i.id == line_id), None)
        if item is not None and not item.in_stock:
            raise OutOfStockError(line_id, item.name)
        return self.cart.update_quantity(line_id, delta)

    def move_to_cart(self, line_id: str) -> CartLineItem | None:
        item = self.cart.find(line_id)
        if item is not None and not item.in_stock and item not in self.cart.active:
            raise OutOfStockError(line_id, item.name)
        return self.cart.move_to_cart(line_id)

    def start_checkout(self) -> CheckoutWizard:
        """
        Begin a new checkout, discarding any unfinished one.

        Raises:
            CheckoutBlockedError: If the cart is empty or has out-of-stock lines.
        """
        self.cart.ensure_checkout_ready()
        prefill = self.profile.to_shipping_address() if self.profile else None
        self.checkout = CheckoutWizard(self.cart, shipping_address=prefill)
        logger.debug("session %s started checkout", self.id)
        return self.checkout

    def require_checkout(self) -> CheckoutWizard:
        if self.checkout is None:
            raise CheckoutNotStartedError(self.id)
        return self.checkout

    def place_order(self, submitter: OrderSubmitter) -> OrderConfirmation:
        """Place the order and drop the ordered lines and promo from the cart."""
        wizard = self.require_checkout()
        confirmation = wizard.place_order(submitter)
        for item in self.cart.snapshot():
            self.cart.remove(item.id)
        self.cart.clear_promo()
        return confirmation


class SessionRegistry:
    """In-memory sessions keyed by ID."""

    def __init__(
        self,
        rules: PricingRules = DEFAULT_RULES,
        submitter: OrderSubmitter | None = None,
    ):
        self.rules = rules
        self.submitter = submitter or StubOrderSubmitter()
        self._sessions: dict[str, Session] = {}
        self._mutex = threading.Lock()

    def create(
        self,
        items: Iterable[CartLineItem] = (),
        saved: Iterable[CartLineItem] = (),
        profile: CustomerProfile | None = None,
    ) -> Session:
        session = Session(
            id=_generate_id(),
            cart=CartStore(items, saved, rules=self.rules),
            profile=profile,
        )
        with self._mutex:
            self._sessions[session.id] = session
        logger.debug("created session %s", session.id)
        return session

    def get(self, session_id: str) -> Session:
        """
        Raises:
            SessionNotFoundError: If the session doesn't exist.
        """
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    def delete(self, session_id: str) -> Session:
        with self._mutex:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)
