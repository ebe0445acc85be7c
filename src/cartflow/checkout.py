"""Checkout wizard state machine."""

import logging
from dataclasses import dataclass
from enum import Enum

from .cart import CartStore
from .errors import (
    CheckoutCompletedError,
    InvalidTransitionError,
    StepValidationError,
    UnknownShippingMethodError,
)
from .models import (
    DEFAULT_SHIPPING_METHOD,
    SHIPPING_METHODS,
    BillingAddress,
    CartLineItem,
    PriceBreakdown,
    ShippingAddress,
    ShippingMethod,
)
from .orders import OrderConfirmation, OrderPayload, OrderSubmitter
from .validation import validate_billing_address, validate_shipping_address

logger = logging.getLogger(__name__)


class CheckoutStep(str, Enum):
    SHIPPING = "shipping"
    BILLING = "billing"
    SHIPPING_METHOD = "shipping-method"
    PAYMENT = "payment"
    REVIEW = "review"


STEP_ORDER: tuple[CheckoutStep, ...] = tuple(CheckoutStep)

STEP_NAMES = {
    CheckoutStep.SHIPPING: "Shipping",
    CheckoutStep.BILLING: "Billing",
    CheckoutStep.SHIPPING_METHOD: "Delivery",
    CheckoutStep.PAYMENT: "Payment",
    CheckoutStep.REVIEW: "Review",
}

CONTINUE = "continue"
BACK = "back"
EDIT = "edit"

# (current step, action) -> next step. Edits are keyed by their target.
TRANSITIONS: dict[tuple[CheckoutStep, str], CheckoutStep] = {
    (CheckoutStep.SHIPPING, CONTINUE): CheckoutStep.BILLING,
    (CheckoutStep.BILLING, CONTINUE): CheckoutStep.SHIPPING_METHOD,
    (CheckoutStep.SHIPPING_METHOD, CONTINUE): CheckoutStep.PAYMENT,
    (CheckoutStep.PAYMENT, CONTINUE): CheckoutStep.REVIEW,
    (CheckoutStep.BILLING, BACK): CheckoutStep.SHIPPING,
    (CheckoutStep.SHIPPING_METHOD, BACK): CheckoutStep.BILLING,
    (CheckoutStep.PAYMENT, BACK): CheckoutStep.SHIPPING_METHOD,
    (CheckoutStep.REVIEW, BACK): CheckoutStep.PAYMENT,
}

EDIT_TARGETS = frozenset(
    {
        CheckoutStep.SHIPPING,
        CheckoutStep.BILLING,
        CheckoutStep.SHIPPING_METHOD,
        CheckoutStep.PAYMENT,
    }
)


@dataclass(frozen=True)
class StepProgress:
    step: CheckoutStep
    name: str
    reached: bool
    current: bool


class CheckoutWizard:
    """
    Drives one checkout flow over a session's cart.

    Steps only move one place forward (``continue_step``) or backward
    (``back``). The review step can additionally jump straight back to any
    earlier step with ``edit``; getting back to review then means continuing
    through every step after the edited one. Form data is never reset by
    navigation.
    """

    def __init__(
        self,
        cart: CartStore,
        shipping_address: ShippingAddress | None = None,
        same_as_shipping: bool = True,
    ):
        self.cart = cart
        self.step = CheckoutStep.SHIPPING
        self.shipping_address = shipping_address or ShippingAddress()
        self.billing_address = BillingAddress()
        self.same_as_shipping = same_as_shipping
        self.shipping_method_id = DEFAULT_SHIPPING_METHOD
        self.errors: dict[str, str] = {}
        self.confirmation: OrderConfirmation | None = None
        self.order: OrderPayload | None = None

    @property
    def completed(self) -> bool:
        return self.confirmation is not None

    @property
    def shipping_method(self) -> ShippingMethod:
        return SHIPPING_METHODS[self.shipping_method_id]

    def _check_open(self) -> None:
        if self.confirmation is not None:
            raise CheckoutCompletedError(self.confirmation.order_number)

    def _move(self, action: str, target: CheckoutStep) -> CheckoutStep:
        logger.debug("checkout %s: %s -> %s", action, self.step.value, target.value)
        self.step = target
        self.errors = {}
        return target

    # --- form edits ---

    def update_shipping(self, **changes: str) -> ShippingAddress:
        self._check_open()
        self.shipping_address = self.shipping_address.replace(**changes)
        return self.shipping_address

    def update_billing(self, **changes: str) -> BillingAddress:
        self._check_open()
        self.billing_address = self.billing_address.replace(**changes)
        return self.billing_address

    def set_same_as_shipping(self, value: bool) -> None:
        self._check_open()
        self.same_as_shipping = value

    def select_shipping_method(self, method_id: str) -> ShippingMethod:
        """
        Raises:
            UnknownShippingMethodError: If ``method_id`` is not one of the offered methods.
        """
        self._check_open()
        if method_id not in SHIPPING_METHODS:
            raise UnknownShippingMethodError(method_id, list(SHIPPING_METHODS))
        self.shipping_method_id = method_id
        return self.shipping_method

    # --- navigation ---

    def _validate_current(self) -> dict[str, str]:
        if self.step is CheckoutStep.SHIPPING:
            return validate_shipping_address(self.shipping_address)
        if self.step is CheckoutStep.BILLING and not self.same_as_shipping:
            return validate_billing_address(self.billing_address)
        if self.step is CheckoutStep.SHIPPING_METHOD and self.shipping_method_id not in SHIPPING_METHODS:
            return {"shipping_method": "Select a shipping method"}
        return {}

    def continue_step(self) -> CheckoutStep:
        """
        Validate the current step's form and advance one step.

        With ``same_as_shipping`` set, continuing from billing overwrites the
        billing address with the shipping address.

        Raises:
            StepValidationError: If the form is invalid. The step is unchanged
                and ``errors`` holds the field messages.
            InvalidTransitionError: If called on the review step.
        """
        self._check_open()
        target = TRANSITIONS.get((self.step, CONTINUE))
        if target is None:
            raise InvalidTransitionError(self.step.value, CONTINUE)

        errors = self._validate_current()
        if errors:
            self.errors = errors
            logger.debug("checkout step %s invalid: %s", self.step.value, sorted(errors))
            raise StepValidationError(self.step.value, errors)

        if self.step is CheckoutStep.BILLING and self.same_as_shipping:
            self.billing_address = BillingAddress.from_shipping(self.shipping_address)

        return self._move(CONTINUE, target)

    def back(self) -> CheckoutStep:
        """Go back one step without validating or discarding anything."""
        self._check_open()
        target = TRANSITIONS.get((self.step, BACK))
        if target is None:
            raise InvalidTransitionError(self.step.value, BACK)
        return self._move(BACK, target)

    def edit(self, step: CheckoutStep | str) -> CheckoutStep:
        """
        Jump from review back to ``step``.

        Raises:
            InvalidTransitionError: If not on review, or ``step`` is not editable.
        """
        self._check_open()
        try:
            target = CheckoutStep(step)
        except ValueError:
            raise InvalidTransitionError(self.step.value, EDIT, str(step)) from None
        if self.step is not CheckoutStep.REVIEW or target not in EDIT_TARGETS:
            raise InvalidTransitionError(self.step.value, EDIT, target.value)
        return self._move(EDIT, target)

    def progress(self) -> list[StepProgress]:
        """Steps with display names, marking those at or before the current one."""
        current = STEP_ORDER.index(self.step)
        return [
            StepProgress(
                step=step,
                name=STEP_NAMES[step],
                reached=i <= current,
                current=i == current,
            )
            for i, step in enumerate(STEP_ORDER)
        ]

    # --- totals and order ---

    @property
    def items(self) -> list[CartLineItem]:
        """Lines being checked out; the ordered lines once the order is placed."""
        if self.order is not None:
            return list(self.order.items)
        return self.cart.snapshot()

    def breakdown(self) -> PriceBreakdown:
        """Cart totals with the selected method's fee as the shipping line."""
        if self.order is not None:
            return self.order.breakdown
        return self.cart.breakdown(shipping_fee_override=self.shipping_method.fee)

    def build_order(self) -> OrderPayload:
        promo = self.cart.promo
        return OrderPayload(
            shipping_address=self.shipping_address,
            billing_address=self.billing_address,
            shipping_method=self.shipping_method,
            items=tuple(self.cart.snapshot()),
            breakdown=self.breakdown(),
            promo_code=promo.code if promo.applied else None,
        )

    def place_order(self, submitter: OrderSubmitter) -> OrderConfirmation:
        """
        Hand the assembled order to ``submitter``. Only allowed from review,
        and only while the cart is still non-empty and fully in stock.

        If the submitter raises, the wizard stays on review and the error
        propagates.

        Raises:
            CheckoutBlockedError: If the cart was emptied or gained an
                out-of-stock line since checkout started.
        """
        self._check_open()
        if self.step is not CheckoutStep.REVIEW:
            raise InvalidTransitionError(self.step.value, "place order")
        self.cart.ensure_checkout_ready()
        payload = self.build_order()
        confirmation = submitter.submit(payload)
        self.order = payload
        self.confirmation = confirmation
        logger.info("order %s placed", confirmation.order_number)
        return confirmation

    def to_dict(self) -> dict:
        result = {
            "step": self.step.value,
            "shipping_address": self.shipping_address.to_dict(),
            "billing_address": self.billing_address.to_dict(),
            "same_as_shipping": self.same_as_shipping,
            "shipping_method": self.shipping_method.to_dict(),
            "errors": dict(self.errors),
            "totals": self.breakdown().rounded().to_dict(),
            "completed": self.completed,
        }
        if self.confirmation is not None:
            result["confirmation"] = self.confirmation.to_dict()
        return result
