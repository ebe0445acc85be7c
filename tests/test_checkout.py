"""Tests for the checkout wizard."""

from decimal import Decimal

import pytest

from cartflow.checkout import STEP_ORDER, CheckoutStep, CheckoutWizard
from cartflow.errors import (
    CheckoutBlockedError,
    CheckoutCompletedError,
    InvalidTransitionError,
    OrderSubmissionError,
    StepValidationError,
    UnknownShippingMethodError,
)
from cartflow.models import BillingAddress, ShippingAddress
from cartflow.orders import StubOrderSubmitter

from .conftest import make_item


class TestForwardChain:
    def test_reaches_review_in_four_steps(self, wizard):
        seen = [wizard.step]
        for _ in range(4):
            seen.append(wizard.continue_step())
        assert seen == list(STEP_ORDER)
        assert wizard.step is CheckoutStep.REVIEW

    def test_continue_from_review_rejected(self, review_wizard):
        with pytest.raises(InvalidTransitionError):
            review_wizard.continue_step()

    def test_defaults(self, cart):
        wizard = CheckoutWizard(cart)
        assert wizard.step is CheckoutStep.SHIPPING
        assert wizard.same_as_shipping is True
        assert wizard.shipping_method_id == "standard"
        assert wizard.shipping_address.country == "United States"


class TestShippingStep:
    def test_empty_form_stays_on_step(self, cart):
        wizard = CheckoutWizard(cart)
        with pytest.raises(StepValidationError) as exc_info:
            wizard.continue_step()

        assert wizard.step is CheckoutStep.SHIPPING
        errors = exc_info.value.field_errors
        assert set(errors) == {"full_name", "email", "phone", "address", "city", "state", "zip_code"}
        assert wizard.errors == errors

    def test_invalid_email(self, wizard):
        wizard.update_shipping(email="not-an-email")
        with pytest.raises(StepValidationError) as exc_info:
            wizard.continue_step()
        assert set(exc_info.value.field_errors) == {"email"}

    def test_errors_cleared_after_success(self, wizard):
        wizard.update_shipping(city="")
        with pytest.raises(StepValidationError):
            wizard.continue_step()
        wizard.update_shipping(city="Portland")
        wizard.continue_step()
        assert wizard.errors == {}


class TestBillingStep:
    def test_same_as_shipping_copies_every_field(self, wizard, valid_shipping):
        wizard.continue_step()
        wizard.update_billing(full_name="Someone Else", city="Elsewhere")
        wizard.continue_step()

        billing = wizard.billing_address
        assert billing == BillingAddress.from_shipping(valid_shipping)
        for name in ("full_name", "address", "city", "state", "zip_code", "country"):
            assert getattr(billing, name) == getattr(valid_shipping, name)

    def test_separate_billing_validated(self, wizard):
        wizard.continue_step()
        wizard.set_same_as_shipping(False)
        with pytest.raises(StepValidationError) as exc_info:
            wizard.continue_step()
        assert "full_name" in exc_info.value.field_errors
        assert wizard.step is CheckoutStep.BILLING

    def test_separate_billing_kept(self, wizard):
        wizard.continue_step()
        wizard.set_same_as_shipping(False)
        wizard.update_billing(
            full_name="Acme Corp",
            address="9 Billing Rd",
            city="Austin",
            state="TX",
            zip_code="73301",
        )
        wizard.continue_step()
        assert wizard.billing_address.full_name == "Acme Corp"
        assert wizard.step is CheckoutStep.SHIPPING_METHOD


class TestShippingMethod:
    def test_select(self, wizard):
        method = wizard.select_shipping_method("express")
        assert method.fee == Decimal("19.99")
        assert method.lead_time == "2-3 business days"

    def test_unknown_method(self, wizard):
        with pytest.raises(UnknownShippingMethodError):
            wizard.select_shipping_method("teleport")
        assert wizard.shipping_method_id == "standard"

    def test_express_fee_ignores_free_threshold(self, wizard):
        # 599.97 ships free on the cart page, but checkout charges the method fee
        assert wizard.cart.breakdown().shipping_fee == 0
        wizard.select_shipping_method("express")
        assert wizard.breakdown().shipping_fee == Decimal("19.99")

    def test_checkout_carries_cart_promo(self, wizard):
        wizard.cart.apply_promo("SAVE10")
        assert wizard.breakdown().discount == Decimal("59.997")


class TestBack:
    def test_back_one_step(self, wizard):
        wizard.continue_step()
        wizard.continue_step()
        assert wizard.back() is CheckoutStep.BILLING
        assert wizard.back() is CheckoutStep.SHIPPING

    def test_back_from_first_step_rejected(self, wizard):
        with pytest.raises(InvalidTransitionError):
            wizard.back()

    def test_back_keeps_data(self, wizard, valid_shipping):
        wizard.continue_step()
        wizard.back()
        assert wizard.shipping_address == valid_shipping

    def test_review_back_to_payment(self, review_wizard):
        assert review_wizard.back() is CheckoutStep.PAYMENT


class TestEditFromReview:
    def test_edit_jumps_to_step(self, review_wizard):
        assert review_wizard.edit("billing") is CheckoutStep.BILLING

    def test_edit_shipping_rewalks_chain(self, review_wizard):
        review_wizard.select_shipping_method("overnight")
        review_wizard.edit(CheckoutStep.SHIPPING)
        review_wizard.update_shipping(city="Seattle")

        steps = [review_wizard.continue_step() for _ in range(4)]
        assert steps == [
            CheckoutStep.BILLING,
            CheckoutStep.SHIPPING_METHOD,
            CheckoutStep.PAYMENT,
            CheckoutStep.REVIEW,
        ]
        # later data survives, and billing was re-copied
        assert review_wizard.shipping_method_id == "overnight"
        assert review_wizard.billing_address.city == "Seattle"

    def test_edit_only_from_review(self, wizard):
        wizard.continue_step()
        with pytest.raises(InvalidTransitionError):
            wizard.edit("shipping")

    def test_edit_review_rejected(self, review_wizard):
        with pytest.raises(InvalidTransitionError):
            review_wizard.edit("review")

    def test_edit_unknown_step_rejected(self, review_wizard):
        with pytest.raises(InvalidTransitionError):
            review_wizard.edit("gift-wrap")
        assert review_wizard.step is CheckoutStep.REVIEW


class TestProgress:
    def test_names_and_reached(self, wizard):
        wizard.continue_step()
        progress = wizard.progress()

        assert [p.name for p in progress] == ["Shipping", "Billing", "Delivery", "Payment", "Review"]
        assert [p.reached for p in progress] == [True, True, False, False, False]
        assert [p.current for p in progress] == [False, True, False, False, False]


class TestPlaceOrder:
    def test_only_from_review(self, wizard):
        with pytest.raises(InvalidTransitionError):
            wizard.place_order(StubOrderSubmitter())

    def test_payload(self, review_wizard, valid_shipping):
        submitter = StubOrderSubmitter()
        confirmation = review_wizard.place_order(submitter)

        payload = submitter.submitted[0]
        assert payload.shipping_address == valid_shipping
        assert payload.billing_address == BillingAddress.from_shipping(valid_shipping)
        assert payload.shipping_method.id == "standard"
        assert [item.id for item in payload.items] == ["1", "2"]
        assert payload.breakdown.shipping_fee == Decimal("9.99")
        assert confirmation.email == valid_shipping.email
        assert confirmation.order_number.startswith("ORD-")
        assert review_wizard.completed

    def test_completed_checkout_is_closed(self, review_wizard):
        review_wizard.place_order(StubOrderSubmitter())
        with pytest.raises(CheckoutCompletedError):
            review_wizard.back()
        with pytest.raises(CheckoutCompletedError):
            review_wizard.place_order(StubOrderSubmitter())

    def test_totals_frozen_after_order(self, review_wizard):
        review_wizard.place_order(StubOrderSubmitter())
        placed = review_wizard.breakdown()
        review_wizard.cart.clear()
        assert review_wizard.breakdown() == placed
        assert len(review_wizard.items) == 2

    def test_emptied_cart_blocks_order(self, review_wizard):
        submitter = StubOrderSubmitter()
        review_wizard.cart.remove("1")
        review_wizard.cart.remove("2")
        with pytest.raises(CheckoutBlockedError):
            review_wizard.place_order(submitter)
        assert submitter.submitted == []
        assert review_wizard.step is CheckoutStep.REVIEW
        assert not review_wizard.completed

    def test_out_of_stock_line_added_during_checkout_blocks_order(self, review_wizard):
        submitter = StubOrderSubmitter()
        review_wizard.cart.add_item(make_item("3", "5.00", in_stock=False))
        with pytest.raises(CheckoutBlockedError) as exc_info:
            review_wizard.place_order(submitter)
        assert exc_info.value.line_ids == ["3"]
        assert submitter.submitted == []

        review_wizard.cart.save_for_later("3")
        review_wizard.place_order(submitter)
        assert [item.id for item in submitter.submitted[0].items] == ["1", "2"]

    def test_submission_failure_stays_on_review(self, review_wizard):
        with pytest.raises(OrderSubmissionError):
            review_wizard.place_order(StubOrderSubmitter(reject_reason="payment declined"))
        assert review_wizard.step is CheckoutStep.REVIEW
        assert not review_wizard.completed


def test_prefilled_shipping_address(cart):
    prefill = ShippingAddress(full_name="Pre Filled", email="pre@example.com")
    wizard = CheckoutWizard(cart, shipping_address=prefill)
    assert wizard.shipping_address.full_name == "Pre Filled"
