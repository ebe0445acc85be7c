"""Tests for checkout form validation."""

import pytest

from cartflow.models import BillingAddress, ShippingAddress
from cartflow.validation import (
    is_valid_email,
    is_valid_phone,
    validate_billing_address,
    validate_shipping_address,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("jane@example.com", True),
        ("j.doe+tag@mail.example.org", True),
        ("jane@", False),
        ("jane example.com", False),
        ("@example.com", False),
    ],
)
def test_email(value, expected):
    assert is_valid_email(value) is expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("(555) 123-4567", True),
        ("+1 555 123 4567", True),
        ("555-1234", True),
        ("12345", False),
        ("call me", False),
    ],
)
def test_phone(value, expected):
    assert is_valid_phone(value) is expected


def test_valid_shipping(valid_shipping):
    assert validate_shipping_address(valid_shipping) == {}


def test_whitespace_counts_as_missing(valid_shipping):
    errors = validate_shipping_address(valid_shipping.replace(full_name="   "))
    assert errors == {"full_name": "Full name is required"}


def test_missing_email_not_also_reported_as_malformed():
    errors = validate_shipping_address(ShippingAddress())
    assert errors["email"] == "Email is required"


def test_billing_requires_all_fields():
    errors = validate_billing_address(BillingAddress(full_name="A"))
    assert set(errors) == {"address", "city", "state", "zip_code"}
