"""Form validation for checkout steps."""

import re
from dataclasses import fields

from .models import BillingAddress, ShippingAddress

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[\d\s().-]+$")
MIN_PHONE_DIGITS = 7

FIELD_LABELS = {
    "full_name": "Full name",
    "email": "Email",
    "phone": "Phone",
    "address": "Street address",
    "city": "City",
    "state": "State",
    "zip_code": "ZIP code",
    "country": "Country",
}


def _required(record) -> dict[str, str]:
    errors: dict[str, str] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if not isinstance(value, str) or not value.strip():
            errors[f.name] = f"{FIELD_LABELS.get(f.name, f.name)} is required"
    return errors


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip()))


def is_valid_phone(value: str) -> bool:
    value = value.strip()
    if not PHONE_RE.match(value):
        return False
    return sum(ch.isdigit() for ch in value) >= MIN_PHONE_DIGITS


def validate_shipping_address(address: ShippingAddress) -> dict[str, str]:
    """
    Check a shipping address form.

    Returns:
        Mapping of field name to message; empty when the form is valid.
    """
    errors = _required(address)
    if "email" not in errors and not is_valid_email(address.email):
        errors["email"] = "Enter a valid email address"
    if "phone" not in errors and not is_valid_phone(address.phone):
        errors["phone"] = "Enter a valid phone number"
    return errors


def validate_billing_address(address: BillingAddress) -> dict[str, str]:
    return _required(address)
