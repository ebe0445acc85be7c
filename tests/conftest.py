"""Pytest fixtures for cartflow tests."""

import json
from decimal import Decimal

import pytest

from cartflow.cart import CartStore
from cartflow.checkout import CheckoutWizard
from cartflow.models import CartLineItem, ShippingAddress


def make_item(line_id: str, price: str, quantity: int = 1, in_stock: bool = True) -> CartLineItem:
    """Build a line item with a product id matching its line id."""
    return CartLineItem(
        id=line_id,
        product_id=f"p{line_id}",
        name=f"Product {line_id}",
        unit_price=Decimal(price),
        quantity=quantity,
        in_stock=in_stock,
    )


@pytest.fixture
def sample_items():
    """Headphones x1 and smart watch x2: subtotal 599.97."""
    return [
        make_item("1", "99.99", 1),
        make_item("2", "249.99", 2),
    ]


@pytest.fixture
def cart(sample_items):
    return CartStore(sample_items)


@pytest.fixture
def valid_shipping():
    return ShippingAddress(
        full_name="Jane Smith",
        email="jane@example.com",
        phone="555-123-4567",
        address="1 Market St",
        city="Portland",
        state="OR",
        zip_code="97201",
        country="United States",
    )


@pytest.fixture
def wizard(cart, valid_shipping):
    """A checkout on the shipping step with a valid address filled in."""
    return CheckoutWizard(cart, shipping_address=valid_shipping)


@pytest.fixture
def review_wizard(wizard):
    """A checkout advanced to the review step."""
    for _ in range(4):
        wizard.continue_step()
    return wizard


@pytest.fixture
def cart_file(tmp_path, sample_items):
    """A cart JSON file with the sample items and one saved line."""
    path = tmp_path / "cart.json"
    data = {
        "items": [item.to_dict() for item in sample_items],
        "saved_for_later": [make_item("9", "15.00").to_dict()],
    }
    path.write_text(json.dumps(data))
    return path
