"""Inbound cart data: demo fixtures and JSON cart files."""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

from .errors import InvalidCartFileError, CartflowError
from .models import CartLineItem, CustomerProfile


def demo_items() -> list[CartLineItem]:
    """The storefront's sample cart."""
    return [
        CartLineItem(
            id="1",
            product_id="1",
            name="Wireless Headphones",
            unit_price=Decimal("99.99"),
            quantity=1,
        ),
        CartLineItem(
            id="2",
            product_id="2",
            name="Smart Watch",
            unit_price=Decimal("249.99"),
            quantity=2,
        ),
        CartLineItem(
            id="3",
            product_id="5",
            name="Laptop Stand",
            unit_price=Decimal("49.99"),
            quantity=1,
            in_stock=False,
        ),
    ]


def demo_profile() -> CustomerProfile:
    return CustomerProfile(
        full_name="John Doe",
        email="john.doe@example.com",
        phone="(555) 123-4567",
        address="123 Main Street",
        city="San Francisco",
        state="CA",
        zip_code="94102",
    )


def parse_cart(data: Any, source: str = "<data>") -> tuple[list[CartLineItem], list[CartLineItem]]:
    """
    Parse cart JSON into (active, saved) line lists.

    Accepts either a bare list of lines or an object with ``items`` and an
    optional ``saved_for_later`` list.

    Raises:
        InvalidCartFileError: If the shape or a line is invalid.
    """
    if isinstance(data, list):
        data = {"items": data}
    if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
        raise InvalidCartFileError(source, "expected a list of items or an object with 'items'")

    def _lines(raw: list) -> list[CartLineItem]:
        lines = []
        for i, entry in enumerate(raw):
            if not isinstance(entry, dict):
                raise InvalidCartFileError(source, f"item {i} is not an object")
            try:
                lines.append(CartLineItem.from_dict(entry))
            except KeyError as e:
                raise InvalidCartFileError(source, f"item {i} is missing {e.args[0]!r}") from None
            except CartflowError as e:
                raise InvalidCartFileError(source, str(e)) from None
            except (ArithmeticError, TypeError, ValueError) as e:
                raise InvalidCartFileError(source, f"item {i}: {e}") from None
        return lines

    return _lines(data.get("items", [])), _lines(data.get("saved_for_later", []))


def load_cart_file(path: Path) -> tuple[list[CartLineItem], list[CartLineItem]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise InvalidCartFileError(str(path), e.strerror or str(e)) from None
    except json.JSONDecodeError as e:
        raise InvalidCartFileError(str(path), f"invalid JSON: {e.msg}") from None
    return parse_cart(data, str(path))
