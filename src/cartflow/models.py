"""Data models for cartflow."""

from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
import uuid

from .errors import InvalidLineItemError

CENTS = Decimal("0.01")


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new line/session ID."""
    return str(uuid.uuid4())


def to_decimal(value: Any) -> Decimal:
    """Coerce a price-like value to Decimal.

    Floats go through ``str`` so 99.99 stays 99.99 rather than its binary
    approximation.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value: Decimal) -> Decimal:
    """Round to whole cents, half-up."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartLineItem:
    """One entry in the cart or the saved-for-later list."""

    id: str  # line id, distinct from product_id
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int = 1
    in_stock: bool = True
    image_url: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        if not self.unit_price.is_finite():
            raise InvalidLineItemError(self.id, f"unit price must be a finite number, got {self.unit_price}")
        if self.unit_price < 0:
            raise InvalidLineItemError(self.id, f"negative unit price {self.unit_price}")
        if not isinstance(self.quantity, int) or self.quantity < 1:
            raise InvalidLineItemError(self.id, f"quantity must be >= 1, got {self.quantity}")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> "CartLineItem":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "in_stock": self.in_stock,
        }
        if self.image_url is not None:
            result["image_url"] = self.image_url
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLineItem":
        return cls(
            id=str(data["id"]),
            product_id=str(data.get("product_id", data["id"])),
            name=data["name"],
            unit_price=to_decimal(data["unit_price"]),
            quantity=data.get("quantity", 1),
            in_stock=data.get("in_stock", True),
            image_url=data.get("image_url"),
        )


@dataclass(frozen=True)
class ShippingAddress:
    """Where the order ships, plus contact details."""

    full_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "United States"

    def replace(self, **changes: str) -> "ShippingAddress":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingAddress":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class BillingAddress:
    full_name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "United States"

    @classmethod
    def from_shipping(cls, shipping: ShippingAddress) -> "BillingAddress":
        """Copy every billing field from a shipping address."""
        return cls(**{f.name: getattr(shipping, f.name) for f in fields(cls)})

    def replace(self, **changes: str) -> "BillingAddress":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BillingAddress":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class ShippingMethod:
    id: str
    label: str
    fee: Decimal
    lead_time: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "fee": str(self.fee),
            "lead_time": self.lead_time,
        }


SHIPPING_METHODS: dict[str, ShippingMethod] = {
    "standard": ShippingMethod("standard", "Standard Shipping", Decimal("9.99"), "5-7 business days"),
    "express": ShippingMethod("express", "Express Shipping", Decimal("19.99"), "2-3 business days"),
    "overnight": ShippingMethod("overnight", "Overnight Shipping", Decimal("29.99"), "Next business day"),
}

DEFAULT_SHIPPING_METHOD = "standard"


@dataclass(frozen=True)
class PriceBreakdown:
    """Derived order totals. Values are exact; use ``rounded()`` for display."""

    subtotal: Decimal
    discount: Decimal
    shipping_fee: Decimal
    tax: Decimal
    total: Decimal

    def rounded(self) -> "PriceBreakdown":
        return PriceBreakdown(
            subtotal=quantize_money(self.subtotal),
            discount=quantize_money(self.discount),
            shipping_fee=quantize_money(self.shipping_fee),
            tax=quantize_money(self.tax),
            total=quantize_money(self.total),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "shipping_fee": str(self.shipping_fee),
            "tax": str(self.tax),
            "total": str(self.total),
        }


@dataclass
class PromoCode:
    """A user-entered promo code and whether its discount is active."""

    code: str = ""
    applied: bool = False

    def apply(self, code: str | None = None) -> bool:
        """
        Activate the discount for a non-blank code.

        Returns True if the promo is applied after the call. Re-applying while
        already applied keeps the original code and changes nothing.
        """
        if self.applied:
            return True
        candidate = (self.code if code is None else code).strip()
        if not candidate:
            return False
        self.code = candidate
        self.applied = True
        return True

    def clear(self) -> None:
        self.code = ""
        self.applied = False

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "applied": self.applied}


@dataclass(frozen=True)
class CustomerProfile:
    """Defaults supplied by the external "current user" source."""

    full_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "United States"

    def to_shipping_address(self) -> ShippingAddress:
        return ShippingAddress(
            full_name=self.full_name,
            email=self.email,
            phone=self.phone,
            address=self.address,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            country=self.country,
        )
