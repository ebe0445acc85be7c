"""Order payload and the order-submission boundary."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from .errors import OrderSubmissionError
from .models import (
    BillingAddress,
    CartLineItem,
    PriceBreakdown,
    ShippingAddress,
    ShippingMethod,
    _utc_now,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderPayload:
    """Everything the external order API needs to place an order."""

    shipping_address: ShippingAddress
    billing_address: BillingAddress
    shipping_method: ShippingMethod
    items: tuple[CartLineItem, ...]
    breakdown: PriceBreakdown
    promo_code: str | None = None
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "shipping_address": self.shipping_address.to_dict(),
            "billing_address": self.billing_address.to_dict(),
            "shipping_method": self.shipping_method.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "totals": self.breakdown.rounded().to_dict(),
            "created_at": self.created_at,
        }
        if self.promo_code is not None:
            result["promo_code"] = self.promo_code
        return result


@dataclass(frozen=True)
class OrderConfirmation:
    order_number: str
    placed_at: str
    email: str
    estimated_delivery: str
    total: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_number": self.order_number,
            "placed_at": self.placed_at,
            "email": self.email,
            "estimated_delivery": self.estimated_delivery,
            "total": self.total,
        }


class OrderSubmitter(Protocol):
    """Protocol for the external order-processing API.

    Retries and idempotency are the implementation's concern.
    """

    def submit(self, payload: OrderPayload) -> OrderConfirmation:
        """Hand over a completed order.

        Raises:
            OrderSubmissionError: If the order is rejected.
        """
        ...


class StubOrderSubmitter:
    """In-memory submitter that accepts every order and numbers it sequentially."""

    def __init__(self, start: int = 1, reject_reason: str | None = None):
        self._next = start
        self._mutex = threading.Lock()
        self.reject_reason = reject_reason
        self.submitted: list[OrderPayload] = []

    def _order_number(self) -> str:
        year = datetime.now(timezone.utc).year
        number = f"ORD-{year}-{self._next:05d}"
        self._next += 1
        return number

    def submit(self, payload: OrderPayload) -> OrderConfirmation:
        if self.reject_reason:
            raise OrderSubmissionError(self.reject_reason)

        with self._mutex:
            self.submitted.append(payload)
            order_number = self._order_number()
        confirmation = OrderConfirmation(
            order_number=order_number,
            placed_at=_utc_now(),
            email=payload.shipping_address.email,
            estimated_delivery=payload.shipping_method.lead_time,
            total=str(payload.breakdown.rounded().total),
        )
        logger.info(
            "order %s accepted: %d lines, total %s",
            confirmation.order_number,
            len(payload.items),
            confirmation.total,
        )
        return confirmation
