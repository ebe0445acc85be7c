"""Runtime settings for the API and CLI, read from environment variables."""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from .pricing import PricingRules

ENV_PREFIX = "CARTFLOW_"

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(ENV_PREFIX + name, default)
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


@dataclass
class Settings:
    log_level: str = "WARNING"
    rules: PricingRules = field(default_factory=PricingRules)
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from ``CARTFLOW_*`` variables.

        Recognised: LOG_LEVEL, TAX_RATE, PROMO_RATE, FREE_SHIPPING_THRESHOLD,
        FLAT_SHIPPING_FEE, CORS_ORIGINS (comma separated).
        """
        defaults = PricingRules()
        rules = PricingRules(
            tax_rate=_env_decimal("TAX_RATE", str(defaults.tax_rate)),
            promo_rate=_env_decimal("PROMO_RATE", str(defaults.promo_rate)),
            free_shipping_threshold=_env_decimal(
                "FREE_SHIPPING_THRESHOLD", str(defaults.free_shipping_threshold)
            ),
            flat_shipping_fee=_env_decimal("FLAT_SHIPPING_FEE", str(defaults.flat_shipping_fee)),
        )
        origins = os.environ.get(ENV_PREFIX + "CORS_ORIGINS")
        cors_origins = (
            [o.strip() for o in origins.split(",") if o.strip()]
            if origins
            else list(DEFAULT_CORS_ORIGINS)
        )
        return cls(
            log_level=os.environ.get(ENV_PREFIX + "LOG_LEVEL", "WARNING").upper(),
            rules=rules,
            cors_origins=cors_origins,
        )
