"""Tests for formatting helpers and environment settings."""

from decimal import Decimal

import pytest

from cartflow.config import DEFAULT_CORS_ORIGINS, Settings
from cartflow.models import PriceBreakdown
from cartflow.utils import format_breakdown, format_money, format_progress


class TestFormatMoney:
    def test_thousands(self):
        assert format_money(Decimal("1234.5")) == "$1,234.50"

    def test_half_up(self):
        assert format_money(Decimal("0.005")) == "$0.01"

    def test_negative(self):
        assert format_money(Decimal("-5")) == "-$5.00"


class TestFormatBreakdown:
    def test_free_shipping_no_discount(self):
        text = format_breakdown(
            PriceBreakdown(
                subtotal=Decimal("599.97"),
                discount=Decimal("0"),
                shipping_fee=Decimal("0"),
                tax=Decimal("47.9976"),
                total=Decimal("647.9676"),
            )
        )
        assert "Discount" not in text
        assert "FREE" in text
        assert "$647.97" in text

    def test_discount_with_code(self):
        text = format_breakdown(
            PriceBreakdown(
                subtotal=Decimal("50"),
                discount=Decimal("5"),
                shipping_fee=Decimal("9.99"),
                tax=Decimal("3.60"),
                total=Decimal("58.59"),
            ),
            promo_code="SAVE10",
        )
        assert "Discount (SAVE10)" in text
        assert "-$5.00" in text
        assert "$9.99" in text


def test_format_progress(wizard):
    wizard.continue_step()
    assert format_progress(wizard) == (
        "[x] Shipping > [>] Billing > [ ] Delivery > [ ] Payment > [ ] Review"
    )


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("LOG_LEVEL", "TAX_RATE", "PROMO_RATE", "CORS_ORIGINS"):
            monkeypatch.delenv(f"CARTFLOW_{name}", raising=False)
        settings = Settings.from_env()
        assert settings.log_level == "WARNING"
        assert settings.rules.tax_rate == Decimal("0.08")
        assert settings.cors_origins == DEFAULT_CORS_ORIGINS

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("CARTFLOW_LOG_LEVEL", "debug")
        monkeypatch.setenv("CARTFLOW_TAX_RATE", "0.05")
        monkeypatch.setenv("CARTFLOW_FREE_SHIPPING_THRESHOLD", "50")
        monkeypatch.setenv("CARTFLOW_CORS_ORIGINS", "https://shop.example.com, ")
        settings = Settings.from_env()
        assert settings.log_level == "DEBUG"
        assert settings.rules.tax_rate == Decimal("0.05")
        assert settings.rules.free_shipping_threshold == Decimal("50")
        assert settings.cors_origins == ["https://shop.example.com"]

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("CARTFLOW_PROMO_RATE", "ten percent")
        with pytest.raises(ValueError, match="CARTFLOW_PROMO_RATE"):
            Settings.from_env()

    def test_negative_rate_rejected(self, monkeypatch):
        monkeypatch.setenv("CARTFLOW_TAX_RATE", "-0.1")
        with pytest.raises(ValueError):
            Settings.from_env()
