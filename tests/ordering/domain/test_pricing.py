"""Tests for the pricing calculator."""

from decimal import Decimal

import pytest

from ordering.config import get_settings
from ordering.pricing import (
    PriceLine,
    PricingPolicy,
    calculate,
    from_minor_units,
    line_total,
    to_decimal,
    to_minor_units,
)


def _lines(*pairs):
    return [PriceLine(quantity=q, unit_price=Decimal(str(p))) for q, p in pairs]


class TestCalculate:
    def test_empty_cart_prices_to_zero(self):
        breakdown = calculate([])
        assert breakdown.subtotal == Decimal("0.00")
        assert breakdown.shipping == Decimal("0.00")
        assert breakdown.total == Decimal("0.00")

    def test_small_order_pays_shipping(self):
        breakdown = calculate(_lines((2, 499.99)))
        assert breakdown.subtotal == Decimal("999.98")
        assert breakdown.shipping == Decimal("99.00")
        assert breakdown.total == Decimal("1098.98")

    def test_order_above_threshold_ships_free(self):
        breakdown = calculate(_lines((1, 6000)))
        assert breakdown.shipping == Decimal("0.00")
        assert breakdown.total == Decimal("6000.00")

    def test_order_exactly_at_threshold_pays_shipping(self):
        breakdown = calculate(_lines((1, 5000)))
        assert breakdown.shipping == Decimal("99.00")
        assert breakdown.total == Decimal("5099.00")

    def test_tax_is_applied_to_subtotal(self):
        policy = PricingPolicy(tax_rate=Decimal("0.03"))
        breakdown = calculate(_lines((1, 1000)), policy)
        assert breakdown.tax == Decimal("30.00")
        assert breakdown.total == Decimal("1129.00")

    def test_tax_rounds_half_up(self):
        policy = PricingPolicy(tax_rate=Decimal("0.05"))
        breakdown = calculate(_lines((1, 0.1)), policy)
        assert breakdown.tax == Decimal("0.01")

    def test_discount_is_subtracted(self):
        policy = PricingPolicy(discount=Decimal("100"))
        breakdown = calculate(_lines((1, 1000)), policy)
        assert breakdown.discount == Decimal("100.00")
        assert breakdown.total == Decimal("999.00")

    def test_discount_never_makes_total_negative(self):
        policy = PricingPolicy(discount=Decimal("5000"))
        breakdown = calculate(_lines((1, 100)), policy)
        assert breakdown.discount == Decimal("199.00")
        assert breakdown.total == Decimal("0.00")

    def test_total_reconciles_with_components(self):
        policy = PricingPolicy(tax_rate=Decimal("0.18"), discount=Decimal("12.34"))
        b = calculate(_lines((3, 333.33), (1, 19.99)), policy)
        assert b.total == b.subtotal + b.tax + b.shipping - b.discount

    def test_negative_quantity_is_rejected(self):
        with pytest.raises(ValueError):
            calculate(_lines((-1, 100)))

    def test_negative_price_is_rejected(self):
        with pytest.raises(ValueError):
            calculate(_lines((1, -5)))

    def test_accepts_any_object_with_quantity_and_unit_price(self):
        class Line:
            quantity = 2
            unit_price = 10.5

        assert calculate([Line()]).subtotal == Decimal("21.00")

    def test_currency_comes_from_policy(self):
        assert calculate([], PricingPolicy(currency="USD")).currency == "USD"

    def test_as_floats(self):
        floats = calculate(_lines((1, 100))).as_floats()
        assert floats == {"subtotal": 100.0, "tax": 0.0, "shipping": 99.0, "discount": 0.0, "total": 199.0}


class TestPolicyFromSettings:
    def test_defaults(self):
        policy = PricingPolicy.from_settings(get_settings())
        assert policy.tax_rate == Decimal("0.0")
        assert policy.shipping_fee == Decimal("99.00")
        assert policy.free_shipping_threshold == Decimal("5000.00")
        assert policy.currency == "INR"

    def test_overrides_from_environment(self, monkeypatch):
        from ordering.config import reset_settings

        monkeypatch.setenv("TAX_RATE", "0.03")
        monkeypatch.setenv("SHIPPING_FEE", "50")
        reset_settings()

        policy = PricingPolicy.from_settings(get_settings(), discount=10)
        assert policy.tax_rate == Decimal("0.03")
        assert policy.shipping_fee == Decimal("50.00")
        assert policy.discount == Decimal("10.00")


class TestMoneyConversion:
    def test_to_decimal_rounds_to_two_places(self):
        assert to_decimal(2.675) == Decimal("2.68")
        assert to_decimal(None) == Decimal("0.00")

    def test_minor_units(self):
        assert to_minor_units(499.99) == 49999
        assert to_minor_units(Decimal("1098.98")) == 109898
        assert to_minor_units(0.1 + 0.2) == 30

    def test_from_minor_units(self):
        assert from_minor_units(49999) == Decimal("499.99")

    def test_line_total(self):
        assert line_total(3, 333.33) == Decimal("999.99")
