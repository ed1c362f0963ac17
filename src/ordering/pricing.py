"""Pricing calculator for carts and orders.

All amounts here are major currency units (rupees) held as ``Decimal`` and
rounded half-up to two places; cart and order records store them as floats.
The payment gateway works in integer minor units (paise). Convert with
``to_minor_units`` at that boundary and nowhere else.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Coerce a float, int, str or Decimal amount to a 2dp Decimal."""
    if value is None:
        return _ZERO
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Convert a major-unit amount to integer minor units (e.g. 499.99 -> 49999)."""
    return int((to_decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return to_decimal(Decimal(amount) / 100)


@dataclass(frozen=True)
class PriceLine:
    """A single priced line: anything with ``quantity`` and ``unit_price`` works too."""

    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class PricingPolicy:
    """Tax and shipping rules applied on top of the line subtotal.

    Shipping is free when the subtotal is strictly greater than
    ``free_shipping_threshold``; otherwise ``shipping_fee`` is charged.
    """

    tax_rate: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("99")
    free_shipping_threshold: Decimal = Decimal("5000")
    discount: Decimal = Decimal("0")
    currency: str = "INR"

    @classmethod
    def from_settings(cls, settings, discount=0) -> "PricingPolicy":
        return cls(
            tax_rate=Decimal(str(settings.tax_rate)),
            shipping_fee=to_decimal(settings.shipping_fee),
            free_shipping_threshold=to_decimal(settings.free_shipping_threshold),
            discount=to_decimal(discount),
            currency=settings.currency,
        )


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal = _ZERO
    tax: Decimal = _ZERO
    shipping: Decimal = _ZERO
    discount: Decimal = _ZERO
    total: Decimal = _ZERO
    currency: str = "INR"

    def as_floats(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "shipping": float(self.shipping),
            "discount": float(self.discount),
            "total": float(self.total),
        }


def line_total(quantity: int, unit_price) -> Decimal:
    return to_decimal(Decimal(quantity) * to_decimal(unit_price))


def shipping_for(subtotal: Decimal, policy: PricingPolicy) -> Decimal:
    if subtotal <= _ZERO:
        return _ZERO
    if subtotal > to_decimal(policy.free_shipping_threshold):
        return _ZERO
    return to_decimal(policy.shipping_fee)


def calculate(lines: Iterable, policy: PricingPolicy | None = None) -> PriceBreakdown:
    """Compute subtotal, tax, shipping, discount and total for ``lines``.

    An empty sequence prices to all zeros. Negative quantities or prices
    raise ``ValueError``. The discount is capped so the total never drops
    below zero.
    """
    policy = policy or PricingPolicy()

    subtotal = _ZERO
    for line in lines:
        if line.quantity < 0 or to_decimal(line.unit_price) < _ZERO:
            raise ValueError("Line quantity and unit price must not be negative")
        subtotal += line_total(line.quantity, line.unit_price)

    if subtotal == _ZERO:
        return PriceBreakdown(currency=policy.currency)

    tax = to_decimal(subtotal * Decimal(str(policy.tax_rate)))
    shipping = shipping_for(subtotal, policy)
    gross = subtotal + tax + shipping
    discount = min(max(to_decimal(policy.discount), _ZERO), gross)

    return PriceBreakdown(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        discount=discount,
        total=to_decimal(gross - discount),
        currency=policy.currency,
    )
