"""Shopping Cart aggregate (CQRS): one cart per customer, priced on every change.

The cart holds unique (product, variant) lines. Each mutation recomputes the
line totals and the cart pricing through the pricing calculator inside one
atomic change, so a stale total is never observable. Carts expire after a
sliding TTL that is refreshed on every mutation.
"""

from datetime import UTC, datetime, timedelta

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from ordering.config import get_settings
from ordering.domain import ordering
from ordering.errors import NotFoundError
from ordering.pricing import PricingPolicy, calculate, line_total

MAX_LINE_QUANTITY = 99


def current_policy() -> PricingPolicy:
    return PricingPolicy.from_settings(get_settings())


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime for comparison; storage may hand back naive UTC values."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _variant_key(variant_id) -> str | None:
    return str(variant_id) if variant_id else None


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1, max_value=MAX_LINE_QUANTITY)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(default=0.0)
    added_at = DateTime()

    def matches(self, product_id, variant_id) -> bool:
        return str(self.product_id) == str(product_id) and _variant_key(self.variant_id) == _variant_key(variant_id)


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="INR")
    expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_reconcile_with_components(self):
        expected = round((self.subtotal or 0) + (self.tax or 0) + (self.shipping or 0) - (self.discount or 0), 2)
        if abs(expected - (self.total or 0)) > 0.005:
            raise ValidationError({"total": ["Cart total does not reconcile with subtotal, tax, shipping and discount"]})

    @invariant.post
    def lines_must_be_unique(self):
        keys = [(str(i.product_id), _variant_key(i.variant_id)) for i in self.items]
        if len(keys) != len(set(keys)):
            raise ValidationError({"items": ["A product and variant can appear only once in a cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id, now=None):
        now = now or datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            currency=get_settings().currency,
            expires_at=now + timedelta(days=get_settings().cart_ttl_days),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find_line(self, product_id, variant_id=None):
        """Return the line for (product, variant).

        Without a variant, a product that has exactly one line in the cart
        resolves to that line.
        """
        line = next((i for i in self.items if i.matches(product_id, variant_id)), None)
        if line is None and variant_id is None:
            candidates = [i for i in self.items if str(i.product_id) == str(product_id)]
            if len(candidates) == 1:
                line = candidates[0]
        return line

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        return as_naive_utc(self.expires_at) <= as_naive_utc(now or datetime.now(UTC))

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------
    def _reprice(self, policy=None):
        policy = policy or current_policy()
        for item in self.items:
            item.line_total = float(line_total(item.quantity, item.unit_price))

        breakdown = calculate(self.items, policy)
        self.subtotal = float(breakdown.subtotal)
        self.tax = float(breakdown.tax)
        self.shipping = float(breakdown.shipping)
        self.discount = float(breakdown.discount)
        self.total = float(breakdown.total)
        self.currency = breakdown.currency

    def _touch(self, now=None):
        now = now or datetime.now(UTC)
        self.updated_at = now
        self.expires_at = now + timedelta(days=get_settings().cart_ttl_days)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price, variant_id=None, policy=None):
        """Add a line, or grow the quantity of the matching (product, variant) line."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if unit_price is None or unit_price < 0:
            raise ValidationError({"unit_price": ["Price cannot be negative"]})

        existing = next((i for i in self.items if i.matches(product_id, variant_id)), None)
        new_quantity = quantity + (existing.quantity if existing else 0)
        if new_quantity > MAX_LINE_QUANTITY:
            raise ValidationError({"quantity": [f"A cart line cannot hold more than {MAX_LINE_QUANTITY} units"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            if existing:
                existing.quantity = new_quantity
                existing.unit_price = unit_price
            else:
                self.add_items(
                    CartItem(
                        product_id=product_id,
                        variant_id=variant_id,
                        quantity=quantity,
                        unit_price=unit_price,
                        added_at=now,
                    )
                )
            self._reprice(policy)
            self._touch(now)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                variant_id=_variant_key(variant_id),
                quantity=quantity,
                unit_price=unit_price,
            )
        )

    def update_item_quantity(self, product_id, quantity, variant_id=None, policy=None):
        """Replace a line's quantity; zero or less removes the line."""
        line = self.find_line(product_id, variant_id)
        if line is None:
            raise NotFoundError("Item not found in cart")

        if quantity <= 0:
            self._remove_line(line, policy)
            return
        if quantity > MAX_LINE_QUANTITY:
            raise ValidationError({"quantity": [f"A cart line cannot hold more than {MAX_LINE_QUANTITY} units"]})

        previous_quantity = line.quantity
        with atomic_change(self):
            line.quantity = quantity
            self._reprice(policy)
            self._touch()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(line.product_id),
                variant_id=_variant_key(line.variant_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id, variant_id=None, policy=None):
        """Remove matching lines. Removing an absent line is a no-op.

        Without a variant, every line of the product is removed.
        """
        if variant_id is None:
            lines = [i for i in self.items if str(i.product_id) == str(product_id)]
        else:
            lines = [i for i in self.items if i.matches(product_id, variant_id)]

        for line in lines:
            self._remove_line(line, policy)

    def _remove_line(self, line, policy=None):
        with atomic_change(self):
            self.remove_items(line)
            self._reprice(policy)
            self._touch()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(line.product_id),
                variant_id=_variant_key(line.variant_id),
            )
        )

    def clear(self):
        """Empty the cart and zero its pricing."""
        removed = len(self.items)
        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self.subtotal = 0.0
            self.tax = 0.0
            self.shipping = 0.0
            self.discount = 0.0
            self.total = 0.0
            self._touch()

        if removed:
            self.raise_(
                CartCleared(
                    cart_id=str(self.id),
                    customer_id=str(self.customer_id),
                    items_removed=removed,
                )
            )
