"""Repository for the ShoppingCart aggregate."""

from ordering.cart.cart import ShoppingCart, as_naive_utc
from ordering.domain import ordering


@ordering.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_customer(self, customer_id) -> ShoppingCart | None:
        """Return the customer's cart; there is at most one per customer."""
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return carts[0] if carts else None

    def expired(self, as_of) -> list[ShoppingCart]:
        cutoff = as_naive_utc(as_of)
        return [
            cart
            for cart in self._dao.query.all().items
            if cart.expires_at is not None and as_naive_utc(cart.expires_at) <= cutoff
        ]
