"""Cart lifecycle: lazy creation, clearing and expiry.

Carts are created on the first read or write for a customer. A cart found
past its expiry is emptied before use, and the ExpireCarts sweep (triggered
by an external scheduler) deletes expired carts outright.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


def fetch_or_create_cart(customer_id) -> ShoppingCart:
    """Load the customer's cart, creating it (unsaved) if none exists yet."""
    repo = current_domain.repository_for(ShoppingCart)
    cart = repo.for_customer(customer_id)
    if cart is None:
        return ShoppingCart.create(customer_id=customer_id)

    if cart.is_expired():
        logger.info("Emptying expired cart", cart_id=str(cart.id), customer_id=str(customer_id))
        cart.clear()
    return cart


@ordering.command(part_of="ShoppingCart")
class OpenCart:
    """Return the customer's cart id, creating the cart on first access."""

    customer_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class ExpireCarts:
    """Delete carts whose sliding TTL has elapsed."""

    as_of = DateTime()  # Optional: defaults to now


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = fetch_or_create_cart(command.customer_id)
        repo.add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None:
            return None
        cart.clear()
        repo.add(cart)
        return str(cart.id)

    @handle(ExpireCarts)
    def expire_carts(self, command):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(ShoppingCart)

        expired = repo.expired(as_of)
        for cart in expired:
            repo._dao.delete(cart)
            logger.info(
                "Deleted expired cart",
                cart_id=str(cart.id),
                customer_id=str(cart.customer_id),
                expires_at=str(cart.expires_at),
            )

        logger.info("Cart expiry sweep complete", expired_count=len(expired))
        return len(expired)
