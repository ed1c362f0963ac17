"""Cart item management: commands and handler.

Prices are taken from the product catalog when a line is added, never from
the client. Every handler addresses the cart through its owner, creating it
on first use.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import fetch_or_create_cart
from ordering.catalog import get_catalog
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(default=1)


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    """Set a line's quantity; zero or a negative number removes the line."""

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()


def _resolve_unit_price(product_id, variant_id, quantity, existing_quantity=0):
    product = get_catalog().find_product(product_id)
    if product is None or not product.is_active:
        raise ValidationError({"product_id": ["Product not found or unavailable"]})

    price = product.price
    if variant_id:
        variant = product.variant(variant_id)
        if variant is None or not variant.is_active:
            raise ValidationError({"variant_id": ["Variant not found or unavailable"]})
        price = variant.price

    if not product.can_supply(quantity + existing_quantity, variant_id):
        raise ValidationError({"quantity": [f"Insufficient stock for {product.name}"]})

    return price


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        quantity = command.quantity if command.quantity is not None else 1
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        repo = current_domain.repository_for(ShoppingCart)
        cart = fetch_or_create_cart(command.customer_id)

        existing = next((i for i in cart.items if i.matches(command.product_id, command.variant_id)), None)
        unit_price = _resolve_unit_price(
            command.product_id,
            command.variant_id,
            quantity,
            existing_quantity=existing.quantity if existing else 0,
        )

        cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=quantity,
            unit_price=unit_price,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = fetch_or_create_cart(command.customer_id)

        line = cart.find_line(command.product_id, command.variant_id)
        if line is not None and command.quantity > line.quantity:
            # Growing a line needs the product still on sale and the full quantity in stock
            variant_id = str(line.variant_id) if line.variant_id else None
            _resolve_unit_price(str(line.product_id), variant_id, command.quantity)

        cart.update_item_quantity(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=command.quantity,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = fetch_or_create_cart(command.customer_id)
        cart.remove_item(product_id=command.product_id, variant_id=command.variant_id)
        repo.add(cart)
        return str(cart.id)
