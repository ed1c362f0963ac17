"""Order placement: snapshot the customer's cart into a new order.

The handler prices the cart lines again through the pricing calculator,
reserves stock in the catalog, allocates the next order number and persists
the order in one unit of work. Cash-on-delivery orders clear the cart right
away; prepaid orders clear it once the payment is applied.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart, current_policy
from ordering.catalog import get_catalog
from ordering.domain import ordering
from ordering.order.order import Order, PaymentMethod
from ordering.order.sequence import allocate_order_number
from ordering.pricing import calculate, line_total

logger = structlog.get_logger(__name__)

# Client-facing payment types that settle through the online gateway.
_ONLINE_ALIASES = {"online", "upi", "netbanking", "razorpay"}


def normalize_payment_method(value) -> str:
    """Map a client payment type onto a PaymentMethod value."""
    key = (value or "").strip().lower()
    if key in {m.value for m in PaymentMethod}:
        return key
    if key in _ONLINE_ALIASES:
        return PaymentMethod.ONLINE.value
    raise ValidationError({"payment_method": [f"Unsupported payment method '{value}'"]})


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = String(required=True, max_length=20)
    notes = Text()


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.for_customer(command.customer_id)
        if cart is None or not cart.items or cart.is_expired():
            raise ValidationError({"cart": ["Cart is empty"]})

        payment_method = normalize_payment_method(command.payment_method)
        shipping_address = _load_json(command.shipping_address)
        if not shipping_address:
            raise ValidationError({"shipping_address": ["Shipping address is required"]})
        billing_address = _load_json(command.billing_address) or None

        catalog = get_catalog()
        items_data = []
        for item in cart.items:
            product = catalog.find_product(item.product_id)
            if product is None:
                raise ValidationError({"items": [f"Product {item.product_id} is no longer available"]})
            variant = product.variant(item.variant_id)
            items_data.append(
                {
                    "product_id": str(item.product_id),
                    "variant_id": str(item.variant_id) if item.variant_id else None,
                    "name": product.name,
                    "sku": variant.sku if variant else product.sku,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "line_total": float(line_total(item.quantity, item.unit_price)),
                    "image": product.image,
                }
            )

        breakdown = calculate(cart.items, current_policy())
        pricing = {**breakdown.as_floats(), "currency": breakdown.currency}

        order = Order.place(
            customer_id=command.customer_id,
            order_number=allocate_order_number(),
            items_data=items_data,
            shipping_address=shipping_address,
            billing_address=billing_address,
            pricing=pricing,
            payment_method=payment_method,
            notes=command.notes,
        )

        catalog.reserve_stock(order.stock_lines())
        order.stock_reserved = True

        current_domain.repository_for(Order).add(order)

        if payment_method == PaymentMethod.COD.value:
            cart.clear()
            cart_repo.add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            total=order.pricing.total,
            payment_method=payment_method,
        )
        return str(order.id)


def _load_json(value):
    if value is None:
        return None
    return json.loads(value) if isinstance(value, str) else value
