"""Gateway order creation: start a Razorpay checkout for an amount or an order."""

import time

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.config import get_settings
from ordering.domain import ordering
from ordering.errors import ForbiddenError
from ordering.gateway import get_gateway
from ordering.order.order import Order
from ordering.pricing import to_minor_units

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CreateGatewayOrder:
    """Create a gateway order.

    With an ``order_id`` the amount is the order's total and the gateway
    order id is recorded on the order, so webhooks can find it.
    """

    customer_id = Identifier(required=True)
    order_id = Identifier()
    amount = Float()  # Major units; ignored when order_id is given
    currency = String(max_length=3)


@ordering.command_handler(part_of=Order)
class CreateGatewayOrderHandler:
    @handle(CreateGatewayOrder)
    def create_gateway_order(self, command):
        settings = get_settings()
        order = None
        if command.order_id:
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            if not order.is_owned_by(command.customer_id):
                raise ForbiddenError("Not authorized to pay for this order")
            amount = order.pricing.total
            currency = order.pricing.currency
        else:
            amount = command.amount
            currency = command.currency or settings.currency

        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Amount must be greater than zero"]})

        receipt = f"receipt_{int(time.time() * 1000)}_{str(command.customer_id)[-8:]}"
        gateway_order = get_gateway().create_order(
            amount_minor=to_minor_units(amount),
            currency=currency,
            receipt=receipt,
            notes={
                "user_id": str(command.customer_id),
                "order_id": str(command.order_id) if command.order_id else "pending",
            },
        )

        if order is not None:
            order.record_gateway_order(gateway_order.id)
            repo.add(order)

        logger.info(
            "Gateway order created",
            gateway_order_id=gateway_order.id,
            order_id=str(command.order_id) if command.order_id else None,
            amount_minor=gateway_order.amount,
        )
        return {
            "id": gateway_order.id,
            "amount": gateway_order.amount,
            "currency": gateway_order.currency,
            "receipt": gateway_order.receipt,
            "key_id": settings.razorpay_key_id,
        }
