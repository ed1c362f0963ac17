"""Payment reconciliation: apply a gateway-confirmed payment to an order exactly once.

Both the client-side verification and the gateway webhook end in the
ApplyPayment command. Applying to an order that is already paid is a no-op,
so the two paths can race without double-processing. The customer's cart is
cleared only after the payment has been committed.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.management import ClearCart
from ordering.config import get_settings
from ordering.domain import ordering
from ordering.errors import ForbiddenError, NotFoundError, SignatureInvalidError, UpstreamError
from ordering.gateway import get_gateway
from ordering.order.cancellation import release_stock_for
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ApplyPayment:
    order_id = Identifier(required=True)
    transaction_id = String(max_length=255)
    gateway_order_id = String(max_length=255)
    gateway = String(max_length=50, default="razorpay")
    note = String(max_length=500, default="Payment verified successfully")
    source = String(max_length=20, default="client")  # client | webhook | admin


@ordering.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    source = String(max_length=20, default="webhook")


@ordering.command_handler(part_of=Order)
class PaymentReconciliationHandler:
    @handle(ApplyPayment)
    def apply_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        applied = order.apply_payment(
            transaction_id=command.transaction_id,
            gateway=command.gateway,
            note=command.note,
            actor=command.source,
        )
        if not applied:
            logger.info(
                "Payment already applied, skipping",
                order_id=str(order.id),
                transaction_id=command.transaction_id,
                source=command.source,
            )
            return False

        if command.gateway_order_id and not order.gateway_order_id:
            order.gateway_order_id = command.gateway_order_id
        repo.add(order)

        logger.info(
            "Payment applied",
            order_id=str(order.id),
            transaction_id=command.transaction_id,
            source=command.source,
        )
        return True

    @handle(RecordPaymentFailure)
    def record_payment_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        recorded = order.mark_payment_failed(reason=command.reason, actor=command.source)
        if not recorded:
            return False

        release_stock_for(order)
        repo.add(order)
        logger.info("Payment failure recorded", order_id=str(order.id), reason=command.reason)
        return True


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise NotFoundError("Order not found") from None


def settle_order(order, transaction_id, gateway_order_id=None, note="Payment verified successfully", source="client"):
    """Apply the payment, then clear the owner's cart if it was newly applied."""
    applied = current_domain.process(
        ApplyPayment(
            order_id=str(order.id),
            transaction_id=transaction_id,
            gateway_order_id=gateway_order_id,
            note=note,
            source=source,
        ),
        asynchronous=False,
    )
    if applied:
        current_domain.process(ClearCart(customer_id=str(order.customer_id)), asynchronous=False)
    return applied


def verify_and_apply(
    gateway_order_id,
    gateway_payment_id,
    signature,
    order_id=None,
    customer_id=None,
    is_admin=False,
) -> bool:
    """Verify a checkout signature and confirm the order it pays for.

    Returns True when the payment was applied now, False when the signature
    is valid but there was nothing to apply (no order given, or already
    paid).
    """
    secret = get_settings().razorpay_key_secret
    if not secret:
        raise UpstreamError("Payment verification is not configured", status_code=500)

    if not get_gateway().verify_payment_signature(gateway_order_id, gateway_payment_id, signature, secret):
        logger.warning(
            "Payment signature mismatch",
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
        )
        raise SignatureInvalidError("Invalid payment signature")

    if not order_id:
        return False

    order = load_order(order_id)
    if not is_admin and not order.is_owned_by(customer_id):
        raise ForbiddenError("Not authorized to update this order")
    # A payment settles an order only through the gateway order created for it
    if not order.gateway_order_id:
        raise ValidationError({"razorpay_order_id": ["No payment has been started for this order"]})
    if order.gateway_order_id != gateway_order_id:
        raise ValidationError({"razorpay_order_id": ["Payment does not belong to this order"]})

    return settle_order(order, gateway_payment_id, gateway_order_id=gateway_order_id, source="client")
