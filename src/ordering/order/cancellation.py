"""Order cancellation and refund: commands and handler.

Cancelling gives reserved stock back to the catalog. Online orders left
unpaid past the configured window are cancelled by the ExpireUnpaidOrders
sweep (triggered by an external scheduler). Refunds of online
payments are issued through the payment gateway before the order records
them.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.catalog import get_catalog
from ordering.config import get_settings
from ordering.domain import ordering
from ordering.errors import UpstreamError
from ordering.gateway import get_gateway
from ordering.order.order import Order, PaymentMethod
from ordering.pricing import to_minor_units

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=100)


@ordering.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    amount = Float()  # Optional: defaults to the unrefunded remainder
    reason = String(max_length=500)
    refunded_by = String(max_length=100)


@ordering.command(part_of="Order")
class ExpireUnpaidOrders:
    """Cancel online orders whose payment never arrived."""

    as_of = DateTime()  # Optional: defaults to now


def release_stock_for(order) -> None:
    lines = order.release_reserved_stock()
    if lines:
        get_catalog().release_stock(lines)
        logger.info("Released reserved stock", order_id=str(order.id), lines=len(lines))


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(reason=command.reason, actor=command.cancelled_by)
        release_stock_for(order)
        repo.add(order)

    @handle(RefundOrder)
    def refund_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        amount = order.refund(amount=command.amount, reason=command.reason, actor=command.refunded_by)

        if order.payment_method != PaymentMethod.COD.value and order.transaction_id:
            result = get_gateway().refund(order.transaction_id, to_minor_units(amount))
            if not result.success:
                raise UpstreamError(f"Refund failed: {result.failure_reason}")
            logger.info(
                "Gateway refund issued",
                order_id=str(order.id),
                refund_id=result.gateway_refund_id,
                amount=amount,
            )

        repo.add(order)
        return amount

    @handle(ExpireUnpaidOrders)
    def expire_unpaid_orders(self, command):
        as_of = command.as_of or datetime.now(UTC)
        cutoff = as_of - timedelta(hours=get_settings().unpaid_order_ttl_hours)
        repo = current_domain.repository_for(Order)

        expired = repo.unpaid_before(cutoff)
        for order in expired:
            order.cancel(reason="Payment not received in time", actor="system")
            release_stock_for(order)
            repo.add(order)
            logger.info("Cancelled unpaid order", order_id=str(order.id), order_number=order.order_number)

        logger.info("Unpaid order sweep complete", expired_count=len(expired))
        return len(expired)
