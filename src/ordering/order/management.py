"""Admin order management: status changes, tracking and payment corrections."""

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.cancellation import release_stock_for
from ordering.order.order import Order, OrderStatus, allowed_transitions

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    note = String(max_length=500)
    updated_by = String(max_length=100)
    strict = Boolean(default=False)  # Reject moves outside the lifecycle table


@ordering.command(part_of="Order")
class UpdateTracking:
    order_id = Identifier(required=True)
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)
    estimated_delivery = DateTime()


@ordering.command(part_of="Order")
class UpdatePaymentDetails:
    order_id = Identifier(required=True)
    payment_status = String(max_length=30)
    transaction_id = String(max_length=255)
    updated_by = String(max_length=100)


@ordering.command_handler(part_of=Order)
class ManageOrderHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.update_status(
            command.status,
            note=command.note,
            actor=command.updated_by,
            strict=bool(command.strict),
        )
        if order.status not in allowed_transitions(previous):
            logger.warning(
                "Order moved outside its lifecycle",
                order_id=str(order.id),
                previous_status=previous,
                new_status=order.status,
                updated_by=command.updated_by,
            )
        if order.status == OrderStatus.CANCELLED.value:
            release_stock_for(order)
        repo.add(order)

    @handle(UpdateTracking)
    def update_tracking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_tracking(
            carrier=command.carrier,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
            estimated_delivery=command.estimated_delivery,
        )
        repo.add(order)

    @handle(UpdatePaymentDetails)
    def update_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.admin_update_payment(
            status=command.payment_status,
            transaction_id=command.transaction_id,
            actor=command.updated_by,
        )
        if order.status == OrderStatus.CANCELLED.value:
            release_stock_for(order)
        repo.add(order)
