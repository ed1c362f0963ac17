"""Order aggregate (CQRS): an immutable cart snapshot moving through its lifecycle.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    PENDING → PROCESSING (cash on delivery, confirmed by an admin)
    CANCELLED (from PENDING, CONFIRMED) → REFUNDED
    DELIVERED → RETURNED → REFUNDED
    DELIVERED → REFUNDED

Admin status updates may leave these edges (flagged on the event); cancel()
and the payment table are always enforced.

Every status change appends a TimelineEntry; the timeline is append-only and
its last entry always carries the current status. The payment sub-record
has its own transition table (pending → paid | failed, paid → refunded |
partially_refunded).
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.catalog.port import StockLine
from ordering.domain import ordering
from ordering.errors import InvalidStateError
from ordering.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    PaymentConfirmed,
    PaymentFailed,
    TrackingUpdated,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    ONLINE = "online"
    WALLET = "wallet"
    CARD = "card"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED, OrderStatus.REFUNDED},
    OrderStatus.RETURNED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

_REFUNDABLE_STATES = {OrderStatus.CANCELLED, OrderStatus.DELIVERED, OrderStatus.RETURNED}

_VALID_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}


def allowed_transitions(status) -> set[OrderStatus]:
    return set(_VALID_TRANSITIONS.get(OrderStatus(status), set()))


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status '{value}'"]}) from None


def parse_payment_status(value) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise ValidationError({"payment_status": [f"Unknown payment status '{value}'"]}) from None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A delivery or billing address captured at checkout time."""

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    company = String(max_length=150)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")
    phone = String(required=True, max_length=20)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Totals locked at checkout, in major currency units."""

    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="INR")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A purchased line with the name, sku and price denormalized at checkout."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    name = String(required=True, max_length=255)
    sku = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)
    image = String(max_length=500)


@ordering.entity(part_of="Order")
class TimelineEntry:
    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    timestamp = DateTime(required=True)
    note = String(max_length=500)
    updated_by = String(max_length=100)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    order_number = String(required=True, max_length=30)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    pricing = ValueObject(OrderPricing)

    # Payment sub-record
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_gateway = String(max_length=50)
    transaction_id = String(max_length=255)
    gateway_order_id = String(max_length=255)
    paid_at = DateTime()
    refunded_at = DateTime()
    refund_amount = Float(default=0.0)

    # Tracking
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)
    estimated_delivery = DateTime()
    delivered_at = DateTime()

    timeline = HasMany(TimelineEntry)
    notes = Text()
    cancellation_reason = String(max_length=500)
    stock_reserved = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def timeline_must_end_with_current_status(self):
        entries = self.ordered_timeline
        if entries and entries[-1].status != self.status:
            raise ValidationError({"timeline": ["The latest timeline entry must match the order status"]})

    @invariant.post
    def total_must_reconcile_with_components(self):
        if self.pricing is None:
            return
        p = self.pricing
        expected = round(p.subtotal + p.tax + p.shipping - p.discount, 2)
        if abs(expected - p.total) > 0.005:
            raise ValidationError({"pricing": ["Order total does not reconcile with its components"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        order_number,
        items_data,
        shipping_address,
        billing_address,
        pricing,
        payment_method,
        notes=None,
        gateway="razorpay",
    ):
        """Create a pending order from a cart snapshot.

        Args:
            items_data: List of dicts with product_id, variant_id, name, sku,
                        quantity, unit_price, line_total, image.
            shipping_address: Dict of Address fields.
            billing_address: Dict of Address fields, or None to reuse shipping.
            pricing: Dict with subtotal, tax, shipping, discount, total, currency.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        method = PaymentMethod(payment_method)
        now = datetime.now(UTC)

        order = cls(
            customer_id=customer_id,
            order_number=order_number,
            status=OrderStatus.PENDING.value,
            items=[OrderItem(**item) for item in items_data],
            shipping_address=Address(**shipping_address),
            billing_address=Address(**(billing_address or shipping_address)),
            pricing=OrderPricing(**pricing),
            payment_method=method.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_gateway=None if method == PaymentMethod.COD else gateway,
            timeline=[
                TimelineEntry(
                    sequence=1,
                    status=OrderStatus.PENDING.value,
                    timestamp=now,
                    note="Order created",
                    updated_by=str(customer_id),
                )
            ],
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                item_count=sum(item["quantity"] for item in items_data),
                total=order.pricing.total,
                currency=order.pricing.currency,
                payment_method=method.value,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def ordered_timeline(self) -> list:
        return sorted(self.timeline or [], key=lambda entry: entry.sequence)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def is_owned_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    def stock_lines(self) -> list[StockLine]:
        return [
            StockLine(
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
            )
            for item in self.items
        ]

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateError(f"Cannot move order from {current.value} to {target_status.value}")

    def _assert_payment_can_transition(self, target_status):
        current = PaymentStatus(self.payment_status)
        if target_status not in _VALID_PAYMENT_TRANSITIONS.get(current, set()):
            raise InvalidStateError(f"Cannot move payment from {current.value} to {target_status.value}")

    def _append_timeline(self, status, note=None, actor=None, now=None):
        sequence = max((entry.sequence for entry in self.timeline or []), default=0) + 1
        self.add_timeline(
            TimelineEntry(
                sequence=sequence,
                status=status.value if isinstance(status, OrderStatus) else status,
                timestamp=now or datetime.now(UTC),
                note=note,
                updated_by=actor,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def update_status(self, new_status, note=None, actor=None, strict=False):
        """Set the status to ``new_status`` and append a timeline entry.

        Admin status updates are not checked against the lifecycle table; a
        move outside it is flagged on the OrderStatusChanged event. With
        ``strict`` such a move raises InvalidStateError instead.
        """
        target = parse_status(new_status)
        previous = OrderStatus(self.status)

        outside_lifecycle = target not in _VALID_TRANSITIONS[previous]
        if outside_lifecycle and strict:
            self._assert_can_transition(target)

        note = note or f"Status updated to {target.value}"
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target.value
            if target == OrderStatus.DELIVERED:
                self.delivered_at = now
            self._append_timeline(target, note, actor, now)
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous.value,
                new_status=target.value,
                note=note,
                changed_by=actor,
                outside_lifecycle=outside_lifecycle,
                changed_at=now,
            )
        )

    def cancel(self, reason=None, actor=None):
        current = OrderStatus(self.status)
        if current not in _CANCELLABLE_STATES:
            raise InvalidStateError("Order cannot be cancelled at this stage")

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.CANCELLED.value
            self.cancellation_reason = reason
            self._append_timeline(OrderStatus.CANCELLED, reason or "Order cancelled by user", actor, now)
            self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                previous_status=current.value,
                reason=reason,
                cancelled_by=actor,
                cancelled_at=now,
            )
        )

    def update_tracking(self, carrier=None, tracking_number=None, tracking_url=None, estimated_delivery=None):
        """Partially update tracking details; omitted values are left as they are."""
        with atomic_change(self):
            if carrier:
                self.carrier = carrier
            if tracking_number:
                self.tracking_number = tracking_number
            if tracking_url:
                self.tracking_url = tracking_url
            if estimated_delivery:
                self.estimated_delivery = estimated_delivery
            self.updated_at = datetime.now(UTC)

        self.raise_(
            TrackingUpdated(
                order_id=str(self.id),
                carrier=self.carrier,
                tracking_number=self.tracking_number,
                tracking_url=self.tracking_url,
            )
        )

    def record_gateway_order(self, gateway_order_id, gateway="razorpay"):
        if self.payment_status != PaymentStatus.PENDING.value:
            raise InvalidStateError("Payment has already been settled for this order")
        with atomic_change(self):
            self.gateway_order_id = gateway_order_id
            self.payment_gateway = gateway
            self.updated_at = datetime.now(UTC)

    def release_reserved_stock(self) -> list[StockLine]:
        """Mark reserved stock as released and return the lines to give back."""
        if not self.stock_reserved:
            return []
        self.stock_reserved = False
        return self.stock_lines()

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def apply_payment(self, transaction_id=None, gateway="razorpay", note="Payment verified successfully", actor=None):
        """Mark the order paid. Returns False when it already was (no-op).

        A pending order moves to confirmed. An order that already moved on
        keeps its status and only gains a timeline entry.
        """
        if self.payment_status == PaymentStatus.PAID.value:
            return False
        self._assert_payment_can_transition(PaymentStatus.PAID)

        now = datetime.now(UTC)
        current = OrderStatus(self.status)
        with atomic_change(self):
            self.payment_status = PaymentStatus.PAID.value
            self.transaction_id = transaction_id or self.transaction_id
            self.payment_gateway = gateway or self.payment_gateway
            self.paid_at = now
            if current == OrderStatus.PENDING:
                self.status = OrderStatus.CONFIRMED.value
                self._append_timeline(OrderStatus.CONFIRMED, note, actor, now)
            elif current == OrderStatus.CANCELLED:
                self._append_timeline(current, f"{note}; order was already cancelled, refund required", actor, now)
            else:
                self._append_timeline(current, note, actor, now)
            self.updated_at = now

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                transaction_id=self.transaction_id,
                gateway=self.payment_gateway,
                amount=self.pricing.total,
                paid_at=now,
            )
        )
        return True

    def mark_payment_failed(self, reason=None, actor=None):
        """Record a failed payment and cancel the order while it is still cancellable.

        Returns False when the payment was already marked failed.
        """
        if self.payment_status == PaymentStatus.FAILED.value:
            return False
        self._assert_payment_can_transition(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        current = OrderStatus(self.status)
        note = "Payment failed" if not reason else f"Payment failed: {reason}"
        with atomic_change(self):
            self.payment_status = PaymentStatus.FAILED.value
            if current in _CANCELLABLE_STATES:
                self.status = OrderStatus.CANCELLED.value
                self.cancellation_reason = note
                self._append_timeline(OrderStatus.CANCELLED, note, actor, now)
            else:
                self._append_timeline(current, note, actor, now)
            self.updated_at = now

        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                failed_at=now,
            )
        )
        return True

    def refund(self, amount=None, reason=None, actor=None):
        """Refund all or part of a paid order. Returns the amount refunded."""
        if self.payment_status not in (PaymentStatus.PAID.value, PaymentStatus.PARTIALLY_REFUNDED.value):
            raise InvalidStateError("Only paid orders can be refunded")
        current = OrderStatus(self.status)
        if current not in _REFUNDABLE_STATES:
            raise InvalidStateError(f"Orders in {current.value} state cannot be refunded")

        already_refunded = self.refund_amount or 0.0
        remaining = round(self.pricing.total - already_refunded, 2)
        amount = remaining if amount is None else round(amount, 2)
        if amount <= 0 or amount > remaining:
            raise ValidationError({"amount": [f"Refund amount must be between 0 and {remaining:.2f}"]})

        total_refunded = round(already_refunded + amount, 2)
        full_refund = abs(total_refunded - self.pricing.total) < 0.005
        target = PaymentStatus.REFUNDED if full_refund else PaymentStatus.PARTIALLY_REFUNDED
        self._assert_payment_can_transition(target)

        now = datetime.now(UTC)
        note = reason or ("Order refunded" if full_refund else f"Partial refund of {amount:.2f}")
        with atomic_change(self):
            self.payment_status = target.value
            self.refund_amount = total_refunded
            self.refunded_at = now
            if full_refund:
                self.status = OrderStatus.REFUNDED.value
                self._append_timeline(OrderStatus.REFUNDED, note, actor, now)
            else:
                self._append_timeline(current, note, actor, now)
            self.updated_at = now

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                amount=amount,
                total_refunded=total_refunded,
                payment_status=target.value,
                reason=reason,
                refunded_at=now,
            )
        )
        return amount

    def admin_update_payment(self, status=None, transaction_id=None, actor=None):
        """Manual payment correction by an admin, still bound by the payment table."""
        if status:
            target = parse_payment_status(status)
            if target == PaymentStatus.PAID:
                self.apply_payment(
                    transaction_id=transaction_id,
                    gateway=self.payment_gateway,
                    note="Payment marked as paid by admin",
                    actor=actor,
                )
            elif target == PaymentStatus.FAILED:
                self.mark_payment_failed(reason="marked by admin", actor=actor)
            elif target.value != self.payment_status:
                raise InvalidStateError("Use the refund operation to refund a payment")

        if transaction_id and transaction_id != self.transaction_id:
            with atomic_change(self):
                self.transaction_id = transaction_id
                self.updated_at = datetime.now(UTC)
