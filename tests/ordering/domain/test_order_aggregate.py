"""Tests for Order placement, payment and refund behavior."""

import pytest
from protean.exceptions import ValidationError

from ordering.errors import InvalidStateError
from ordering.order.events import OrderPlaced, OrderRefunded, PaymentConfirmed, PaymentFailed
from ordering.order.order import Order, OrderPricing, OrderStatus, PaymentStatus

ADDRESS = {
    "first_name": "Asha",
    "last_name": "Iyer",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
    "phone": "9876543210",
}


def _make_order(payment_method="online", total=2598.0):
    order = Order.place(
        customer_id="cust-001",
        order_number="GEM000001",
        items_data=[
            {
                "product_id": "prod-ring",
                "name": "Gold Ring",
                "sku": "RING-001",
                "quantity": 1,
                "unit_price": total - 99.0,
                "line_total": total - 99.0,
            }
        ],
        shipping_address=ADDRESS,
        billing_address=None,
        pricing={
            "subtotal": total - 99.0,
            "tax": 0.0,
            "shipping": 99.0,
            "discount": 0.0,
            "total": total,
            "currency": "INR",
        },
        payment_method=payment_method,
    )
    order._events.clear()
    return order


class TestPlace:
    def test_new_order_is_pending(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value

    def test_timeline_starts_with_order_created(self):
        order = _make_order()
        entries = order.ordered_timeline
        assert len(entries) == 1
        assert entries[0].status == "pending"
        assert entries[0].note == "Order created"
        assert entries[0].updated_by == "cust-001"

    def test_billing_defaults_to_shipping(self):
        order = _make_order()
        assert order.billing_address.city == "Bengaluru"
        assert order.shipping_address.country == "India"

    def test_online_order_uses_razorpay(self):
        assert _make_order().payment_gateway == "razorpay"

    def test_cod_order_has_no_gateway(self):
        assert _make_order(payment_method="cod").payment_gateway is None

    def test_raises_order_placed(self):
        order = Order.place(
            customer_id="cust-001",
            order_number="GEM000002",
            items_data=[
                {"product_id": "p1", "name": "Ring", "quantity": 2, "unit_price": 100.0, "line_total": 200.0},
            ],
            shipping_address=ADDRESS,
            billing_address=None,
            pricing={"subtotal": 200.0, "shipping": 99.0, "total": 299.0},
            payment_method="cod",
        )
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.order_number == "GEM000002"
        assert event.item_count == 2
        assert event.total == 299.0

    def test_order_needs_items(self):
        with pytest.raises(ValidationError):
            Order.place(
                customer_id="cust-001",
                order_number="GEM000003",
                items_data=[],
                shipping_address=ADDRESS,
                billing_address=None,
                pricing={"subtotal": 0.0, "total": 0.0},
                payment_method="cod",
            )

    def test_stock_lines_mirror_items(self):
        lines = _make_order().stock_lines()
        assert len(lines) == 1
        assert lines[0].product_id == "prod-ring"
        assert lines[0].quantity == 1


class TestApplyPayment:
    def test_pending_order_becomes_confirmed(self):
        order = _make_order()
        applied = order.apply_payment(transaction_id="pay_001")

        assert applied is True
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.transaction_id == "pay_001"
        assert order.paid_at is not None
        assert order.ordered_timeline[-1].note == "Payment verified successfully"

    def test_second_application_is_noop(self):
        order = _make_order()
        order.apply_payment(transaction_id="pay_001")
        order._events.clear()

        applied = order.apply_payment(transaction_id="pay_001")

        assert applied is False
        confirmed = [e for e in order.timeline if e.status == OrderStatus.CONFIRMED.value]
        assert len(confirmed) == 1
        assert order._events == []

    def test_raises_payment_confirmed(self):
        order = _make_order()
        order.apply_payment(transaction_id="pay_001")

        event = order._events[0]
        assert isinstance(event, PaymentConfirmed)
        assert event.amount == 2598.0

    def test_payment_on_cancelled_order_flags_refund(self):
        order = _make_order()
        order.cancel(reason="Changed my mind", actor="cust-001")

        order.apply_payment(transaction_id="pay_late")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.is_paid
        assert "refund required" in order.ordered_timeline[-1].note

    def test_failed_payment_cannot_be_paid(self):
        order = _make_order()
        order.mark_payment_failed(reason="Card declined")

        with pytest.raises(InvalidStateError):
            order.apply_payment(transaction_id="pay_001")


class TestPaymentFailure:
    def test_failure_cancels_pending_order(self):
        order = _make_order()
        recorded = order.mark_payment_failed(reason="Card declined", actor="webhook")

        assert recorded is True
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.cancellation_reason == "Payment failed: Card declined"
        assert isinstance(order._events[0], PaymentFailed)

    def test_repeated_failure_is_noop(self):
        order = _make_order()
        order.mark_payment_failed()
        assert order.mark_payment_failed() is False

    def test_failure_after_payment_is_rejected(self):
        order = _make_order()
        order.apply_payment(transaction_id="pay_001")
        with pytest.raises(InvalidStateError):
            order.mark_payment_failed()


class TestRefund:
    def _delivered_paid_order(self):
        order = _make_order()
        order.apply_payment(transaction_id="pay_001")
        order.update_status("processing")
        order.update_status("shipped")
        order.update_status("delivered")
        order._events.clear()
        return order

    def test_full_refund_moves_order_to_refunded(self):
        order = self._delivered_paid_order()
        amount = order.refund(reason="Damaged", actor="admin-001")

        assert amount == 2598.0
        assert order.status == OrderStatus.REFUNDED.value
        assert order.payment_status == PaymentStatus.REFUNDED.value
        assert order.refund_amount == 2598.0
        assert isinstance(order._events[0], OrderRefunded)

    def test_partial_refund_keeps_status(self):
        order = self._delivered_paid_order()
        order.refund(amount=598.0)

        assert order.status == OrderStatus.DELIVERED.value
        assert order.payment_status == PaymentStatus.PARTIALLY_REFUNDED.value
        assert order.refund_amount == 598.0

    def test_partial_refunds_add_up_to_full(self):
        order = self._delivered_paid_order()
        order.refund(amount=598.0)
        order.refund(amount=2000.0)

        assert order.status == OrderStatus.REFUNDED.value
        assert order.payment_status == PaymentStatus.REFUNDED.value

    def test_refund_cannot_exceed_remaining(self):
        order = self._delivered_paid_order()
        with pytest.raises(ValidationError):
            order.refund(amount=3000.0)

    def test_unpaid_order_cannot_be_refunded(self):
        order = _make_order()
        order.cancel()
        with pytest.raises(InvalidStateError):
            order.refund()

    def test_shipped_order_cannot_be_refunded(self):
        order = _make_order()
        order.apply_payment(transaction_id="pay_001")
        order.update_status("processing")
        order.update_status("shipped")
        with pytest.raises(InvalidStateError):
            order.refund()


class TestInvariants:
    def test_pricing_must_reconcile(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.pricing = OrderPricing(subtotal=100.0, shipping=99.0, total=150.0)
        assert "pricing" in exc.value.messages

    def test_timeline_must_end_with_current_status(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.status = OrderStatus.CONFIRMED.value
        assert "timeline" in exc.value.messages


class TestAdminPaymentUpdate:
    def test_mark_paid(self):
        order = _make_order(payment_method="cod")
        order.admin_update_payment(status="paid", transaction_id="cash-001", actor="admin-001")

        assert order.is_paid
        assert order.transaction_id == "cash-001"
        assert order.ordered_timeline[-1].note == "Payment marked as paid by admin"

    def test_refund_status_requires_refund_operation(self):
        order = _make_order()
        order.apply_payment(transaction_id="pay_001")
        with pytest.raises(InvalidStateError):
            order.admin_update_payment(status="refunded")

    def test_unknown_status_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.admin_update_payment(status="bogus")
