"""Read-side summaries over orders for the admin dashboard."""

from collections import Counter
from datetime import UTC, datetime, timedelta

from protean.utils.globals import current_domain

from ordering.cart.cart import as_naive_utc
from ordering.order.order import Order, PaymentStatus

_COLLECTED = {PaymentStatus.PAID.value, PaymentStatus.PARTIALLY_REFUNDED.value}


def collected_revenue(order) -> float:
    """Money kept from an order: its total minus refunds, once payment was collected."""
    if order.payment_status not in _COLLECTED:
        return 0.0
    return round(order.pricing.total - (order.refund_amount or 0.0), 2)


def percent_change(current: float, previous: float) -> int:
    if previous <= 0:
        return 0
    return round((current - previous) / previous * 100)


def order_summary(now=None) -> dict:
    now = as_naive_utc(now or datetime.now(UTC))
    recent_start = now - timedelta(days=30)
    previous_start = now - timedelta(days=60)

    orders = current_domain.repository_for(Order).matching()

    def created(order):
        return as_naive_utc(order.created_at)

    recent = [o for o in orders if created(o) and created(o) >= recent_start]
    previous = [o for o in orders if created(o) and previous_start <= created(o) < recent_start]

    recent_revenue = sum(collected_revenue(o) for o in recent)
    previous_revenue = sum(collected_revenue(o) for o in previous)

    return {
        "total_orders": len(orders),
        "total_revenue": round(sum(collected_revenue(o) for o in orders), 2),
        "recent_orders": len(recent),
        "order_change": percent_change(len(recent), len(previous)),
        "revenue_change": percent_change(recent_revenue, previous_revenue),
        "orders_by_status": dict(Counter(o.status for o in orders)),
    }
