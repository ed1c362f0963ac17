"""Ordering bounded context: shopping cart, orders and payment reconciliation.

Carts and orders are standard CQRS aggregates. Checkout snapshots a cart into
an order, and the Razorpay payment flow confirms the order exactly once.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
