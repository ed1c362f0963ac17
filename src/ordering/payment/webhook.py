"""Razorpay webhook processing.

The raw request body is authenticated with an HMAC keyed by the webhook
secret, then dispatched by event name onto the same reconciliation commands
the client-side verification uses. Events for unknown orders, or that
conflict with the order's settled payment state, are logged and
acknowledged so the gateway stops retrying them.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.config import get_settings
from ordering.errors import InvalidStateError, SignatureInvalidError, UpstreamError
from ordering.gateway import get_gateway
from ordering.order.order import Order
from ordering.payment.reconciliation import RecordPaymentFailure, settle_order

logger = structlog.get_logger(__name__)


def process_webhook(body: bytes, signature: str | None) -> str:
    """Authenticate and handle a webhook delivery; returns the outcome label."""
    secret = get_settings().razorpay_webhook_secret
    if not secret:
        raise UpstreamError("Webhook secret not configured", status_code=500)
    if not signature:
        raise SignatureInvalidError("Missing webhook signature")
    if not get_gateway().verify_webhook_signature(body, signature, secret):
        logger.warning("Webhook signature mismatch")
        raise SignatureInvalidError("Invalid webhook signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise ValidationError({"body": ["Webhook body must be valid JSON"]}) from None

    return handle_webhook_event(event)


def _entity(payload: dict, name: str) -> dict:
    return (payload.get(name) or {}).get("entity") or {}


def handle_webhook_event(event: dict) -> str:
    name = event.get("event")
    payload = event.get("payload") or {}
    payment = _entity(payload, "payment")

    if name == "payment.captured":
        return _settle(payment.get("order_id"), payment.get("id"), "Payment captured via webhook")
    if name == "order.paid":
        order_entity = _entity(payload, "order")
        return _settle(order_entity.get("id") or payment.get("order_id"), payment.get("id"), "Order paid via webhook")
    if name == "payment.failed":
        return _fail(payment.get("order_id"), payment.get("error_description"))

    logger.info("Ignoring unhandled webhook event", webhook_event=name)
    return "ignored"


def _find_order(gateway_order_id):
    order = current_domain.repository_for(Order).by_gateway_order_id(gateway_order_id)
    if order is None:
        logger.warning("Webhook for unknown gateway order", gateway_order_id=gateway_order_id)
    return order


def _settle(gateway_order_id, payment_id, note) -> str:
    order = _find_order(gateway_order_id)
    if order is None:
        return "unknown_order"

    try:
        applied = settle_order(order, payment_id, gateway_order_id=gateway_order_id, note=note, source="webhook")
    except InvalidStateError as exc:
        logger.warning("Webhook payment rejected", order_id=str(order.id), error=exc.message)
        return "rejected"
    return "applied" if applied else "duplicate"


def _fail(gateway_order_id, reason) -> str:
    order = _find_order(gateway_order_id)
    if order is None:
        return "unknown_order"

    try:
        recorded = current_domain.process(
            RecordPaymentFailure(order_id=str(order.id), reason=reason, source="webhook"),
            asynchronous=False,
        )
    except InvalidStateError as exc:
        logger.warning("Webhook payment failure rejected", order_id=str(order.id), error=exc.message)
        return "rejected"
    return "failed" if recorded else "duplicate"
