"""Razorpay payment gateway adapter (razorpay-python SDK)."""

import razorpay
import structlog
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from ordering.errors import UpstreamError
from ordering.gateway.port import GatewayOrder, PaymentGateway, RefundResult

logger = structlog.get_logger(__name__)

_GATEWAY_ERRORS = (BadRequestError, GatewayError, ServerError, OSError)


class RazorpayGateway(PaymentGateway):
    def __init__(self, key_id: str, key_secret: str, client: razorpay.Client | None = None) -> None:
        self.key_id = key_id
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount_minor: int, currency: str, receipt: str, notes: dict) -> GatewayOrder:
        try:
            order = self.client.order.create(
                data={
                    "amount": amount_minor,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": notes,
                }
            )
        except _GATEWAY_ERRORS as exc:
            logger.error("razorpay_order_create_failed", receipt=receipt, error=str(exc))
            raise UpstreamError("Failed to create payment order") from exc

        return GatewayOrder(
            id=order["id"],
            amount=order["amount"],
            currency=order["currency"],
            receipt=order.get("receipt"),
            status=order.get("status", "created"),
        )

    def refund(self, payment_id: str, amount_minor: int | None = None) -> RefundResult:
        data = {"amount": amount_minor} if amount_minor is not None else {}
        try:
            refund = self.client.payment.refund(payment_id, data)
        except _GATEWAY_ERRORS as exc:
            logger.error("razorpay_refund_failed", payment_id=payment_id, error=str(exc))
            return RefundResult(success=False, failure_reason=str(exc))

        return RefundResult(
            success=True,
            gateway_refund_id=refund.get("id"),
            gateway_status=refund.get("status"),
        )

    def verify_payment_signature(
        self, gateway_order_id: str, gateway_payment_id: str, signature: str, secret: str
    ) -> bool:
        if not signature or not secret:
            return False
        try:
            self.client.utility.verify_signature(f"{gateway_order_id}|{gateway_payment_id}", signature, secret)
        except (SignatureVerificationError, TypeError):
            return False
        return True

    def verify_webhook_signature(self, body: bytes, signature: str, secret: str) -> bool:
        if not signature or not secret:
            return False
        try:
            self.client.utility.verify_webhook_signature(body.decode("utf-8"), signature, secret)
        except (SignatureVerificationError, TypeError, UnicodeDecodeError):
            return False
        return True
