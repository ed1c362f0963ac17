"""Configurable fake payment gateway for development and testing.

Creates predictable gateway orders without any network calls, checks
signatures locally with the Razorpay HMAC scheme, and can be
switched into failure mode to exercise the upstream error paths.
"""

from uuid import uuid4

from ordering.errors import UpstreamError
from ordering.gateway.signatures import verify_payment_signature, verify_webhook_signature
from ordering.gateway.port import GatewayOrder, PaymentGateway, RefundResult


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(self, amount_minor: int, currency: str, receipt: str, notes: dict) -> GatewayOrder:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount_minor,
                "currency": currency,
                "receipt": receipt,
                "notes": dict(notes),
            }
        )
        if not self.should_succeed:
            raise UpstreamError(self.failure_reason)
        return GatewayOrder(
            id=f"order_fake{uuid4().hex[:14]}",
            amount=amount_minor,
            currency=currency,
            receipt=receipt,
        )

    def refund(self, payment_id: str, amount_minor: int | None = None) -> RefundResult:
        self.calls.append({"method": "refund", "payment_id": payment_id, "amount": amount_minor})
        if self.should_succeed:
            return RefundResult(
                success=True,
                gateway_refund_id=f"rfnd_fake{uuid4().hex[:12]}",
                gateway_status="processed",
            )
        return RefundResult(success=False, failure_reason=self.failure_reason)

    def verify_payment_signature(
        self, gateway_order_id: str, gateway_payment_id: str, signature: str, secret: str
    ) -> bool:
        return verify_payment_signature(gateway_order_id, gateway_payment_id, signature, secret)

    def verify_webhook_signature(self, body: bytes, signature: str, secret: str) -> bool:
        return verify_webhook_signature(body, signature, secret)
