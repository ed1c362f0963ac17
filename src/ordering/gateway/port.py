"""Payment gateway port (abstract interface).

Amounts crossing this boundary are integer minor units (paise). Adapters for
Razorpay (production) and a configurable fake (dev/test) implement it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GatewayOrder:
    """An order created on the gateway side, to be paid through checkout."""

    id: str
    amount: int
    currency: str
    receipt: str | None = None
    status: str = "created"


@dataclass(frozen=True)
class RefundResult:
    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    @abstractmethod
    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict,
    ) -> GatewayOrder:
        """Create a gateway order; raises UpstreamError when the gateway is unavailable."""
        ...

    @abstractmethod
    def refund(self, payment_id: str, amount_minor: int | None = None) -> RefundResult:
        """Refund a captured payment, fully when ``amount_minor`` is None."""
        ...

    @abstractmethod
    def verify_payment_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
        secret: str,
    ) -> bool:
        """Verify a checkout signature over ``order_id|payment_id``."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, body: bytes, signature: str, secret: str) -> bool:
        """Verify that a raw webhook body is authentically from the gateway."""
        ...
