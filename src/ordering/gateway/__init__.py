"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- RazorpayGateway when API credentials are configured
- FakeGateway for development and testing
"""

from ordering.config import get_settings
from ordering.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.razorpay_key_id and settings.razorpay_key_secret:
            from ordering.gateway.razorpay_adapter import RazorpayGateway

            _current_gateway = RazorpayGateway(settings.razorpay_key_id, settings.razorpay_key_secret)
        else:
            from ordering.gateway.fake_adapter import FakeGateway

            _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
