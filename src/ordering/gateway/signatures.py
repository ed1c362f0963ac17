"""Razorpay signature checks.

Checkout signatures are an HMAC-SHA256 of ``order_id|payment_id`` keyed with
the API key secret. Webhook signatures are an HMAC-SHA256 of the raw request
body keyed with the webhook secret. Both are hex digests compared in
constant time.
"""

import hashlib
import hmac


def _hexdigest(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def payment_signature(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    return _hexdigest(secret, f"{gateway_order_id}|{gateway_payment_id}".encode())


def verify_payment_signature(gateway_order_id: str, gateway_payment_id: str, signature: str, secret: str) -> bool:
    if not signature or not secret:
        return False
    expected = payment_signature(gateway_order_id, gateway_payment_id, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())


def webhook_signature(body: bytes, secret: str) -> str:
    return _hexdigest(secret, body)


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    if not signature or not secret:
        return False
    return hmac.compare_digest(webhook_signature(body, secret).encode(), signature.encode())
