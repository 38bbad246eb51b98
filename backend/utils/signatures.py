"""
Razorpay payment signature helpers.

Razorpay signs a successful checkout as
    hex(HMAC_SHA256(key=key_secret, msg="{order_id}|{payment_id}"))
and hands the result to the browser. Recomputing it server-side with the
shared secret is the only proof that the payment actually happened.
"""
import hashlib
import hmac
import logging

from domain.constants import SIGNATURE_SEPARATOR

logger = logging.getLogger(__name__)


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of "{order_id}|{payment_id}" keyed by `secret`."""
    message = f"{order_id}{SIGNATURE_SEPARATOR}{payment_id}"
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """
    Constant-time check of a checkout signature.

    FAILS CLOSED when the secret is not configured or any part is empty.
    """
    if not secret:
        logger.error(
            "RAZORPAY_KEY_SECRET not configured — rejecting payment signature. "
            "Set RAZORPAY_KEY_SECRET in .env to accept payments."
        )
        return False

    if not order_id or not payment_id or not signature:
        return False

    expected = compute_payment_signature(order_id, payment_id, secret)
    # bytes, so non-ASCII input compares unequal instead of raising TypeError
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
