"""
Payment Signature Verification

Razorpay signs a captured checkout as HMAC-SHA256(key_secret, "order_id|payment_id").
Signatures are compared in constant time.
"""

import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def checkout_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Signature Razorpay returns to the client after a successful checkout"""
    return compute_hmac_sha256(secret, f"{order_id}|{payment_id}".encode("utf-8"))


def verify_checkout_signature(
    secret: Optional[str], order_id: str, payment_id: str, signature: Optional[str]
) -> bool:
    """
    Verify a checkout callback signature.

    Returns False (never raises) when the secret is missing or any part is empty.
    """
    if not secret:
        logger.error("❌ RAZORPAY_KEY_SECRET not configured - cannot verify payment signature")
        return False
    if not order_id or not payment_id or not signature:
        logger.warning("⚠️ Payment verification called with missing order/payment/signature")
        return False

    expected = checkout_signature(secret, order_id, payment_id)
    if not constant_time_compare(expected, signature):
        logger.warning(f"⚠️ Payment signature mismatch for order {order_id}")
        return False

    logger.info(f"✅ Payment signature verified for order {order_id}")
    return True

