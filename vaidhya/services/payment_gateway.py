"""Razorpay payment gateway - order creation, signature verification and refunds"""

import logging
from typing import Optional

import httpx

from ..config import (
    DEFAULT_CURRENCY,
    RAZORPAY_API_URL,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    RAZORPAY_TIMEOUT_SECONDS,
)
from ..errors import PaymentGatewayError
from ..webhook_security import verify_checkout_signature

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Thin async client over the Razorpay Orders and Refunds API"""

    def __init__(
        self,
        key_id: Optional[str] = RAZORPAY_KEY_ID,
        key_secret: Optional[str] = RAZORPAY_KEY_SECRET,
        base_url: str = RAZORPAY_API_URL,
        timeout: float = RAZORPAY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

        if not self.is_available():
            logger.warning(
                "RAZORPAY_KEY_ID/RAZORPAY_KEY_SECRET not set; payment endpoints will fail until configured"
            )

    def is_available(self) -> bool:
        """Check if Razorpay credentials are configured"""
        return bool(self.key_id and self.key_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.key_id or "", self.key_secret or ""),
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _post(self, path: str, payload: dict) -> dict:
        if not self.is_available():
            raise PaymentGatewayError("Payment gateway is not configured")

        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"❌ Razorpay {path} failed with {e.response.status_code}: {e.response.text[:200]}"
            )
            raise PaymentGatewayError(
                "Payment gateway rejected the request", gateway_status=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Razorpay {path} transport error: {e}")
            raise PaymentGatewayError("Payment gateway is unreachable") from e

    async def create_order(
        self,
        amount_minor_units: int,
        receipt: str,
        currency: str = DEFAULT_CURRENCY,
        notes: Optional[dict] = None,
    ) -> dict:
        """
        Create a payment order.

        Args:
            amount_minor_units: Amount in paise (price * 100)
            receipt: Merchant receipt reference
            currency: ISO currency code
            notes: Free-form key/value metadata stored with the order

        Returns:
            Order dict with at least ``id``, ``amount``, ``currency`` and ``receipt``
        """
        order = await self._post(
            "/orders",
            {
                "amount": amount_minor_units,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )
        logger.info(f"✅ Razorpay order {order.get('id')} created for {amount_minor_units} {currency}")
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Verify the checkout callback signature"""
        return verify_checkout_signature(self.key_secret, order_id, payment_id, signature)

    async def refund(self, payment_id: str, amount_minor_units: Optional[int] = None) -> dict:
        """Refund a captured payment, in full unless an amount is given"""
        payload = {} if amount_minor_units is None else {"amount": amount_minor_units}
        refund = await self._post(f"/payments/{payment_id}/refund", payload)
        logger.info(f"✅ Refund {refund.get('id')} requested for payment {payment_id}")
        return refund


_gateway: Optional[RazorpayGateway] = None


def get_payment_gateway() -> RazorpayGateway:
    """Dependency returning the process-wide gateway"""
    global _gateway
    if _gateway is None:
        _gateway = RazorpayGateway()
    return _gateway
