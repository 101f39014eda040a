"""Subscription service - yearly provider subscription through the payment gateway"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ...config import DEFAULT_CURRENCY, SUBSCRIPTION_AMOUNT, SUBSCRIPTION_DURATION_DAYS
from ...errors import Forbidden, PaymentVerificationFailed, SubscriptionAlreadyActive
from ...models import Subscription, User
from ...services.payment_gateway import RazorpayGateway
from ...subscription_gate import has_active_subscription
from ..booking.service import to_minor_units
from .repository import BillingRepository

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Business logic for provider subscriptions"""

    def __init__(self, db: Session, gateway: RazorpayGateway):
        self.db = db
        self.repo = BillingRepository()
        self.gateway = gateway

    @staticmethod
    def _ensure_provider(user: User) -> None:
        if not user.is_provider:
            raise Forbidden("Only doctors, hospitals and vendors can subscribe")

    async def create_order(self, user: User) -> dict:
        """Order for one subscription period"""
        self._ensure_provider(user)
        if has_active_subscription(user):
            raise SubscriptionAlreadyActive(
                "You already have an active subscription",
                expiryDate=user.provider_profile.subscription_expiry.isoformat(),
            )

        receipt = f"sub_{uuid.uuid4().hex[:20]}"
        order = await self.gateway.create_order(
            to_minor_units(SUBSCRIPTION_AMOUNT),
            receipt,
            currency=DEFAULT_CURRENCY,
            notes={"purpose": "subscription", "userId": str(user.id)},
        )
        logger.info(f"✅ Subscription order {order['id']} created for provider {user.id}")
        return order

    def verify_and_activate(self, user: User, order_id: str, payment_id: str, signature: str) -> Subscription:
        """Verify the checkout signature and activate one subscription period"""
        self._ensure_provider(user)

        existing = self.repo.get_subscription_by_payment_id(self.db, payment_id)
        if existing and existing.user_id == user.id:
            logger.info(f"ℹ️ Subscription payment {payment_id} already applied")
            return existing

        if existing or not self.gateway.verify_signature(order_id, payment_id, signature):
            logger.warning(f"⚠️ Subscription payment verification failed for provider {user.id}")
            raise PaymentVerificationFailed("Invalid payment signature")

        start_date = datetime.utcnow()
        subscription = self.repo.activate_subscription(
            self.db,
            user,
            order_id=order_id,
            payment_id=payment_id,
            amount=SUBSCRIPTION_AMOUNT,
            start_date=start_date,
            end_date=start_date + timedelta(days=SUBSCRIPTION_DURATION_DAYS),
        )
        logger.info(
            f"✅ Subscription activated for provider {user.id} until {subscription.end_date:%Y-%m-%d}"
        )
        return subscription
