"""Billing repository - Database operations for provider subscriptions"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import ProviderProfile, Subscription, User


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_subscription_by_payment_id(db: Session, payment_id: str) -> Optional[Subscription]:
        return db.query(Subscription).filter(Subscription.payment_id == payment_id).first()

    @staticmethod
    def activate_subscription(
        db: Session,
        user: User,
        order_id: str,
        payment_id: str,
        amount: float,
        start_date: datetime,
        end_date: datetime,
    ) -> Subscription:
        """Record a paid subscription and switch the provider gate on"""
        subscription = Subscription(
            user_id=user.id,
            order_id=order_id,
            payment_id=payment_id,
            amount=amount,
            status="completed",
            start_date=start_date,
            end_date=end_date,
        )
        db.add(subscription)

        profile = user.provider_profile
        if profile is None:
            profile = ProviderProfile(user_id=user.id)
            db.add(profile)
            user.provider_profile = profile
        profile.subscription_active = True
        profile.subscription_expiry = end_date

        db.commit()
        db.refresh(subscription)
        return subscription
