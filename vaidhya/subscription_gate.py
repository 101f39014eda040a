"""
Subscription gating for provider accounts.
Customers never need a subscription; doctors, hospitals and vendors need an
active, unexpired one to manage schedules and respond to appointments.
"""

from datetime import datetime
from typing import Optional

from .models import User


def has_active_subscription(user: User, now: Optional[datetime] = None) -> bool:
    """True for customers/admins, or providers whose subscription has not expired"""
    if not user.is_provider:
        return True

    profile = user.provider_profile
    if not profile or not profile.subscription_active or not profile.subscription_expiry:
        return False

    now = now or datetime.utcnow()
    return profile.subscription_expiry > now
