"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..booking.schemas import PaymentOrderResponse


class SubscriptionOrderResponse(BaseModel):
    message: str
    order: PaymentOrderResponse
    keyId: Optional[str] = None


class SubscriptionVerifyRequest(BaseModel):
    """Checkout callback for a subscription order"""

    orderId: str
    paymentId: str
    signature: str


class SubscriptionResponse(BaseModel):
    id: int
    startDate: datetime
    endDate: datetime
    status: str
    amount: float


class SubscriptionVerifyResponse(BaseModel):
    message: str
    subscription: SubscriptionResponse


class SubscriptionStatusResponse(BaseModel):
    active: bool
    expiryDate: Optional[datetime] = None
