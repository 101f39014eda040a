"""Billing router - provider subscription endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_provider
from ...config import RAZORPAY_KEY_ID
from ...database import get_db
from ...models import User
from ...services.payment_gateway import RazorpayGateway, get_payment_gateway
from ...subscription_gate import has_active_subscription
from ..booking.schemas import PaymentOrderResponse
from .schemas import (
    SubscriptionOrderResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
    SubscriptionVerifyRequest,
    SubscriptionVerifyResponse,
)
from .service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


def get_subscription_service(
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db, gateway)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(current_user: User = Depends(get_current_provider)):
    """Whether the current provider passes the subscription gate"""
    profile = current_user.provider_profile
    return SubscriptionStatusResponse(
        active=has_active_subscription(current_user),
        expiryDate=profile.subscription_expiry if profile else None,
    )


@router.post("/create-order", response_model=SubscriptionOrderResponse)
async def create_subscription_order(
    current_user: User = Depends(get_current_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a payment order for a yearly subscription"""
    order = await service.create_order(current_user)
    return SubscriptionOrderResponse(
        message="Payment order created successfully",
        order=PaymentOrderResponse(
            id=order["id"],
            amount=order.get("amount", 0),
            currency=order.get("currency", "INR"),
            receipt=order.get("receipt"),
        ),
        keyId=RAZORPAY_KEY_ID,
    )


@router.post("/verify", response_model=SubscriptionVerifyResponse)
async def verify_subscription_payment(
    data: SubscriptionVerifyRequest,
    current_user: User = Depends(get_current_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Verify payment and activate the subscription"""
    subscription = service.verify_and_activate(
        current_user, data.orderId, data.paymentId, data.signature
    )
    return SubscriptionVerifyResponse(
        message="Payment verified and subscription activated successfully",
        subscription=SubscriptionResponse(
            id=subscription.id,
            startDate=subscription.start_date,
            endDate=subscription.end_date,
            status=subscription.status,
            amount=subscription.amount,
        ),
    )
