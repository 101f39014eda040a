"""
Booking error taxonomy

Every error is an HTTPException so routers let them propagate untouched; the
``detail`` payload carries a stable ``error`` code plus any retry context
(for example the free slots of the requested day).
"""

from typing import Any, Optional

from fastapi import HTTPException


class BookingError(HTTPException):
    """Base class for structured booking failures"""

    status_code = 400
    code = "booking_error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(
            status_code=type(self).status_code,
            detail={"error": self.code, "message": message, **context},
        )


class NotFound(BookingError):
    status_code = 404
    code = "not_found"


class SlotUnavailable(BookingError):
    status_code = 409
    code = "slot_unavailable"

    def __init__(self, message: str, available_slots: Optional[list[dict]] = None, **context: Any):
        self.available_slots = available_slots or []
        super().__init__(message, available_slots=self.available_slots, **context)


class ProviderOnLeave(BookingError):
    status_code = 409
    code = "provider_on_leave"


class ServiceNotOffered(BookingError):
    status_code = 400
    code = "service_not_offered"


class PriceNotConfigured(BookingError):
    status_code = 400
    code = "price_not_configured"


class PaymentVerificationFailed(BookingError):
    status_code = 400
    code = "payment_verification_failed"


class SlotNoLongerAvailable(BookingError):
    status_code = 409
    code = "slot_no_longer_available"


class Forbidden(BookingError):
    status_code = 403
    code = "forbidden"


class AlreadyFinalized(BookingError):
    status_code = 409
    code = "already_finalized"


class InvalidTransition(BookingError):
    status_code = 409
    code = "invalid_transition"


class InvalidSchedule(BookingError):
    status_code = 400
    code = "invalid_schedule"


class SubscriptionRequired(BookingError):
    status_code = 403
    code = "subscription_required"


class PaymentGatewayError(BookingError):
    status_code = 502
    code = "payment_gateway_error"


class SubscriptionAlreadyActive(BookingError):
    status_code = 409
    code = "subscription_already_active"
