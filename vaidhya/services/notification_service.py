"""
Appointment Notification Service
Sends SMS to the customer and the provider for booking workflow events.
Delivery is best effort: failures are logged and reported in the result dict.
"""

import logging
from typing import Optional

import httpx

from ..config import FAST2SMS_API_KEY, FAST2SMS_API_URL, NOTIFICATIONS_ENABLED
from ..models import Appointment, User
from ..shared.validators import validate_mobile_number

logger = logging.getLogger(__name__)

PROVIDER_TITLES = {"doctor": "Dr. ", "hospital": "", "service": ""}


def format_appointment_time(appointment: Appointment) -> str:
    """e.g. 'Monday, 16 June 2025 at 09:15'"""
    return appointment.date_time.strftime("%A, %d %B %Y at %H:%M")


def provider_display_name(appointment: Appointment) -> str:
    provider = appointment.provider
    name = provider.name if provider else "your provider"
    return f"{PROVIDER_TITLES.get(appointment.type, '')}{name}"


class NotificationService:
    """Fast2SMS sender for appointment events"""

    def __init__(
        self,
        api_key: Optional[str] = FAST2SMS_API_KEY,
        api_url: str = FAST2SMS_API_URL,
        enabled: bool = NOTIFICATIONS_ENABLED,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.enabled = enabled
        self.transport = transport

    async def send_sms(self, mobile_number: Optional[str], message: str) -> tuple[bool, Optional[str]]:
        """
        Send one SMS through Fast2SMS quick route

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        if not self.enabled:
            return False, "Notifications disabled"
        if not self.api_key:
            return False, "FAST2SMS_API_KEY not configured"

        try:
            number = validate_mobile_number(mobile_number)
        except ValueError:
            logger.warning(f"⚠️ Invalid mobile number for SMS: {mobile_number}")
            return False, "Invalid mobile number"
        if not number:
            return False, "No mobile number provided"

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json={"route": "q", "message": message, "numbers": number},
                    headers={"authorization": self.api_key},
                    timeout=10.0,
                )
            if response.status_code != 200:
                logger.error(f"❌ Fast2SMS error {response.status_code}: {response.text[:200]}")
                return False, f"HTTP {response.status_code}"
            logger.info(f"✅ SMS sent to {number}")
            return True, None
        except httpx.HTTPError as e:
            logger.error(f"❌ Fast2SMS transport error: {e}")
            return False, str(e)

    async def _notify_parties(
        self,
        notification_type: str,
        customer: Optional[User],
        customer_message: Optional[str],
        provider: Optional[User],
        provider_message: Optional[str],
    ) -> dict:
        result = {"customer_sent": False, "provider_sent": False, "errors": []}

        for key, user, message in (
            ("customer_sent", customer, customer_message),
            ("provider_sent", provider, provider_message),
        ):
            if not user or not message:
                continue
            try:
                sent, error = await self.send_sms(user.mobile_number, message)
            except Exception as e:
                sent, error = False, str(e)
                logger.error(f"❌ Failed to send {notification_type} SMS to user {user.id}: {e}")
            result[key] = sent
            if error:
                result["errors"].append(error)
                logger.debug(f"ℹ️ {notification_type} SMS to user {user.id} not sent: {error}")

        return result

    async def notify_booking_confirmed(self, appointment: Appointment) -> dict:
        """Tell both parties a paid appointment is on the calendar"""
        when = format_appointment_time(appointment)
        customer = appointment.customer
        label = appointment.consultation_type or appointment.service_name or appointment.service or "appointment"
        return await self._notify_parties(
            "booking_confirmed",
            customer,
            f"Your appointment with {provider_display_name(appointment)} is confirmed for {when}. "
            f"Type: {label}. Thank you for booking with Vaidhya.",
            appointment.provider,
            f"New appointment with {customer.name if customer else 'a customer'} on {when}. Type: {label}.",
        )

    async def notify_cancelled(self, appointment: Appointment, cancelled_by: str) -> dict:
        """Tell the party that did not cancel"""
        when = format_appointment_time(appointment)
        if cancelled_by == "customer":
            customer = appointment.customer
            return await self._notify_parties(
                "cancelled",
                None,
                None,
                appointment.provider,
                f"Appointment with {customer.name if customer else 'a customer'} on {when} was cancelled.",
            )
        return await self._notify_parties(
            "cancelled",
            appointment.customer,
            f"Your appointment with {provider_display_name(appointment)} on {when} was cancelled.",
            None,
            None,
        )

    async def notify_status_changed(self, appointment: Appointment) -> dict:
        """Tell the customer the provider confirmed or rejected"""
        when = format_appointment_time(appointment)
        return await self._notify_parties(
            "status_changed",
            appointment.customer,
            f"Your appointment with {provider_display_name(appointment)} on {when} is now {appointment.status}.",
            None,
            None,
        )


def get_notification_service() -> NotificationService:
    return NotificationService()
