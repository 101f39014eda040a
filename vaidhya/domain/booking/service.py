"""
Booking service - appointment creation and payment confirmation

Booking is a two-step transaction around an external payment:

1. ``initiate_booking`` resolves the slot and price, asks the gateway for an
   order and only then writes a ``pending`` appointment (``confirmed`` for
   in-person visits). A gateway failure leaves nothing behind.
2. ``confirm_payment`` verifies the checkout signature, marks the appointment
   paid, re-checks the doctor's availability and commits the slot with a
   compare-and-swap. A slot that is gone, disabled, on leave or already taken
   cancels the appointment and refunds the payment.
"""

import logging
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    PaymentGatewayError,
    PaymentVerificationFailed,
    SlotNoLongerAvailable,
)
from ...models import APPOINTMENT_PROVIDER_ROLES, Appointment, User
from ...services.notification_service import NotificationService
from ...services.payment_gateway import RazorpayGateway
from ..availability.service import AvailabilityService
from ..availability.time_calculator import to_clinic_time, weekday_and_time
from . import state_machine
from .repository import BookingRepository
from .schemas import PatientDetails
from .slot_resolver import Resolution, SlotResolver

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_PERCENTAGE = 10.0
SLOT_LOST_REASON = "Slot became unavailable before payment completed"
PAYMENT_FAILED_REASON = "Payment verification failed"

# Appointment type -> column referencing the provider
PROVIDER_COLUMNS = {
    "doctor": Appointment.doctor_id,
    "hospital": Appointment.hospital_id,
    "service": Appointment.service_vendor_id,
}

# Provider role -> appointment type it serves
ROLE_APPOINTMENT_TYPES = {role: kind for kind, role in APPOINTMENT_PROVIDER_ROLES.items()}


def to_minor_units(amount: float) -> int:
    """Rupees to paise"""
    return int(round(amount * 100))


class BookingService:
    """Business logic for booking and paying for appointments"""

    def __init__(self, db: Session, gateway: RazorpayGateway, notifier: NotificationService):
        self.db = db
        self.repo = BookingRepository()
        self.gateway = gateway
        self.notifier = notifier
        self.resolver = SlotResolver(db)
        self.availability = AvailabilityService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_provider(self, appointment_type: str, provider_id: int) -> User:
        role = APPOINTMENT_PROVIDER_ROLES[appointment_type]
        provider = self.repo.get_user_by_id(self.db, provider_id)
        if not provider or provider.role != role:
            raise NotFound(f"{role.capitalize()} not found", provider_id=provider_id)
        return provider

    def get_appointment(self, public_id: str) -> Appointment:
        appointment = self.repo.get_appointment_by_public_id(self.db, public_id)
        if not appointment:
            raise NotFound("Appointment not found", appointment_id=public_id)
        return appointment

    # ------------------------------------------------------------------
    # Step 1: create pending appointment + payment order
    # ------------------------------------------------------------------

    async def initiate_booking(
        self,
        customer: User,
        appointment_type: str,
        provider_id: int,
        date_time: datetime,
        selector: str,
        patient_details: Optional[PatientDetails] = None,
        notes: Optional[str] = None,
        department: Optional[str] = None,
    ) -> tuple[Appointment, dict]:
        """
        Validate and create an appointment awaiting payment.

        ``selector`` is the consultation type for doctors, the service name for
        hospitals and the service key for vendors.

        Returns:
            (appointment, payment order dict)
        """
        if customer.role != "customer":
            raise Forbidden("Only customers can book appointments")

        provider = self.get_provider(appointment_type, provider_id)
        local_time = to_clinic_time(date_time)

        if appointment_type == "doctor":
            resolution = self.resolver.resolve_doctor(provider, local_time, selector)
        elif appointment_type == "hospital":
            resolution = self.resolver.resolve_hospital(provider, selector)
        else:
            resolution = self.resolver.resolve_vendor(provider, selector)

        amount_minor = to_minor_units(resolution.price)
        receipt = f"apt_{customer.id}_{provider.id}_{int(time.time())}"
        order = await self.gateway.create_order(
            amount_minor,
            receipt,
            currency=resolution.currency,
            notes={"appointmentType": appointment_type, "customerId": str(customer.id)},
        )

        consultation_type = selector if appointment_type == "doctor" else None
        appointment = self.repo.create_appointment(
            self.db,
            type=appointment_type,
            customer_id=customer.id,
            date_time=local_time,
            consultation_type=consultation_type,
            provider_service_id=resolution.service.id,
            amount=resolution.price,
            currency=resolution.currency,
            status=state_machine.initial_status(consultation_type),
            notes=notes,
            payment_order_id=order["id"],
            patient_details=patient_details.model_dump() if patient_details else None,
            **self._provider_fields(appointment_type, provider, resolution, department),
        )

        logger.info(
            f"✅ Appointment {appointment.appointment_id} ({appointment_type}) created for customer "
            f"{customer.id} with provider {provider.id} at {local_time:%Y-%m-%d %H:%M}, "
            f"order {order['id']} for {amount_minor}"
        )
        return appointment, order

    @staticmethod
    def _provider_fields(
        appointment_type: str, provider: User, resolution: Resolution, department: Optional[str]
    ) -> dict:
        """Provider reference plus the details snapshotted at booking time"""
        profile = provider.provider_profile
        address = profile.formatted_address() if profile else ""

        if appointment_type == "doctor":
            return {
                "doctor_id": provider.id,
                "specialty": profile.specialty if profile else None,
                "clinic_name": profile.clinic_name if profile else None,
                "clinic_address": address,
            }
        if appointment_type == "hospital":
            return {
                "hospital_id": provider.id,
                "department": department,
                "service": resolution.service.name,
                "hospital_address": address,
            }

        service_types = (profile.service_types if profile else None) or []
        return {
            "service_vendor_id": provider.id,
            "service_type": service_types[0] if service_types else "General",
            "service_name": resolution.service.name,
            "vendor_address": address,
        }

    # ------------------------------------------------------------------
    # Step 2: payment callback
    # ------------------------------------------------------------------

    async def confirm_payment(
        self, customer: User, appointment_public_id: str, order_id: str, payment_id: str, signature: str
    ) -> Appointment:
        """
        Apply a checkout callback to an appointment.

        Raises:
            Forbidden: the caller is not the customer who booked it
            PaymentVerificationFailed: signature or order mismatch; the unpaid
                appointment is cancelled
            SlotNoLongerAvailable: the slot was committed by another appointment,
                disabled, removed or covered by leave since booking; this one is
                cancelled and its payment refunded
        """
        appointment = self.get_appointment(appointment_public_id)

        if appointment.customer_id != customer.id:
            logger.warning(
                f"⚠️ User {customer.id} sent a payment callback for {appointment.appointment_id}"
            )
            raise Forbidden("You do not have permission to pay for this appointment")

        if appointment.is_paid and appointment.payment_id == payment_id:
            logger.info(f"ℹ️ Payment {payment_id} already applied to {appointment.appointment_id}")
            return appointment

        order_matches = not appointment.payment_order_id or appointment.payment_order_id == order_id
        if not order_matches or not self.gateway.verify_signature(order_id, payment_id, signature):
            self._cancel_unpaid(appointment)
            raise PaymentVerificationFailed(
                PAYMENT_FAILED_REASON, appointment_id=appointment.public_id
            )

        current = appointment.status
        target = state_machine.next_status(current, "pay", appointment.consultation_type)
        marked = self.repo.compare_and_set_status(
            self.db,
            appointment.id,
            (current,),
            target,
            require_unpaid=True,
            is_paid=True,
            payment_id=payment_id,
        )
        if not marked:
            self.db.rollback()
            self.db.refresh(appointment)
            if appointment.is_paid and appointment.payment_id == payment_id:
                return appointment
            raise InvalidTransition(
                f"Appointment changed to {appointment.status} while confirming payment",
                status=appointment.status,
            )

        if appointment.type == "doctor":
            if not self._commit_slot(appointment):
                await self._compensate_lost_slot(appointment, payment_id)
                raise SlotNoLongerAvailable(
                    "The selected slot is no longer available. Your payment will be refunded.",
                    appointment_id=appointment.public_id,
                    refund_status=appointment.refund_status,
                )
            appointment.slot_committed = True

        self._record_transaction(appointment, payment_id)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            f"✅ Payment {payment_id} confirmed for {appointment.appointment_id}, status={appointment.status}"
        )

        try:
            await self.notifier.notify_booking_confirmed(appointment)
        except Exception as e:
            logger.error(f"❌ Failed to send confirmation for {appointment.appointment_id}: {e}")

        return appointment

    def _cancel_unpaid(self, appointment: Appointment) -> None:
        if appointment.is_paid:
            logger.warning(
                f"⚠️ Rejected payment callback for already-paid appointment {appointment.appointment_id}"
            )
            return
        cancelled = self.repo.compare_and_set_status(
            self.db,
            appointment.id,
            state_machine.ACTIVE_STATUSES,
            state_machine.CANCELLED,
            require_unpaid=True,
            cancelled_at=datetime.utcnow(),
            cancellation_reason=PAYMENT_FAILED_REASON,
        )
        self.db.commit()
        if cancelled:
            logger.warning(f"⚠️ Appointment {appointment.appointment_id} cancelled: payment verification failed")

    def _commit_slot(self, appointment: Appointment) -> bool:
        """
        Re-run the availability check and take the slot.

        False when the day was disabled, the slot removed, leave added or the
        slot already committed by another appointment.
        """
        doctor_id = appointment.doctor_id
        weekday, time_of_day = weekday_and_time(appointment.date_time)

        if self.availability.is_working_at(doctor_id, weekday, time_of_day) is None:
            logger.warning(
                f"⚠️ Slot of {appointment.appointment_id} ({weekday} {time_of_day}) was removed or disabled"
            )
            return False
        if self.availability.is_on_leave(doctor_id, appointment.date_time):
            logger.warning(f"⚠️ Provider {doctor_id} went on leave on the date of {appointment.appointment_id}")
            return False

        return bool(self.availability.mark_slot_booked(doctor_id, weekday, time_of_day, True))

    async def _compensate_lost_slot(self, appointment: Appointment, payment_id: str) -> None:
        self.repo.compare_and_set_status(
            self.db,
            appointment.id,
            (appointment.status,),
            state_machine.CANCELLED,
            cancelled_at=datetime.utcnow(),
            cancellation_reason=SLOT_LOST_REASON,
            slot_committed=False,
        )
        self.db.commit()
        logger.warning(
            f"⚠️ Slot lost for {appointment.appointment_id}; refunding payment {payment_id}"
        )

        try:
            await self.gateway.refund(payment_id, to_minor_units(appointment.amount))
            appointment.refund_status = "requested"
        except PaymentGatewayError as e:
            appointment.refund_status = "failed"
            logger.error(f"❌ Refund failed for payment {payment_id}: {e.message}")
        self.db.commit()
        self.db.refresh(appointment)

    def _record_transaction(self, appointment: Appointment, payment_id: str) -> None:
        service = appointment.provider_service
        percentage = service.commission_percentage if service else DEFAULT_COMMISSION_PERCENTAGE
        commission = round(appointment.amount * percentage / 100, 2)
        self.repo.add_transaction(
            self.db,
            appointment_id=appointment.id,
            provider_id=appointment.provider_id,
            amount=appointment.amount,
            commission_amount=commission,
            provider_earnings=round(appointment.amount - commission, 2),
            appointment_type=appointment.consultation_type or appointment.type,
            status="completed",
            payment_id=payment_id,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_customer_appointments(
        self, customer: User, status: Optional[str] = None, appointment_type: Optional[str] = None
    ) -> list[Appointment]:
        return self.repo.list_customer_appointments(self.db, customer.id, status, appointment_type)

    def get_latest_customer_appointment(
        self, customer: User, status: Optional[str] = None, appointment_type: Optional[str] = None
    ) -> Appointment:
        appointment = self.repo.latest_customer_appointment(
            self.db, customer.id, status, appointment_type
        )
        if not appointment:
            raise NotFound("No appointments found")
        return appointment

    def get_provider_appointments(self, provider: User, status: Optional[str] = None) -> list[Appointment]:
        appointment_type = ROLE_APPOINTMENT_TYPES.get(provider.role)
        if not appointment_type:
            raise Forbidden("Only providers have appointments to list")
        return self.repo.list_provider_appointments(
            self.db, PROVIDER_COLUMNS[appointment_type], provider.id, status
        )
