"""Cancellation and provider response - reverses slot commits and records audit fields"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import Forbidden, InvalidTransition, NotFound
from ...models import APPOINTMENT_PROVIDER_ROLES, Appointment, User
from ...services.notification_service import NotificationService
from ..availability.service import AvailabilityService
from ..availability.time_calculator import weekday_and_time
from . import state_machine
from .repository import BookingRepository

logger = logging.getLogger(__name__)

DEFAULT_REJECT_REASON = "Rejected by provider"


class CancellationService:
    """Cancel (customer or provider) and confirm/reject (provider)"""

    def __init__(self, db: Session, notifier: NotificationService):
        self.db = db
        self.repo = BookingRepository()
        self.notifier = notifier
        self.availability = AvailabilityService(db)

    def _get_appointment(self, public_id: str) -> Appointment:
        appointment = self.repo.get_appointment_by_public_id(self.db, public_id)
        if not appointment:
            raise NotFound("Appointment not found", appointment_id=public_id)
        return appointment

    @staticmethod
    def is_appointment_provider(appointment: Appointment, user: User) -> bool:
        return (
            user.role == APPOINTMENT_PROVIDER_ROLES.get(appointment.type)
            and appointment.provider_id == user.id
        )

    def _transition(self, appointment: Appointment, event: str, **fields) -> str:
        """Apply ``event`` atomically; returns the new status"""
        current = appointment.status
        target = state_machine.next_status(current, event, appointment.consultation_type)
        if target == current:
            return current

        changed = self.repo.compare_and_set_status(
            self.db, appointment.id, (current,), target, **fields
        )
        if not changed:
            self.db.rollback()
            self.db.refresh(appointment)
            state_machine.next_status(appointment.status, event, appointment.consultation_type)
            raise InvalidTransition(
                f"Appointment changed to {appointment.status} concurrently", status=appointment.status
            )
        return target

    def _release_slot(self, appointment: Appointment, had_slot: bool) -> None:
        """Free the doctor slot this appointment committed, located from its original time"""
        if appointment.type != "doctor" or not had_slot:
            return
        weekday, time_of_day = weekday_and_time(appointment.date_time)
        released = self.availability.mark_slot_booked(
            appointment.doctor_id, weekday, time_of_day, False
        )
        if released:
            logger.info(f"✅ Released slot of {appointment.appointment_id} ({weekday} {time_of_day})")

    async def cancel(self, public_id: str, actor: User, reason: Optional[str] = None) -> Appointment:
        """
        Cancel an appointment as its customer or its provider.

        Raises:
            Forbidden: actor is neither party
            AlreadyFinalized: appointment is completed or cancelled
        """
        appointment = self._get_appointment(public_id)

        if appointment.customer_id == actor.id and actor.role == "customer":
            cancelled_by = "customer"
        elif self.is_appointment_provider(appointment, actor):
            cancelled_by = "provider"
        else:
            logger.warning(f"⚠️ User {actor.id} tried to cancel appointment {appointment.appointment_id}")
            raise Forbidden("You do not have permission to cancel this appointment")

        had_slot = appointment.slot_committed
        self._transition(
            appointment,
            "cancel",
            cancelled_at=datetime.utcnow(),
            cancellation_reason=reason or f"Cancelled by {actor.role}",
            slot_committed=False,
        )
        self._release_slot(appointment, had_slot)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"✅ Appointment {appointment.appointment_id} cancelled by {actor.role} {actor.id}")

        try:
            await self.notifier.notify_cancelled(appointment, cancelled_by)
        except Exception as e:
            logger.error(f"❌ Failed to send cancellation notice for {appointment.appointment_id}: {e}")

        return appointment

    async def respond(
        self, public_id: str, provider: User, action: str, reason: Optional[str] = None
    ) -> Appointment:
        """Provider confirms or rejects an appointment"""
        appointment = self._get_appointment(public_id)

        if not self.is_appointment_provider(appointment, provider):
            logger.warning(f"⚠️ Provider {provider.id} tried to respond to {appointment.appointment_id}")
            raise Forbidden("You do not have permission to respond to this appointment")

        if action == "confirm":
            self._transition(appointment, "confirm")
        else:
            had_slot = appointment.slot_committed
            self._transition(
                appointment,
                "reject",
                cancellation_reason=reason or DEFAULT_REJECT_REASON,
                slot_committed=False,
            )
            self._release_slot(appointment, had_slot)

        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"✅ Provider {provider.id} {action}ed appointment {appointment.appointment_id}")

        try:
            await self.notifier.notify_status_changed(appointment)
        except Exception as e:
            logger.error(f"❌ Failed to send status update for {appointment.appointment_id}: {e}")

        return appointment
