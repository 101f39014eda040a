"""Call service - video/audio sessions attached to confirmed appointments"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ...errors import Forbidden, InvalidTransition, NotFound, ServiceNotOffered
from ...models import Appointment, User
from ...services.call_session_service import CallSessionService
from ..booking.repository import BookingRepository

logger = logging.getLogger(__name__)

CALL_CONSULTATION_TYPES = ("video", "audio")
CALLABLE_STATUSES = ("upcoming", "confirmed")


class CallService:
    """Initialize, start and end appointment calls"""

    def __init__(self, db: Session, sessions: CallSessionService):
        self.db = db
        self.repo = BookingRepository()
        self.sessions = sessions

    def _participant_appointment(self, public_id: str, user: User) -> tuple[Appointment, str]:
        """Appointment plus the caller's side ("customer" or "provider")"""
        appointment = self.repo.get_appointment_by_public_id(self.db, public_id)
        if not appointment:
            raise NotFound("Appointment not found", appointment_id=public_id)

        if appointment.customer_id == user.id:
            return appointment, "customer"
        if appointment.provider_id == user.id:
            return appointment, "provider"
        raise Forbidden("Unauthorized access to this appointment")

    def initialize(self, public_id: str, user: User) -> dict:
        """
        Create (once) the channel and both tokens, return the caller's side.

        Channel name and participant ids never change after the first call;
        expired tokens are reissued for the same channel and ids.
        """
        appointment, side = self._participant_appointment(public_id, user)
        is_customer = side == "customer"

        if appointment.status not in CALLABLE_STATUSES:
            raise InvalidTransition(
                "Cannot initialize a call for an appointment that is not confirmed",
                status=appointment.status,
            )
        if appointment.consultation_type not in CALL_CONSULTATION_TYPES:
            raise ServiceNotOffered("This appointment is not a video or audio call")

        if not appointment.call_channel_name:
            channel = self.sessions.create_channel(appointment.public_id)
            customer_uid, provider_uid = self.sessions.allocate_uids()
            appointment.call_channel_name = channel
            appointment.call_customer_uid = customer_uid
            appointment.call_provider_uid = provider_uid
            self._issue_tokens(appointment)
            appointment.call_started = False
            self.db.commit()
            self.db.refresh(appointment)
            logger.info(f"✅ Call channel {channel} created for {appointment.appointment_id}")
        else:
            token = appointment.call_customer_token if is_customer else appointment.call_provider_token
            if self.sessions.verify_token(token) is None:
                self._issue_tokens(appointment)
                self.db.commit()
                self.db.refresh(appointment)
                logger.info(f"🔄 Call tokens reissued for {appointment.appointment_id}")

        other = appointment.provider if is_customer else appointment.customer
        return {
            "appointmentId": appointment.public_id,
            "channelName": appointment.call_channel_name,
            "token": appointment.call_customer_token if is_customer else appointment.call_provider_token,
            "uid": appointment.call_customer_uid if is_customer else appointment.call_provider_uid,
            "appId": self.sessions.app_id,
            "appointmentType": appointment.consultation_type,
            "otherParticipant": other.name if other else None,
        }

    def _issue_tokens(self, appointment: Appointment) -> None:
        channel = appointment.call_channel_name
        appointment.call_customer_token = self.sessions.token_for(
            channel, "customer", appointment.call_customer_uid
        )
        appointment.call_provider_token = self.sessions.token_for(
            channel, "provider", appointment.call_provider_uid
        )

    def start(self, public_id: str, user: User) -> Appointment:
        """Mark the call started; repeated calls keep the first start time"""
        appointment, _ = self._participant_appointment(public_id, user)
        if not appointment.call_channel_name:
            raise InvalidTransition("Call has not been initialized for this appointment")

        if not appointment.call_started:
            appointment.call_started = True
            appointment.call_start_time = datetime.utcnow()
            self.db.commit()
            self.db.refresh(appointment)
            logger.info(f"✅ Call started for {appointment.appointment_id}")
        return appointment

    def end(self, public_id: str, user: User) -> Appointment:
        """Record end time and duration in seconds, once"""
        appointment, _ = self._participant_appointment(public_id, user)

        if appointment.call_started and not appointment.call_end_time:
            end_time = datetime.utcnow()
            appointment.call_end_time = end_time
            appointment.call_duration = int((end_time - appointment.call_start_time).total_seconds())
            self.db.commit()
            self.db.refresh(appointment)
            logger.info(
                f"✅ Call ended for {appointment.appointment_id} after {appointment.call_duration}s"
            )
        return appointment
