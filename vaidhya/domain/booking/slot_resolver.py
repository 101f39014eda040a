"""Slot resolver - validates a requested time and service before anything is written"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...config import DEFAULT_CURRENCY
from ...errors import PriceNotConfigured, ProviderOnLeave, ServiceNotOffered, SlotUnavailable
from ...models import AvailabilitySlot, ProviderService, User
from ..availability.service import AvailabilityService
from ..availability.time_calculator import weekday_and_time
from .repository import BookingRepository

logger = logging.getLogger(__name__)

# Doctor consultation type -> catalog service type
CONSULTATION_SERVICE_TYPES = {
    "video": "Video Consultation",
    "audio": "Voice Consultation",
    "in-person": "Clinical Visit",
    "homeVisit": "Home Visit",
}


@dataclass
class Resolution:
    """Outcome of a successful resolve; prices are locked from here on"""

    service: ProviderService
    price: float
    currency: str
    slot: Optional[AvailabilitySlot] = None


class SlotResolver:
    """Read-only checks run before a booking is created"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.availability = AvailabilityService(db)

    def check_slot(self, doctor: User, date_time: datetime) -> AvailabilitySlot:
        """Free declared slot containing ``date_time``, outside any leave period"""
        weekday, time_of_day = weekday_and_time(date_time)

        working_day = self.availability.get_working_day(doctor.id, weekday)
        if not working_day or not working_day.is_available:
            raise SlotUnavailable(f"Provider is not available on {weekday}", day=weekday)

        slot = self.availability.is_working_at(doctor.id, weekday, time_of_day)
        if slot is None or slot.is_booked:
            free = [
                {"startTime": s.start_time, "endTime": s.end_time}
                for s in self.availability.free_slots(doctor.id, weekday)
            ]
            logger.info(
                f"ℹ️ Provider {doctor.id} has no free slot on {weekday} at {time_of_day} ({len(free)} free)"
            )
            raise SlotUnavailable(
                "Selected time slot is not available", available_slots=free, day=weekday
            )

        if self.availability.is_on_leave(doctor.id, date_time):
            raise ProviderOnLeave("Provider is on leave during the selected date")

        return slot

    @staticmethod
    def _priced(service: Optional[ProviderService], label: str) -> Resolution:
        if service is None:
            raise ServiceNotOffered(f"{label} is not offered or is currently unavailable")
        if not service.price or service.price <= 0:
            raise PriceNotConfigured(f"Service price not set for {label}. Please contact the provider.")
        return Resolution(service=service, price=service.price, currency=service.currency or DEFAULT_CURRENCY)

    def resolve_doctor(self, doctor: User, date_time: datetime, consultation_type: str) -> Resolution:
        slot = self.check_slot(doctor, date_time)

        service_type = CONSULTATION_SERVICE_TYPES.get(consultation_type)
        service = (
            self.repo.get_active_service_by_type(self.db, doctor.id, service_type)
            if service_type
            else None
        )
        resolution = self._priced(service, f"{consultation_type} consultation")
        resolution.slot = slot
        return resolution

    def resolve_hospital(self, hospital: User, service_name: str) -> Resolution:
        service = self.repo.get_active_service_by_name(self.db, hospital.id, service_name)
        return self._priced(service, f"Service '{service_name}'")

    def resolve_vendor(self, vendor: User, service_key: str) -> Resolution:
        service = self.repo.get_active_service_by_key(self.db, vendor.id, service_key)
        return self._priced(service, "Requested service")
