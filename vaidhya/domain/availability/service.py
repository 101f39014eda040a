"""Availability service - a provider's bookable time"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import InvalidSchedule, NotFound
from ...models import WEEKDAYS, AvailabilitySlot, UnavailablePeriod, User, WorkingDay
from .repository import AvailabilityRepository
from .schemas import UnavailablePeriodCreate, WorkingDayInput
from .time_calculator import contains, to_clinic_time, to_minutes

logger = logging.getLogger(__name__)

MAX_LOOKAHEAD_DAYS = 30


class AvailabilityService:
    """Weekly recurring schedule plus leave calendar of a provider"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    def get_provider(self, provider_id: int) -> User:
        provider = self.repo.get_user_by_id(self.db, provider_id)
        if not provider or not provider.is_provider:
            raise NotFound("Provider not found", provider_id=provider_id)
        return provider

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_working_day(self, provider_id: int, weekday: str) -> Optional[WorkingDay]:
        return self.repo.get_working_day(self.db, provider_id, weekday)

    def is_working_at(self, provider_id: int, weekday: str, time_of_day: str) -> Optional[AvailabilitySlot]:
        """Declared slot containing ``time_of_day`` on an available day, booked or not"""
        working_day = self.get_working_day(provider_id, weekday)
        if not working_day or not working_day.is_available:
            return None
        return self._find_slot(working_day, time_of_day)

    def is_on_leave(self, provider_id: int, instant: datetime) -> bool:
        return self.repo.has_unavailable_period_on(
            self.db, provider_id, to_clinic_time(instant).date()
        )

    def free_slots(self, provider_id: int, weekday: str) -> list[AvailabilitySlot]:
        """Unbooked slots of an available day"""
        working_day = self.get_working_day(provider_id, weekday)
        if not working_day or not working_day.is_available:
            return []
        return [slot for slot in working_day.slots if not slot.is_booked]

    def upcoming_free_slots(self, provider_id: int, start: date, days: int = 7) -> list[dict]:
        """Free slots per calendar date for the next ``days`` days, skipping leave"""
        days = max(1, min(days, MAX_LOOKAHEAD_DAYS))
        working_days = {wd.day: wd for wd in self.repo.get_working_days(self.db, provider_id)}

        result = []
        for offset in range(days):
            current = start + timedelta(days=offset)
            weekday = WEEKDAYS[current.weekday()]
            working_day = working_days.get(weekday)
            if not working_day or not working_day.is_available:
                continue
            if self.repo.has_unavailable_period_on(self.db, provider_id, current):
                continue

            slots = [
                {"startTime": slot.start_time, "endTime": slot.end_time}
                for slot in working_day.slots
                if not slot.is_booked
            ]
            if slots:
                result.append({"date": current, "day": weekday, "slots": slots})
        return result

    # ------------------------------------------------------------------
    # Slot commit / release
    # ------------------------------------------------------------------

    def mark_slot_booked(
        self, provider_id: int, weekday: str, time_of_day: str, booked: bool
    ) -> Optional[bool]:
        """
        Set ``is_booked`` on the slot containing ``time_of_day``.

        Returns None when no slot matches (the schedule may have changed since
        booking), True when this call flipped the flag, False when the slot
        already had the requested state. Repeating a call is harmless.
        The caller commits.
        """
        working_day = self.get_working_day(provider_id, weekday)
        slot = self._find_slot(working_day, time_of_day) if working_day else None
        if slot is None:
            logger.warning(
                f"⚠️ No slot for provider {provider_id} on {weekday} at {time_of_day}; nothing to mark"
            )
            return None

        changed = self.repo.compare_and_set_slot_booked(self.db, slot.id, booked)
        if changed:
            logger.info(
                f"✅ Slot {slot.id} ({weekday} {slot.start_time}-{slot.end_time}) is_booked={booked}"
            )
        return changed

    @staticmethod
    def _find_slot(working_day: WorkingDay, time_of_day: str) -> Optional[AvailabilitySlot]:
        for slot in working_day.slots:
            if contains(slot.start_time, slot.end_time, time_of_day):
                return slot
        return None

    # ------------------------------------------------------------------
    # Schedule management
    # ------------------------------------------------------------------

    def get_working_days(self, provider_id: int) -> list[WorkingDay]:
        return self.repo.get_working_days(self.db, provider_id)

    def get_unavailable_periods(self, provider_id: int) -> list[UnavailablePeriod]:
        return self.repo.get_unavailable_periods(self.db, provider_id)

    def replace_schedule(self, provider: User, working_days: list[WorkingDayInput]) -> list[WorkingDay]:
        """
        Replace the weekly schedule after validating it.

        Slots identical to a currently booked slot keep their booked flag so a
        schedule edit cannot reopen a committed appointment.
        """
        self._validate_schedule(working_days)

        booked = {
            (wd.day, slot.start_time, slot.end_time)
            for wd in self.repo.get_working_days(self.db, provider.id)
            for slot in wd.slots
            if slot.is_booked
        }

        new_days = []
        for day_input in working_days:
            ordered = sorted(day_input.slots, key=lambda s: to_minutes(s.startTime))
            working_day = WorkingDay(day=day_input.day, is_available=day_input.isAvailable)
            working_day.slots = [
                AvailabilitySlot(
                    position=index,
                    start_time=slot.startTime,
                    end_time=slot.endTime,
                    is_booked=(day_input.day, slot.startTime, slot.endTime) in booked,
                )
                for index, slot in enumerate(ordered)
            ]
            new_days.append(working_day)

        self.repo.replace_working_days(self.db, provider.id, new_days)
        logger.info(f"✅ Provider {provider.id} schedule updated ({len(new_days)} working days)")
        return self.repo.get_working_days(self.db, provider.id)

    @staticmethod
    def _validate_schedule(working_days: list[WorkingDayInput]) -> None:
        seen_days = set()
        for day_input in working_days:
            if day_input.day in seen_days:
                raise InvalidSchedule(f"{day_input.day} is listed more than once", day=day_input.day)
            seen_days.add(day_input.day)

            intervals = []
            for slot in day_input.slots:
                start, end = to_minutes(slot.startTime), to_minutes(slot.endTime)
                if start >= end:
                    raise InvalidSchedule(
                        f"Slot {slot.startTime}-{slot.endTime} on {day_input.day} must end after it starts",
                        day=day_input.day,
                    )
                intervals.append((start, end, slot))

            intervals.sort(key=lambda item: item[0])
            for previous, current in zip(intervals, intervals[1:]):
                if current[0] < previous[1]:
                    raise InvalidSchedule(
                        f"Slots {previous[2].startTime}-{previous[2].endTime} and "
                        f"{current[2].startTime}-{current[2].endTime} on {day_input.day} overlap",
                        day=day_input.day,
                    )

    def add_unavailable_period(self, provider: User, data: UnavailablePeriodCreate) -> UnavailablePeriod:
        period = self.repo.create_unavailable_period(
            self.db,
            provider.id,
            start_date=data.startDate,
            end_date=data.endDate,
            reason=data.reason,
        )
        logger.info(
            f"✅ Provider {provider.id} unavailable {data.startDate} → {data.endDate} ({data.reason or 'no reason'})"
        )
        return period
