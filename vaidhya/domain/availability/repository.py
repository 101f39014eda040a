"""Availability repository - Database operations for provider schedules"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import AvailabilitySlot, UnavailablePeriod, User, WorkingDay


class AvailabilityRepository:
    """Repository for availability database operations"""

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_working_day(db: Session, provider_id: int, day: str) -> Optional[WorkingDay]:
        """Get a provider's working-day entry with its slots"""
        return (
            db.query(WorkingDay)
            .options(selectinload(WorkingDay.slots))
            .filter(WorkingDay.provider_id == provider_id, WorkingDay.day == day)
            .first()
        )

    @staticmethod
    def get_working_days(db: Session, provider_id: int) -> list[WorkingDay]:
        """Get all working-day entries of a provider"""
        return (
            db.query(WorkingDay)
            .options(selectinload(WorkingDay.slots))
            .filter(WorkingDay.provider_id == provider_id)
            .order_by(WorkingDay.id)
            .all()
        )

    @staticmethod
    def replace_working_days(db: Session, provider_id: int, working_days: list[WorkingDay]) -> None:
        """Replace the weekly schedule of a provider"""
        for existing in db.query(WorkingDay).filter(WorkingDay.provider_id == provider_id).all():
            db.delete(existing)
        db.flush()
        for working_day in working_days:
            working_day.provider_id = provider_id
            db.add(working_day)
        db.commit()

    @staticmethod
    def get_unavailable_periods(db: Session, provider_id: int) -> list[UnavailablePeriod]:
        """Get leave periods of a provider"""
        return (
            db.query(UnavailablePeriod)
            .filter(UnavailablePeriod.provider_id == provider_id)
            .order_by(UnavailablePeriod.start_date)
            .all()
        )

    @staticmethod
    def create_unavailable_period(db: Session, provider_id: int, **period_data) -> UnavailablePeriod:
        """Create a leave period"""
        period = UnavailablePeriod(provider_id=provider_id, **period_data)
        db.add(period)
        db.commit()
        db.refresh(period)
        return period

    @staticmethod
    def has_unavailable_period_on(db: Session, provider_id: int, on_date: date) -> bool:
        """True if any leave period covers ``on_date`` (inclusive)"""
        return (
            db.query(UnavailablePeriod.id)
            .filter(
                UnavailablePeriod.provider_id == provider_id,
                UnavailablePeriod.start_date <= on_date,
                UnavailablePeriod.end_date >= on_date,
            )
            .first()
            is not None
        )

    @staticmethod
    def compare_and_set_slot_booked(db: Session, slot_id: int, booked: bool) -> bool:
        """
        Atomically flip ``is_booked`` on a single slot.

        Issues ``UPDATE ... WHERE id = :slot_id AND is_booked = :expected`` so two
        concurrent commits on the same slot cannot both succeed. Returns True when
        this call changed the flag. The caller commits.
        """
        updated = (
            db.query(AvailabilitySlot)
            .filter(AvailabilitySlot.id == slot_id, AvailabilitySlot.is_booked == (not booked))
            .update({AvailabilitySlot.is_booked: booked}, synchronize_session="fetch")
        )
        return updated == 1
