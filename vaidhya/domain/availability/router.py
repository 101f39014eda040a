"""Availability router - FastAPI endpoints for provider schedules"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_provider, get_current_provider_with_subscription
from ...database import get_db
from ...models import User, WorkingDay
from .schemas import (
    AvailabilityResponse,
    AvailabilityUpdate,
    ProviderSlotsResponse,
    SlotResponse,
    UnavailablePeriodCreate,
    UnavailablePeriodResponse,
    WorkingDayResponse,
)
from .service import AvailabilityService
from .time_calculator import to_clinic_time

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def _working_day_response(working_day: WorkingDay) -> WorkingDayResponse:
    return WorkingDayResponse(
        day=working_day.day,
        isAvailable=working_day.is_available,
        slots=[
            SlotResponse(
                id=slot.id,
                startTime=slot.start_time,
                endTime=slot.end_time,
                isBooked=slot.is_booked,
            )
            for slot in working_day.slots
        ],
    )


def _availability_response(service: AvailabilityService, provider_id: int) -> AvailabilityResponse:
    return AvailabilityResponse(
        workingDays=[_working_day_response(wd) for wd in service.get_working_days(provider_id)],
        unavailablePeriods=[
            UnavailablePeriodResponse(
                id=p.id, startDate=p.start_date, endDate=p.end_date, reason=p.reason
            )
            for p in service.get_unavailable_periods(provider_id)
        ],
    )


@router.get("/me", response_model=AvailabilityResponse)
async def get_my_availability(
    current_user: User = Depends(get_current_provider),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get the current provider's schedule and leave periods"""
    return _availability_response(service, current_user.id)


@router.put("/me", response_model=AvailabilityResponse)
async def update_my_availability(
    data: AvailabilityUpdate,
    current_user: User = Depends(get_current_provider_with_subscription),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Replace the current provider's weekly schedule"""
    service.replace_schedule(current_user, data.workingDays)
    return _availability_response(service, current_user.id)


@router.post("/me/unavailable-periods", response_model=UnavailablePeriodResponse, status_code=201)
async def add_unavailable_period(
    data: UnavailablePeriodCreate,
    current_user: User = Depends(get_current_provider_with_subscription),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Add a leave/holiday block"""
    period = service.add_unavailable_period(current_user, data)
    return UnavailablePeriodResponse(
        id=period.id, startDate=period.start_date, endDate=period.end_date, reason=period.reason
    )


@router.get("/{provider_id}", response_model=ProviderSlotsResponse)
async def get_provider_available_slots(
    provider_id: int,
    start: Optional[date] = Query(None, alias="date"),
    days: int = Query(7, ge=1, le=30),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Public: free slots of a provider for the next ``days`` days"""
    provider = service.get_provider(provider_id)

    if not service.get_working_days(provider.id):
        return ProviderSlotsResponse(
            providerId=provider.id,
            providerName=provider.name,
            availableSlots=[],
            message="Provider has not set availability yet",
        )

    start_date = start or to_clinic_time(datetime.now().astimezone()).date()
    return ProviderSlotsResponse(
        providerId=provider.id,
        providerName=provider.name,
        availableSlots=service.upcoming_free_slots(provider.id, start_date, days),
    )
