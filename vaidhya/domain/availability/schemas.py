"""Availability domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ...shared.validators import validate_hhmm

Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class SlotInput(BaseModel):
    """A bookable interval within a working day"""

    startTime: str
    endTime: str

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return validate_hhmm(v)


class WorkingDayInput(BaseModel):
    """Schema for one weekday of a provider's schedule"""

    day: Weekday
    isAvailable: bool = True
    slots: list[SlotInput] = []


class AvailabilityUpdate(BaseModel):
    """Schema for replacing a provider's weekly schedule"""

    workingDays: list[WorkingDayInput]


class UnavailablePeriodCreate(BaseModel):
    """Schema for adding a leave/holiday block"""

    startDate: date
    endDate: date
    reason: Optional[str] = None

    @model_validator(mode="after")
    def validate_range(self):
        if self.startDate > self.endDate:
            raise ValueError("Start date cannot be after end date")
        return self


class SlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    startTime: str
    endTime: str
    isBooked: bool


class WorkingDayResponse(BaseModel):
    day: str
    isAvailable: bool
    slots: list[SlotResponse]


class UnavailablePeriodResponse(BaseModel):
    id: int
    startDate: date
    endDate: date
    reason: Optional[str] = None


class AvailabilityResponse(BaseModel):
    """Schema for a provider's full availability"""

    workingDays: list[WorkingDayResponse]
    unavailablePeriods: list[UnavailablePeriodResponse]


class FreeSlot(BaseModel):
    startTime: str
    endTime: str


class FreeSlotsDay(BaseModel):
    date: date
    day: str
    slots: list[FreeSlot]


class ProviderSlotsResponse(BaseModel):
    """Schema for the public free-slot listing"""

    providerId: int
    providerName: str
    availableSlots: list[FreeSlotsDay]
    message: Optional[str] = None
