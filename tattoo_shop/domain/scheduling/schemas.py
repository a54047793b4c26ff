"""Scheduling schemas - availability search and business hours"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...config import MAX_AVAILABILITY_RESULTS, MAX_SLOT_SUGGESTIONS
from .time_calculator import as_utc


class AvailabilitySearchRequest(BaseModel):
    startAtMin: datetime
    startAtMax: datetime
    durationMinutes: int
    teamMemberIds: Optional[list[str]] = None
    maxResults: int = MAX_AVAILABILITY_RESULTS

    @field_validator("teamMemberIds")
    @classmethod
    def drop_blank_ids(cls, v):
        if v is None:
            return v
        return [member_id for member_id in v if member_id] or None


class SlotResponse(BaseModel):
    startAt: datetime
    endAt: datetime
    durationMinutes: int
    teamMemberIds: list[str]

    @classmethod
    def from_slot(cls, slot) -> "SlotResponse":
        return cls(
            startAt=as_utc(slot.start_at),
            endAt=as_utc(slot.end_at),
            durationMinutes=slot.duration_minutes,
            teamMemberIds=slot.team_member_ids,
        )


class AvailabilitySearchResponse(BaseModel):
    availabilities: list[SlotResponse]
    totalResults: int


class AlternativeSlotsRequest(BaseModel):
    """Same-day alternatives around a preferred start time"""

    startAt: datetime
    durationMinutes: int
    artistId: Optional[str] = None
    maxSuggestions: int = MAX_SLOT_SUGGESTIONS


class NextAvailableRequest(BaseModel):
    startAt: datetime
    durationMinutes: int
    teamMemberIds: Optional[list[str]] = None
    maxDays: int = 30


class NextAvailableResponse(BaseModel):
    slot: Optional[SlotResponse] = None


class BusinessHoursDay(BaseModel):
    """One weekday; 0 = Sunday ... 6 = Saturday, times are shop-local HH:MM"""

    dayOfWeek: int
    openTime: str
    closeTime: str
    isOpen: bool = True


class BusinessHoursUpdate(BaseModel):
    hours: list[BusinessHoursDay]
