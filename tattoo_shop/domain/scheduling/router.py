"""Scheduling router - availability search and business hours endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from .availability_service import AvailabilitySearch, SearchParams
from .business_hours import BusinessHoursStore, DayHours
from .schemas import (
    AlternativeSlotsRequest,
    AvailabilitySearchRequest,
    AvailabilitySearchResponse,
    BusinessHoursDay,
    BusinessHoursUpdate,
    NextAvailableRequest,
    NextAvailableResponse,
    SlotResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_availability_search(db: Session = Depends(get_db)) -> AvailabilitySearch:
    return AvailabilitySearch(db)


def get_business_hours_store(db: Session = Depends(get_db)) -> BusinessHoursStore:
    return BusinessHoursStore(db)


def _day_response(day: DayHours) -> BusinessHoursDay:
    return BusinessHoursDay(
        dayOfWeek=day.day_of_week,
        openTime=day.open_time,
        closeTime=day.close_time,
        isOpen=day.is_open,
    )


@router.post("/availability/search", response_model=AvailabilitySearchResponse)
async def search_availability(
    data: AvailabilitySearchRequest,
    search: AvailabilitySearch = Depends(get_availability_search),
):
    """Free start times inside business hours, earliest first"""
    result = search.search(
        SearchParams(
            start_at_min=data.startAtMin,
            start_at_max=data.startAtMax,
            duration_minutes=data.durationMinutes,
            team_member_ids=tuple(data.teamMemberIds) if data.teamMemberIds else None,
            max_results=data.maxResults,
        )
    )
    return AvailabilitySearchResponse(
        availabilities=[SlotResponse.from_slot(slot) for slot in result.availabilities],
        totalResults=result.total_results,
    )


@router.post("/availability/alternatives", response_model=AvailabilitySearchResponse)
async def suggest_alternative_slots(
    data: AlternativeSlotsRequest,
    search: AvailabilitySearch = Depends(get_availability_search),
):
    """Free slots on the same day as a preferred start time"""
    slots = search.suggest_alternatives(
        data.startAt, data.durationMinutes, data.artistId, max_suggestions=data.maxSuggestions
    )
    return AvailabilitySearchResponse(
        availabilities=[SlotResponse.from_slot(slot) for slot in slots],
        totalResults=len(slots),
    )


@router.post("/availability/next", response_model=NextAvailableResponse)
async def next_available_slot(
    data: NextAvailableRequest,
    search: AvailabilitySearch = Depends(get_availability_search),
):
    slot = search.find_next_available(
        data.startAt, data.durationMinutes, data.teamMemberIds, max_days=data.maxDays
    )
    return NextAvailableResponse(slot=SlotResponse.from_slot(slot) if slot else None)


@router.get("/business-hours", response_model=list[BusinessHoursDay])
async def get_business_hours(store: BusinessHoursStore = Depends(get_business_hours_store)):
    return [_day_response(day) for day in store.get_all()]


@router.put("/business-hours", response_model=list[BusinessHoursDay])
async def replace_business_hours(
    data: BusinessHoursUpdate,
    store: BusinessHoursStore = Depends(get_business_hours_store),
):
    """Replace the whole weekly table"""
    saved = store.replace_all(
        DayHours(
            day_of_week=day.dayOfWeek,
            open_time=day.openTime,
            close_time=day.closeTime,
            is_open=day.isOpen,
        )
        for day in data.hours
    )
    return [_day_response(day) for day in saved]
