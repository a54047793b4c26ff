"""
Availability search

Enumerates bookable start times between two instants on a fixed grid,
keeping only candidates that fit inside the day's business hours and have
at least one free artist. Alternative-slot suggestions and next-available
lookups are thin wrappers around the same generator.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from itertools import islice
from typing import Any, Iterator, Optional

from sqlalchemy.orm import Session

from ...config import (
    MAX_AVAILABILITY_RESULTS,
    MAX_SEARCH_WINDOW_DAYS,
    MAX_SLOT_SUGGESTIONS,
    SLOT_INTERVAL_MINUTES,
)
from ...errors import ValidationError
from ...models import Artist
from .business_hours import BusinessHoursStore
from .conflicts import ConflictChecker
from .time_calculator import (
    as_utc,
    ceil_to_interval,
    end_time_for,
    local_day_window,
    local_dates_between,
    parse_hhmm,
    shop_zone,
    to_utc_naive,
    weekday_index,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchParams:
    start_at_min: datetime
    start_at_max: datetime
    duration_minutes: int
    team_member_ids: Optional[tuple[str, ...]] = None
    max_results: int = MAX_AVAILABILITY_RESULTS
    # An appointment being moved should not block its own alternatives
    exclude_appointment_id: Optional[str] = None


@dataclass
class Slot:
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    team_member_ids: list[str] = field(default_factory=list)

    def as_details(self) -> dict[str, Any]:
        return {
            "start_at": as_utc(self.start_at).isoformat(),
            "end_at": as_utc(self.end_at).isoformat(),
            "duration_minutes": self.duration_minutes,
            "team_member_ids": list(self.team_member_ids),
        }


@dataclass
class SearchResult:
    availabilities: list[Slot]
    total_results: int


class AvailabilitySearch:
    def __init__(
        self,
        db: Session,
        hours: Optional[BusinessHoursStore] = None,
        checker: Optional[ConflictChecker] = None,
        interval_minutes: int = SLOT_INTERVAL_MINUTES,
        timezone_name: Optional[str] = None,
    ):
        self.db = db
        self.hours = hours or BusinessHoursStore(db)
        self.checker = checker or ConflictChecker(db)
        self.interval_minutes = interval_minutes
        self.zone = shop_zone(timezone_name)

    def search(self, params: SearchParams) -> SearchResult:
        """Collect up to max_results slots, earliest first"""
        _validate(params)
        slots = list(islice(self.iter_slots(params), params.max_results))
        logger.info(
            f"🔎 Availability search {params.start_at_min.isoformat()} → "
            f"{params.start_at_max.isoformat()} ({params.duration_minutes}m): {len(slots)} slot(s)"
        )
        return SearchResult(availabilities=slots, total_results=len(slots))

    def suggest_alternatives(
        self,
        start_at: datetime,
        duration_minutes: int,
        artist_id: Optional[str] = None,
        max_suggestions: int = MAX_SLOT_SUGGESTIONS,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[Slot]:
        """
        Free slots on the same shop-local day as start_at, for one artist or
        for any bookable artist, earliest first.
        """
        local_day = as_utc(to_utc_naive(start_at)).astimezone(self.zone).date()
        day_start = datetime.combine(local_day, time(0), tzinfo=self.zone)
        day_end = datetime.combine(local_day + timedelta(days=1), time(0), tzinfo=self.zone)

        params = SearchParams(
            start_at_min=day_start,
            start_at_max=day_end - timedelta(minutes=1),
            duration_minutes=duration_minutes,
            team_member_ids=(artist_id,) if artist_id else None,
            max_results=max_suggestions,
            exclude_appointment_id=exclude_appointment_id,
        )
        return self.search(params).availabilities

    def find_next_available(
        self,
        start_at: datetime,
        duration_minutes: int,
        artist_ids: Optional[list[str]] = None,
        max_days: int = 30,
    ) -> Optional[Slot]:
        """Earliest free slot at or after start_at within max_days, or None"""
        if max_days <= 0:
            raise ValidationError("maxDays must be greater than 0", field="maxDays")
        params = SearchParams(
            start_at_min=start_at,
            start_at_max=to_utc_naive(start_at) + timedelta(days=max_days),
            duration_minutes=duration_minutes,
            team_member_ids=tuple(artist_ids) if artist_ids else None,
            max_results=1,
        )
        return next(self.iter_slots(params), None)

    def iter_slots(self, params: SearchParams) -> Iterator[Slot]:
        """
        Lazily yield free slots in ascending start time.

        Each call builds a fresh generator, so a search can be restarted or
        abandoned at any point without leftover state.
        """
        _validate(params)
        start_min = to_utc_naive(params.start_at_min)
        start_max = to_utc_naive(params.start_at_max)

        member_ids = self._resolve_team_members(params.team_member_ids)
        if not member_ids:
            return

        week = {day.day_of_week: day for day in self.hours.get_all()}
        if not any(day.is_open for day in week.values()):
            return

        for day in local_dates_between(start_min, start_max, self.zone):
            day_hours = week.get(weekday_index(day))
            if not day_hours or not day_hours.is_open:
                continue

            opens, closes = local_day_window(
                day, parse_hhmm(day_hours.open_time), parse_hhmm(day_hours.close_time), self.zone
            )
            first = ceil_to_interval(max(opens, start_min), opens, self.interval_minutes)
            # Latest start that still ends by closing time and respects the search bound
            last = min(closes - timedelta(minutes=params.duration_minutes), start_max)
            if first > last:
                continue

            snapshot = self.checker.snapshot(
                member_ids,
                first,
                end_time_for(last, params.duration_minutes),
                exclude_appointment_id=params.exclude_appointment_id,
            )
            candidate = first
            while candidate <= last:
                free = [
                    member_id
                    for member_id in member_ids
                    if snapshot.is_slot_free(candidate, params.duration_minutes, member_id)
                ]
                if free:
                    yield Slot(
                        start_at=candidate,
                        end_at=end_time_for(candidate, params.duration_minutes),
                        duration_minutes=params.duration_minutes,
                        team_member_ids=free,
                    )
                candidate += timedelta(minutes=self.interval_minutes)

    def _resolve_team_members(self, team_member_ids: Optional[tuple[str, ...]]) -> list[str]:
        """Requested members, or every bookable artist; always sorted ascending"""
        if team_member_ids:
            return sorted(set(team_member_ids))
        rows = self.db.query(Artist.id).filter(Artist.is_bookable.is_(True)).all()
        return sorted(row[0] for row in rows)


def _validate(params: SearchParams) -> None:
    start_min = to_utc_naive(params.start_at_min)
    start_max = to_utc_naive(params.start_at_max)
    if start_max < start_min:
        raise ValidationError("startAtMax must not be before startAtMin", field="startAtMax")
    if start_max - start_min > timedelta(days=MAX_SEARCH_WINDOW_DAYS):
        raise ValidationError(
            f"Search window may not exceed {MAX_SEARCH_WINDOW_DAYS} days", field="startAtMax"
        )
    if params.duration_minutes <= 0:
        raise ValidationError("Duration must be greater than 0", field="durationMinutes")
    if params.max_results <= 0:
        raise ValidationError("maxResults must be greater than 0", field="maxResults")
