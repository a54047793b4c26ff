"""
Conflict detection for appointment slots.

Two bookings conflict when they share an artist and their [start, end)
intervals overlap. Cancelled and no-show appointments never block a slot.
"""

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import Appointment, Artist
from .time_calculator import end_time_for, intervals_overlap, to_utc_naive


NON_BLOCKING_STATUSES = ("cancelled", "no_show")


class ConflictChecker:
    def __init__(self, db: Session):
        self.db = db

    def _conflict_query(
        self,
        start_time: datetime,
        end_time: datetime,
        artist_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
    ):
        query = self.db.query(Appointment).filter(
            Appointment.status.notin_(NON_BLOCKING_STATUSES),
            Appointment.start_time < end_time,
            Appointment.end_time > start_time,
        )
        if artist_id:
            query = query.filter(Appointment.artist_id == artist_id)
        if exclude_appointment_id:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query

    def is_slot_free(
        self,
        start_time: datetime,
        duration_minutes: int,
        artist_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        """
        True iff no blocking appointment intersects [start_time, start_time + duration).

        Without artist_id any appointment across all staff counts as a conflict.
        exclude_appointment_id lets an appointment move without colliding with itself.
        """
        start_time = to_utc_naive(start_time)
        end_time = end_time_for(start_time, duration_minutes)
        count = self._conflict_query(start_time, end_time, artist_id, exclude_appointment_id).count()
        return count == 0

    def find_conflicts(
        self,
        start_time: datetime,
        duration_minutes: int,
        artist_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[Appointment]:
        start_time = to_utc_naive(start_time)
        end_time = end_time_for(start_time, duration_minutes)
        return (
            self._conflict_query(start_time, end_time, artist_id, exclude_appointment_id)
            .order_by(Appointment.start_time)
            .all()
        )

    def lock_artist(self, artist_id: str) -> Optional[Artist]:
        """
        Take a row lock on the artist for the rest of the transaction.

        Bookings for the same artist serialize on this lock, so the conflict
        check and the insert that follows cannot interleave with another request.
        """
        return self.db.query(Artist).filter(Artist.id == artist_id).with_for_update().first()

    def snapshot(
        self,
        artist_ids: Iterable[str],
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> "ConflictSnapshot":
        """Load blocking intervals for several artists once, for repeated slot checks"""
        artist_ids = list(artist_ids)
        busy: dict[str, list[tuple[datetime, datetime]]] = defaultdict(list)
        if artist_ids:
            query = self.db.query(
                Appointment.artist_id, Appointment.start_time, Appointment.end_time
            ).filter(
                Appointment.artist_id.in_(artist_ids),
                Appointment.status.notin_(NON_BLOCKING_STATUSES),
                Appointment.start_time < window_end,
                Appointment.end_time > window_start,
            )
            if exclude_appointment_id:
                query = query.filter(Appointment.id != exclude_appointment_id)
            rows = query.all()
            for artist_id, start, end in rows:
                busy[artist_id].append((start, end))
        return ConflictSnapshot(busy)


class ConflictSnapshot:
    """Point-in-time view of busy intervals; same verdicts as is_slot_free"""

    def __init__(self, busy: dict[str, list[tuple[datetime, datetime]]]):
        self.busy = busy

    def is_slot_free(self, start_time: datetime, duration_minutes: int, artist_id: str) -> bool:
        end_time = end_time_for(start_time, duration_minutes)
        return not any(
            intervals_overlap(start_time, end_time, busy_start, busy_end)
            for busy_start, busy_end in self.busy.get(artist_id, ())
        )
