"""Business hours store - per-weekday open/close windows"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...errors import ValidationError
from ...models_business_hours import BusinessHours
from .time_calculator import parse_hhmm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayHours:
    day_of_week: int
    open_time: str
    close_time: str
    is_open: bool


class BusinessHoursStore:
    """
    Read-mostly weekly table.

    A weekday with no row is unknown and treated as closed by callers.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_hours_for_day(self, weekday: int) -> Optional[DayHours]:
        """Hours for weekday 0-6 (0 = Sunday); None for unknown days or invalid input"""
        if not isinstance(weekday, int) or isinstance(weekday, bool) or not 0 <= weekday <= 6:
            return None
        row = self.db.query(BusinessHours).filter(BusinessHours.day_of_week == weekday).first()
        if not row:
            return None
        return _to_day_hours(row)

    def get_all(self) -> list[DayHours]:
        rows = self.db.query(BusinessHours).order_by(BusinessHours.day_of_week).all()
        return [_to_day_hours(row) for row in rows]

    def replace_all(self, hours: Iterable[DayHours]) -> list[DayHours]:
        """Atomically swap the whole weekly table; an empty list clears every day"""
        hours = list(hours)
        validate_week(hours)

        try:
            self.db.query(BusinessHours).delete(synchronize_session=False)
            for entry in hours:
                self.db.add(
                    BusinessHours(
                        day_of_week=entry.day_of_week,
                        open_time=entry.open_time,
                        close_time=entry.close_time,
                        is_open=entry.is_open,
                    )
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Business hours replaced ({len(hours)} day(s) configured)")
        return self.get_all()


def validate_week(hours: list[DayHours]) -> None:
    seen = set()
    for entry in hours:
        if not 0 <= entry.day_of_week <= 6:
            raise ValidationError(f"Invalid day of week: {entry.day_of_week}", field="dayOfWeek")
        if entry.day_of_week in seen:
            raise ValidationError(f"Duplicate hours for day {entry.day_of_week}", field="dayOfWeek")
        seen.add(entry.day_of_week)

        try:
            opens = parse_hhmm(entry.open_time)
            closes = parse_hhmm(entry.close_time)
        except ValueError as e:
            raise ValidationError(str(e), field="openTime") from e

        if entry.is_open and opens >= closes:
            raise ValidationError(
                f"Open time must be before close time for day {entry.day_of_week}", field="closeTime"
            )


def _to_day_hours(row: BusinessHours) -> DayHours:
    return DayHours(
        day_of_week=row.day_of_week,
        open_time=row.open_time,
        close_time=row.close_time,
        is_open=bool(row.is_open),
    )
