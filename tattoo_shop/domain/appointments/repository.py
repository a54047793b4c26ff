"""Appointment repository - Database operations for appointments

Writes only flush; the calling service owns the transaction and commits.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def find_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.customer), joinedload(Appointment.artist))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def _filtered(
        db: Session,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        artist_id: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ):
        query = db.query(Appointment)
        if status:
            query = query.filter(Appointment.status == status)
        if customer_id:
            query = query.filter(Appointment.customer_id == customer_id)
        if artist_id:
            query = query.filter(Appointment.artist_id == artist_id)
        if start_from:
            query = query.filter(Appointment.start_time >= start_from)
        if start_to:
            query = query.filter(Appointment.start_time <= start_to)
        return query

    @staticmethod
    def find_appointments(
        db: Session, offset: int = 0, limit: Optional[int] = None, **filters
    ) -> list[Appointment]:
        query = AppointmentRepository._filtered(db, **filters).order_by(
            Appointment.start_time.asc(), Appointment.id.asc()
        )
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def count_appointments(db: Session, **filters) -> int:
        return (
            AppointmentRepository._filtered(db, **filters)
            .with_entities(func.count(Appointment.id))
            .scalar()
        )

    @staticmethod
    def find_pending_sync(
        db: Session, open_statuses: tuple[str, ...], now: datetime, limit: int = 50
    ) -> list[Appointment]:
        """
        Appointments that still owe Square an operation.

        Cancels are always owed. Creates and updates only matter for open,
        customer-linked bookings that have not started yet, since Square
        refuses bookings in the past. Least recently attempted rows come
        first so that rows which keep failing cannot starve the rest.
        """
        return (
            db.query(Appointment)
            .filter(
                Appointment.external_sync_pending.isnot(None),
                or_(
                    Appointment.external_sync_pending == "cancel",
                    and_(
                        Appointment.status.in_(open_statuses),
                        Appointment.customer_id.isnot(None),
                        Appointment.start_time >= now,
                    ),
                ),
            )
            .order_by(
                Appointment.external_sync_attempted_at.asc().nulls_first(),
                Appointment.start_time.asc(),
            )
            .limit(limit)
            .all()
        )

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def update_appointment(db: Session, appointment: Appointment, **updates) -> Appointment:
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)
        db.flush()
        return appointment
