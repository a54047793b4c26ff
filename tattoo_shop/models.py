import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate an opaque identifier for public-facing records"""
    return str(uuid.uuid4())


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(50), nullable=True)
    square_customer_id = Column(String(255), nullable=True)  # Cached after first Square sync
    created_from_request = Column(Boolean, default=False, nullable=False)  # Anonymous promotion
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="customer")
    tattoo_requests = relationship("TattooRequest", back_populates="customer")


class Artist(Base):
    """Bookable staff member"""

    __tablename__ = "artists"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    is_bookable = Column(Boolean, default=True, nullable=False)
    square_team_member_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointments = relationship("Appointment", back_populates="artist")


class TattooRequest(Base):
    __tablename__ = "tattoo_requests"

    id = Column(String(36), primary_key=True, default=generate_id)
    # Status flow: new → reviewed → approved/rejected → converted_to_appointment
    status = Column(String(50), default="new", nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    first_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    # Only set for anonymous requests, used for lookup without an account
    tracking_token = Column(String(36), unique=True, index=True, nullable=True)

    description = Column(Text, nullable=False)
    placement = Column(String(255), nullable=True)
    size = Column(String(100), nullable=True)
    color_preference = Column(String(100), nullable=True)
    style = Column(String(100), nullable=True)
    preferred_artist = Column(String(255), nullable=True)
    timeframe = Column(String(100), nullable=True)
    additional_notes = Column(Text, nullable=True)
    reference_images = Column(JSON, default=list, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="tattoo_requests")
    appointments = relationship("Appointment", back_populates="tattoo_request")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_artist_window", "artist_id", "start_time", "end_time"),)

    id = Column(String(36), primary_key=True, default=generate_id)

    # Times are stored as naive UTC; end_time is always start_time + duration_minutes
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    # Status workflow: pending → scheduled → confirmed → completed
    # scheduled/confirmed → cancelled | no_show (completed, cancelled, no_show are terminal)
    status = Column(String(50), default="scheduled", nullable=False, index=True)
    booking_type = Column(String(50), nullable=False)  # consultation, drawing_consultation, tattoo_session

    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True, index=True)
    artist_id = Column(String(36), ForeignKey("artists.id"), nullable=True)
    tattoo_request_id = Column(String(36), ForeignKey("tattoo_requests.id"), nullable=True)

    # Contact info for anonymous bookings (required when customer_id is null)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    price_quote = Column(Numeric(10, 2), nullable=True)
    note = Column(Text, nullable=True)

    # Square booking mirror; changes on every cancel-and-recreate update
    external_booking_id = Column(String(255), nullable=True, index=True)
    # Square operation still owed after a failed or skipped mirror: create, update or cancel
    external_sync_pending = Column(String(20), nullable=True, index=True)
    external_sync_attempted_at = Column(DateTime, nullable=True)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(255), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="appointments")
    artist = relationship("Artist", back_populates="appointments")
    tattoo_request = relationship("TattooRequest", back_populates="appointments")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(100), nullable=False, index=True)  # appointment_created, square_sync_failed, ...
    resource = Column(String(100), nullable=False)
    resource_id = Column(String(36), nullable=True, index=True)
    user_id = Column(String(255), nullable=True)
    details = Column(JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
