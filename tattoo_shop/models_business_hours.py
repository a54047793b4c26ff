"""
Business Hours Model
One row per weekday (0 = Sunday ... 6 = Saturday)
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from .database import Base


class BusinessHours(Base):
    __tablename__ = "business_hours"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, unique=True, nullable=False)
    open_time = Column(String(5), nullable=False)  # HH:MM shop wall-clock
    close_time = Column(String(5), nullable=False)
    is_open = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
