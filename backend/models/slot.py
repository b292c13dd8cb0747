"""Appointment slot model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Time, UniqueConstraint

from backend.database import Base


class Slot(Base):
    """A concrete, dated unit of bookable provider time."""
    __tablename__ = "appointment_slots"
    __table_args__ = (
        UniqueConstraint("provider_id", "date", "time", name="uq_appointment_slots_provider_date_time"),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.time)

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_available) and not self.is_blocked
