"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, Text, Time

from backend.database import Base
from backend.models.enums import AppointmentStatus, AppointmentType, PaymentStatus, enum_values


def _enum_column(enum_class, length: int) -> Enum:
    return Enum(enum_class, native_enum=False, values_callable=enum_values, length=length, validate_strings=True)


class Appointment(Base):
    """Represents a booked appointment and its lifecycle state."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, nullable=False, index=True)
    provider_id = Column(Integer, nullable=False, index=True)
    slot_id = Column(Integer, ForeignKey("appointment_slots.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    appointment_type = Column(_enum_column(AppointmentType, 16), nullable=False, default=AppointmentType.IN_PERSON)
    status = Column(_enum_column(AppointmentStatus, 16), nullable=False, default=AppointmentStatus.SCHEDULED)
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    payment_status = Column(_enum_column(PaymentStatus, 16), nullable=False, default=PaymentStatus.PENDING)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.time)
