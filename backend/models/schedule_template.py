"""Schedule template model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum, Integer, Time

from backend.database import Base
from backend.models.enums import Weekday, enum_values


class ScheduleTemplate(Base):
    """Recurring weekly availability window for one provider."""
    __tablename__ = "doctor_schedule"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_doctor_schedule_time_order"),
        CheckConstraint("slot_duration_minutes > 0", name="ck_doctor_schedule_positive_duration"),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    weekday = Column(
        Enum(Weekday, native_enum=False, values_callable=enum_values, length=16, validate_strings=True),
        nullable=False,
    )
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
