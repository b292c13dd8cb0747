"""Closed enumerations shared by the scheduling models."""

import enum
from datetime import date


class Weekday(str, enum.Enum):
    MONDAY = 'Monday'
    TUESDAY = 'Tuesday'
    WEDNESDAY = 'Wednesday'
    THURSDAY = 'Thursday'
    FRIDAY = 'Friday'
    SATURDAY = 'Saturday'
    SUNDAY = 'Sunday'

    @classmethod
    def from_date(cls, value: date) -> 'Weekday':
        return _WEEKDAYS_BY_INDEX[value.weekday()]

    @property
    def ordinal(self) -> int:
        return _WEEKDAYS_BY_INDEX.index(self)


_WEEKDAYS_BY_INDEX = list(Weekday)


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = 'Scheduled'
    CONFIRMED = 'Confirmed'
    IN_PROGRESS = 'In Progress'
    COMPLETED = 'Completed'
    CANCELLED = 'Cancelled'
    NO_SHOW = 'No Show'


class AppointmentType(str, enum.Enum):
    IN_PERSON = 'In-Person'
    TELEMEDICINE = 'TeleMedicine'
    FOLLOW_UP = 'Follow-Up'


class PaymentStatus(str, enum.Enum):
    PENDING = 'pending'
    PAID = 'paid'


class ActorRole(str, enum.Enum):
    PATIENT = 'patient'
    PROVIDER = 'provider'
    ADMIN = 'admin'
    SYSTEM = 'system'


def enum_values(enum_class) -> list[str]:
    return [member.value for member in enum_class]
