import os
from datetime import date, datetime, time

import pytest
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.auth.dependencies import Actor  # noqa: E402
from backend.database import Base, build_engine  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.enums import ActorRole, AppointmentStatus, AppointmentType, PaymentStatus, Weekday  # noqa: E402
from backend.models.schedule_template import ScheduleTemplate  # noqa: E402
from backend.models.slot import Slot  # noqa: E402

# Sunday morning; 2026-01-05 is the following Monday.
NOW = datetime(2026, 1, 4, 8, 0)

CLOCK_MODULES = [
    'backend.services.availability',
    'backend.services.templates',
    'backend.services.slot_generator',
    'backend.services.slots',
    'backend.services.booking',
    'backend.services.lifecycle',
]


@pytest.fixture
def db_engine():
    engine = build_engine('sqlite://')
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(db_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def frozen_clock(monkeypatch: pytest.MonkeyPatch) -> datetime:
    for module in CLOCK_MODULES:
        monkeypatch.setattr(f'{module}.clinic_now', lambda: NOW)
    return NOW


@pytest.fixture
def provider() -> Actor:
    return Actor(role=ActorRole.PROVIDER, user_id=1)


@pytest.fixture
def other_provider() -> Actor:
    return Actor(role=ActorRole.PROVIDER, user_id=2)


@pytest.fixture
def patient() -> Actor:
    return Actor(role=ActorRole.PATIENT, user_id=101)


@pytest.fixture
def other_patient() -> Actor:
    return Actor(role=ActorRole.PATIENT, user_id=102)


@pytest.fixture
def admin() -> Actor:
    return Actor(role=ActorRole.ADMIN, user_id=900)


@pytest.fixture
def make_template(db):
    def _make_template(
        provider_id: int = 1,
        weekday: Weekday = Weekday.MONDAY,
        start_time: time = time(9, 0),
        end_time: time = time(10, 0),
        slot_duration_minutes: int = 30,
        is_active: bool = True,
    ) -> ScheduleTemplate:
        template = ScheduleTemplate(
            provider_id=provider_id,
            weekday=weekday,
            start_time=start_time,
            end_time=end_time,
            slot_duration_minutes=slot_duration_minutes,
            is_active=is_active,
            created_at=NOW,
            updated_at=NOW,
        )
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    return _make_template


@pytest.fixture
def make_slot(db):
    def _make_slot(
        provider_id: int = 1,
        slot_date: date = date(2026, 1, 5),
        slot_time: time = time(9, 0),
        is_available: bool = True,
        is_blocked: bool = False,
    ) -> Slot:
        slot = Slot(
            provider_id=provider_id,
            date=slot_date,
            time=slot_time,
            is_available=is_available,
            is_blocked=is_blocked,
            created_at=NOW,
            updated_at=NOW,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _make_slot


@pytest.fixture
def make_appointment(db):
    def _make_appointment(
        patient_id: int = 101,
        provider_id: int = 1,
        slot: Slot | None = None,
        appointment_date: date = date(2026, 1, 5),
        appointment_time: time = time(9, 0),
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient_id,
            provider_id=provider_id,
            slot_id=slot.id if slot else None,
            date=slot.date if slot else appointment_date,
            time=slot.time if slot else appointment_time,
            appointment_type=AppointmentType.IN_PERSON,
            status=status,
            payment_status=PaymentStatus.PENDING,
            created_at=NOW,
            updated_at=NOW,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make_appointment
