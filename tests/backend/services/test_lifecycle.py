from datetime import date, datetime, time
from itertools import product

import pytest

from backend.core.errors import InvalidTransition, NotPermitted
from backend.models.appointment import Appointment
from backend.models.enums import ActorRole, AppointmentStatus
from backend.services import booking
from backend.services.lifecycle import allowed_targets, ensure_transition_allowed, mark_no_shows

NOW = datetime(2026, 1, 4, 8, 0)

S = AppointmentStatus
PATIENT = ActorRole.PATIENT
PROVIDER = ActorRole.PROVIDER
SYSTEM = ActorRole.SYSTEM

LEGAL = {
    (S.SCHEDULED, S.CONFIRMED, PROVIDER),
    (S.SCHEDULED, S.CANCELLED, PATIENT),
    (S.SCHEDULED, S.CANCELLED, PROVIDER),
    (S.CONFIRMED, S.IN_PROGRESS, PROVIDER),
    (S.CONFIRMED, S.CANCELLED, PATIENT),
    (S.CONFIRMED, S.CANCELLED, PROVIDER),
    (S.IN_PROGRESS, S.COMPLETED, PROVIDER),
    (S.IN_PROGRESS, S.CANCELLED, PROVIDER),
    (S.SCHEDULED, S.NO_SHOW, PROVIDER),
    (S.SCHEDULED, S.NO_SHOW, SYSTEM),
    (S.CONFIRMED, S.NO_SHOW, PROVIDER),
    (S.CONFIRMED, S.NO_SHOW, SYSTEM),
}

ALL_CASES = list(product(list(S), list(S), [PATIENT, PROVIDER, SYSTEM, ActorRole.ADMIN]))


@pytest.mark.parametrize(('current', 'target', 'role'), sorted(LEGAL))
def test_legal_transitions_are_accepted(current, target, role) -> None:
    ensure_transition_allowed(current, target, role)


@pytest.mark.parametrize(
    ('current', 'target', 'role'),
    [case for case in ALL_CASES if case not in LEGAL],
)
def test_every_other_transition_is_rejected(current, target, role) -> None:
    with pytest.raises(InvalidTransition):
        ensure_transition_allowed(current, target, role)


def test_allowed_targets_for_provider_on_confirmed() -> None:
    assert allowed_targets(S.CONFIRMED, PROVIDER) == {S.IN_PROGRESS, S.CANCELLED, S.NO_SHOW}
    assert allowed_targets(S.COMPLETED, PROVIDER) == set()


@pytest.mark.parametrize('target', list(S))
def test_completed_appointment_rejects_any_transition(db, make_appointment, provider, target) -> None:
    appointment = make_appointment(status=S.COMPLETED)

    with pytest.raises(InvalidTransition):
        booking.change_status(db, appointment.id, target, provider, now=NOW)

    db.expire_all()
    assert db.get(Appointment, appointment.id).status == S.COMPLETED


def test_rejected_transition_leaves_stored_status_untouched(db, make_appointment, patient) -> None:
    appointment = make_appointment(status=S.SCHEDULED)

    with pytest.raises(InvalidTransition):
        booking.change_status(db, appointment.id, S.CONFIRMED, patient, now=NOW)

    db.expire_all()
    stored = db.get(Appointment, appointment.id)
    assert stored.status == S.SCHEDULED
    assert stored.updated_at == NOW


def test_full_visit_walks_the_happy_path(db, make_appointment, provider) -> None:
    appointment = make_appointment()

    for target in (S.CONFIRMED, S.IN_PROGRESS, S.COMPLETED):
        appointment = booking.change_status(db, appointment.id, target, provider, now=NOW)

    assert appointment.status == S.COMPLETED


def test_provider_cannot_change_another_providers_appointment(db, make_appointment, other_provider) -> None:
    appointment = make_appointment(provider_id=1)

    with pytest.raises(NotPermitted):
        booking.change_status(db, appointment.id, S.CONFIRMED, other_provider, now=NOW)


def test_no_show_sweep_marks_elapsed_open_appointments(db, make_appointment) -> None:
    overdue_scheduled = make_appointment(appointment_date=date(2026, 1, 5), appointment_time=time(9, 0))
    overdue_confirmed = make_appointment(
        appointment_date=date(2026, 1, 5),
        appointment_time=time(9, 30),
        status=S.CONFIRMED,
    )
    within_grace = make_appointment(appointment_date=date(2026, 1, 5), appointment_time=time(9, 50))
    in_progress = make_appointment(
        appointment_date=date(2026, 1, 5),
        appointment_time=time(8, 0),
        status=S.IN_PROGRESS,
    )
    tomorrow = make_appointment(appointment_date=date(2026, 1, 6), appointment_time=time(9, 0))

    marked = mark_no_shows(db, now=datetime(2026, 1, 5, 10, 0))

    db.expire_all()
    assert marked == 2
    assert db.get(Appointment, overdue_scheduled.id).status == S.NO_SHOW
    assert db.get(Appointment, overdue_confirmed.id).status == S.NO_SHOW
    assert db.get(Appointment, within_grace.id).status == S.SCHEDULED
    assert db.get(Appointment, in_progress.id).status == S.IN_PROGRESS
    assert db.get(Appointment, tomorrow.id).status == S.SCHEDULED


def test_no_show_sweep_is_repeatable(db, make_appointment) -> None:
    make_appointment(appointment_date=date(2026, 1, 5), appointment_time=time(9, 0))

    assert mark_no_shows(db, now=datetime(2026, 1, 5, 12, 0)) == 1
    assert mark_no_shows(db, now=datetime(2026, 1, 5, 12, 0)) == 0
