"""Appointment status lifecycle.

The transition table is the single source of truth for which status
changes exist and which actor roles may trigger them.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import SYSTEM_ACTOR, Actor
from backend.core import config
from backend.core.clock import clinic_now
from backend.core.errors import InvalidTransition, NotPermitted, PersistenceFailure
from backend.models.appointment import Appointment
from backend.models.enums import ActorRole, AppointmentStatus

logger = logging.getLogger(__name__)

Status = AppointmentStatus

TRANSITIONS: dict[tuple[AppointmentStatus, AppointmentStatus], frozenset[ActorRole]] = {
    (Status.SCHEDULED, Status.CONFIRMED): frozenset({ActorRole.PROVIDER}),
    (Status.SCHEDULED, Status.CANCELLED): frozenset({ActorRole.PATIENT, ActorRole.PROVIDER}),
    (Status.CONFIRMED, Status.IN_PROGRESS): frozenset({ActorRole.PROVIDER}),
    (Status.CONFIRMED, Status.CANCELLED): frozenset({ActorRole.PATIENT, ActorRole.PROVIDER}),
    (Status.IN_PROGRESS, Status.COMPLETED): frozenset({ActorRole.PROVIDER}),
    (Status.IN_PROGRESS, Status.CANCELLED): frozenset({ActorRole.PROVIDER}),
    (Status.SCHEDULED, Status.NO_SHOW): frozenset({ActorRole.PROVIDER, ActorRole.SYSTEM}),
    (Status.CONFIRMED, Status.NO_SHOW): frozenset({ActorRole.PROVIDER, ActorRole.SYSTEM}),
}

TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.CANCELLED, Status.NO_SHOW})

ACTIVE_STATUSES = frozenset({Status.SCHEDULED, Status.CONFIRMED, Status.IN_PROGRESS})


def allowed_targets(current: AppointmentStatus, role: ActorRole) -> set[AppointmentStatus]:
    return {target for (source, target), roles in TRANSITIONS.items() if source == current and role in roles}


def ensure_transition_allowed(current: AppointmentStatus, target: AppointmentStatus, role: ActorRole) -> None:
    current = AppointmentStatus(current)
    target = AppointmentStatus(target)

    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f'Appointment is already {current.value}; no further changes are allowed.')

    roles = TRANSITIONS.get((current, target))
    if roles is None:
        raise InvalidTransition(f'Cannot change status from {current.value} to {target.value}.')
    if role not in roles:
        raise InvalidTransition(f'A {role.value} cannot change status from {current.value} to {target.value}.')


def ensure_participant(appointment: Appointment, actor: Actor) -> None:
    if actor.role == ActorRole.SYSTEM:
        return
    if actor.role == ActorRole.PATIENT and appointment.patient_id == actor.user_id:
        return
    if actor.role == ActorRole.PROVIDER and appointment.provider_id == actor.user_id:
        return
    raise NotPermitted('Only the patient or provider on this appointment can change it.')


def apply_transition(
    appointment: Appointment,
    target: AppointmentStatus,
    actor: Actor,
    now: datetime,
) -> AppointmentStatus:
    """Validate and apply a status change in memory; returns the previous status."""
    ensure_participant(appointment, actor)
    ensure_transition_allowed(appointment.status, target, actor.role)

    previous = AppointmentStatus(appointment.status)
    appointment.status = AppointmentStatus(target)
    appointment.updated_at = now
    return previous


def mark_no_shows(db: Session, now: datetime | None = None) -> int:
    """Mark elapsed, unattended appointments as No Show."""
    now = now or clinic_now()
    cutoff = now - timedelta(minutes=config.NO_SHOW_GRACE_MINUTES)

    candidates = db.query(Appointment).filter(
        Appointment.status.in_([Status.SCHEDULED, Status.CONFIRMED]),
        Appointment.date <= cutoff.date(),
    ).all()

    marked = 0
    for appointment in candidates:
        if appointment.starts_at > cutoff:
            continue
        apply_transition(appointment, Status.NO_SHOW, SYSTEM_ACTOR, now)
        marked += 1

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('No-show sweep failed')
        raise PersistenceFailure() from exc

    if marked:
        logger.info('Marked %s appointments as no-show', marked)
    return marked
