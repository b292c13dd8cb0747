"""Booking coordinator.

This module is the only writer of ``Slot.is_available``. A booking flips
the slot and inserts the appointment in one transaction; a cancellation
flips the slot back in the same transaction as the status change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import Actor
from backend.core.clock import clinic_now
from backend.core.errors import NotFound, PersistenceFailure, SchedulingError, SlotUnavailable
from backend.models.appointment import Appointment
from backend.models.enums import AppointmentStatus, AppointmentType, PaymentStatus
from backend.models.slot import Slot
from backend.services.lifecycle import apply_transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppointmentFields:
    appointment_type: AppointmentType = AppointmentType.IN_PERSON
    reason: str | None = None
    notes: str | None = None
    payment_status: PaymentStatus | None = None


def _claim_slot(db: Session, slot_id: int, now: datetime) -> bool:
    result = db.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.is_available.is_(True),
            Slot.is_blocked.is_(False),
        )
        .values(is_available=False, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def book(
    db: Session,
    slot_id: int,
    patient_id: int,
    fields: AppointmentFields | None = None,
    now: datetime | None = None,
) -> Appointment:
    fields = fields or AppointmentFields()
    now = now or clinic_now()

    try:
        slot = db.query(Slot).filter(Slot.id == slot_id).with_for_update().first()
        if slot is None:
            raise NotFound('Slot not found.')
        if not slot.is_bookable:
            raise SlotUnavailable('This slot is no longer available. Refresh availability and pick another time.')
        if slot.starts_at <= now:
            raise SlotUnavailable('This slot has already started.')

        if not _claim_slot(db, slot_id, now):
            raise SlotUnavailable('This slot was just booked by someone else. Refresh availability and pick another time.')

        appointment = Appointment(
            patient_id=patient_id,
            provider_id=slot.provider_id,
            slot_id=slot.id,
            date=slot.date,
            time=slot.time,
            appointment_type=AppointmentType(fields.appointment_type),
            status=AppointmentStatus.SCHEDULED,
            reason=fields.reason,
            notes=fields.notes,
            payment_status=PaymentStatus(fields.payment_status or PaymentStatus.PENDING),
            created_at=now,
            updated_at=now,
        )
        db.add(appointment)
        db.commit()
    except SchedulingError:
        db.rollback()
        logger.warning('Booking of slot %s for patient %s was rejected', slot_id, patient_id)
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to book slot %s for patient %s', slot_id, patient_id)
        raise PersistenceFailure() from exc

    db.refresh(appointment)
    logger.info('Booked appointment %s on slot %s for patient %s', appointment.id, slot_id, patient_id)
    return appointment


def _reopen_slot(db: Session, appointment: Appointment, now: datetime) -> bool:
    if appointment.slot_id is None:
        return False

    slot = db.query(Slot).filter(Slot.id == appointment.slot_id).with_for_update().first()
    if slot is None or slot.starts_at <= now:
        return False

    slot.is_available = True
    slot.updated_at = now
    return True


def change_status(
    db: Session,
    appointment_id: int,
    target: AppointmentStatus,
    actor: Actor,
    now: datetime | None = None,
) -> Appointment:
    """Apply one lifecycle transition, releasing the slot on cancellation."""
    target = AppointmentStatus(target)
    now = now or clinic_now()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).with_for_update().first()
        if appointment is None:
            raise NotFound('Appointment not found.')

        previous = apply_transition(appointment, target, actor, now)
        reopened = target == AppointmentStatus.CANCELLED and _reopen_slot(db, appointment, now)
        db.commit()
    except SchedulingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to change status of appointment %s', appointment_id)
        raise PersistenceFailure() from exc

    db.refresh(appointment)
    logger.info(
        'Appointment %s moved from %s to %s by %s %s%s',
        appointment_id,
        previous.value,
        target.value,
        actor.role.value,
        actor.user_id,
        '; slot reopened' if reopened else '',
    )
    return appointment


def release(db: Session, appointment_id: int, actor: Actor, now: datetime | None = None) -> Appointment:
    return change_status(db, appointment_id, AppointmentStatus.CANCELLED, actor, now=now)
