"""Manual slot management and administrative blocking."""

import logging
from datetime import date, datetime, time

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.clock import clinic_now
from backend.core.errors import DuplicateSlot, NotFound, PersistenceFailure, SlotUnavailable
from backend.models.appointment import Appointment
from backend.models.slot import Slot
from backend.services.lifecycle import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to %s appointment slot', action)
        raise PersistenceFailure() from exc


def create_slot(
    db: Session,
    provider_id: int,
    slot_date: date,
    slot_time: time,
    is_available: bool = True,
    is_blocked: bool = False,
    now: datetime | None = None,
) -> Slot:
    existing = db.query(Slot.id).filter(
        Slot.provider_id == provider_id,
        Slot.date == slot_date,
        Slot.time == slot_time,
    ).first()
    if existing:
        raise DuplicateSlot()

    now = now or clinic_now()
    slot = Slot(
        provider_id=provider_id,
        date=slot_date,
        time=slot_time,
        is_available=is_available,
        is_blocked=is_blocked,
        created_at=now,
        updated_at=now,
    )
    db.add(slot)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateSlot() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create appointment slot')
        raise PersistenceFailure() from exc
    db.refresh(slot)

    logger.info('Created slot %s for provider %s at %s %s', slot.id, provider_id, slot_date, slot_time)
    return slot


def list_slots(db: Session, provider_id: int | None = None, slot_date: date | None = None) -> list[Slot]:
    query = db.query(Slot)
    if provider_id is not None:
        query = query.filter(Slot.provider_id == provider_id)
    if slot_date is not None:
        query = query.filter(Slot.date == slot_date)
    return query.order_by(Slot.date.asc(), Slot.time.asc()).all()


def get_slot(db: Session, slot_id: int) -> Slot:
    slot = db.get(Slot, slot_id)
    if slot is None:
        raise NotFound('Slot not found.')
    return slot


def set_blocked(db: Session, slot_id: int, is_blocked: bool, now: datetime | None = None) -> Slot:
    slot = get_slot(db, slot_id)
    slot.is_blocked = is_blocked
    slot.updated_at = now or clinic_now()
    _commit(db, 'update')
    db.refresh(slot)

    logger.info('Slot %s %s', slot_id, 'blocked' if is_blocked else 'unblocked')
    return slot


def _has_active_appointment(db: Session, slot_id: int) -> bool:
    return db.query(Appointment.id).filter(
        Appointment.slot_id == slot_id,
        Appointment.status.in_(sorted(ACTIVE_STATUSES)),
    ).first() is not None


def delete_slot(db: Session, slot_id: int) -> None:
    slot = get_slot(db, slot_id)
    if _has_active_appointment(db, slot_id):
        raise SlotUnavailable('This slot has an active appointment; cancel it before deleting the slot.')

    db.query(Appointment).filter(Appointment.slot_id == slot_id).update(
        {Appointment.slot_id: None},
        synchronize_session=False,
    )
    db.delete(slot)
    _commit(db, 'delete')

    logger.info('Deleted slot %s', slot_id)
