"""Appointment lookups for providers, patients and admins."""

from sqlalchemy.orm import Session

from backend.core.errors import NotFound
from backend.models.appointment import Appointment


def list_appointments(
    db: Session,
    provider_id: int | None = None,
    patient_id: int | None = None,
) -> list[Appointment]:
    query = db.query(Appointment)
    if provider_id is not None:
        query = query.filter(Appointment.provider_id == provider_id)
    if patient_id is not None:
        query = query.filter(Appointment.patient_id == patient_id)
    return query.order_by(Appointment.date.desc(), Appointment.time.desc()).all()


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound('Appointment not found.')
    return appointment
