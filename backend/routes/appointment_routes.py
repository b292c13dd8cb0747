from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.auth.dependencies import Actor, get_current_actor
from backend.core.errors import NotPermitted
from backend.database import get_db
from backend.models.appointment import Appointment
from backend.models.enums import ActorRole, AppointmentStatus, AppointmentType, PaymentStatus
from backend.services import booking
from backend.services.appointments import get_appointment, list_appointments
from backend.services.lifecycle import ensure_participant, mark_no_shows
from backend.services.validation import normalize_text

router = APIRouter(tags=['appointments'])


class BookAppointmentRequest(BaseModel):
    slot_id: int = Field(alias='Slot_id')
    appointment_type: AppointmentType = Field(default=AppointmentType.IN_PERSON, alias='Appointment_Type')
    reason: str | None = Field(default=None, alias='Reason_For_Visit')
    notes: str | None = Field(default=None, alias='Notes')
    payment_status: PaymentStatus | None = Field(default=None, alias='Payment_Status')

    class Config:
        populate_by_name = True


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus = Field(alias='Status')

    class Config:
        populate_by_name = True


class AppointmentResponse(BaseModel):
    id: int = Field(alias='Appointment_id')
    patient_id: int = Field(alias='Patient_id')
    provider_id: int = Field(alias='Doctor_id')
    slot_id: int | None = Field(default=None, alias='Slot_id')
    appointment_date: date = Field(alias='Appointment_Date')
    appointment_time: time = Field(alias='Appointment_Time')
    appointment_type: AppointmentType = Field(alias='Appointment_Type')
    status: AppointmentStatus = Field(alias='Status')
    reason: str | None = Field(default=None, alias='Reason_For_Visit')
    notes: str | None = Field(default=None, alias='Notes')
    payment_status: PaymentStatus = Field(alias='Payment_Status')
    created_at: datetime = Field(alias='Created_at')
    updated_at: datetime = Field(alias='Updated_at')

    class Config:
        populate_by_name = True

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> 'AppointmentResponse':
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            provider_id=appointment.provider_id,
            slot_id=appointment.slot_id,
            appointment_date=appointment.date,
            appointment_time=appointment.time,
            appointment_type=appointment.appointment_type,
            status=appointment.status,
            reason=appointment.reason,
            notes=appointment.notes,
            payment_status=appointment.payment_status,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class NoShowSweepResponse(BaseModel):
    no_shows_marked: int = Field(alias='noShowsMarked')

    class Config:
        populate_by_name = True


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    if actor.role != ActorRole.PATIENT:
        raise NotPermitted('Only patients can book appointments.')

    fields = booking.AppointmentFields(
        appointment_type=data.appointment_type,
        reason=normalize_text(data.reason, 'Reason for visit'),
        notes=normalize_text(data.notes, 'Notes'),
        payment_status=data.payment_status,
    )
    appointment = booking.book(db, data.slot_id, actor.user_id, fields)
    return AppointmentResponse.from_appointment(appointment)


@router.get('', response_model=list[AppointmentResponse])
def list_appointments_for_actor(
    doctor_id: int | None = Query(default=None, alias='Doctor_id'),
    patient_id: int | None = Query(default=None, alias='Patient_id'),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    if actor.role == ActorRole.PATIENT:
        if patient_id is not None and patient_id != actor.user_id:
            raise NotPermitted('Patients can only view their own appointments.')
        patient_id = actor.user_id
    elif actor.role == ActorRole.PROVIDER:
        if doctor_id is not None and doctor_id != actor.user_id:
            raise NotPermitted('Providers can only view their own appointments.')
        doctor_id = actor.user_id

    return [
        AppointmentResponse.from_appointment(appointment)
        for appointment in list_appointments(db, provider_id=doctor_id, patient_id=patient_id)
    ]


@router.post('/no-show-sweep', response_model=NoShowSweepResponse)
def run_no_show_sweep(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    if actor.role != ActorRole.ADMIN:
        raise NotPermitted('Only admins can run the no-show sweep.')

    return NoShowSweepResponse(no_shows_marked=mark_no_shows(db))


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment_details(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    appointment = get_appointment(db, appointment_id)
    if actor.role != ActorRole.ADMIN:
        ensure_participant(appointment, actor)

    return AppointmentResponse.from_appointment(appointment)


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    appointment = booking.change_status(db, appointment_id, data.status, actor)
    return AppointmentResponse.from_appointment(appointment)


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    appointment = booking.release(db, appointment_id, actor)
    return AppointmentResponse.from_appointment(appointment)
