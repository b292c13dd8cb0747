from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.auth.dependencies import Actor, get_current_actor
from backend.core.errors import ValidationFailure
from backend.database import get_db
from backend.models.slot import Slot
from backend.services import slots as slot_store
from backend.services.availability import find_available
from backend.services.validation import ensure_can_manage_provider, resolve_provider_id

router = APIRouter(tags=['appointment-slots'])


class CreateSlotRequest(BaseModel):
    provider_id: int | None = Field(default=None, alias='Doctor_id')
    slot_date: date = Field(alias='Slot_Date')
    slot_time: time = Field(alias='Slot_Time')
    is_available: bool = Field(default=True, alias='Is_Available')
    is_blocked: bool = Field(default=False, alias='Is_Blocked')

    class Config:
        populate_by_name = True


class UpdateSlotRequest(BaseModel):
    # Availability only changes through booking and cancellation.
    is_blocked: bool = Field(alias='Is_Blocked')

    class Config:
        populate_by_name = True
        extra = 'forbid'


class SlotResponse(BaseModel):
    id: int = Field(alias='Slot_id')
    provider_id: int = Field(alias='Doctor_id')
    slot_date: date = Field(alias='Slot_Date')
    slot_time: time = Field(alias='Slot_Time')
    is_available: bool = Field(alias='Is_Available')
    is_blocked: bool = Field(alias='Is_Blocked')
    created_at: datetime = Field(alias='Created_at')
    updated_at: datetime = Field(alias='Updated_at')

    class Config:
        populate_by_name = True

    @classmethod
    def from_slot(cls, slot: Slot) -> 'SlotResponse':
        return cls(
            id=slot.id,
            provider_id=slot.provider_id,
            slot_date=slot.date,
            slot_time=slot.time,
            is_available=slot.is_available,
            is_blocked=slot.is_blocked,
            created_at=slot.created_at,
            updated_at=slot.updated_at,
        )


@router.post('', response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    data: CreateSlotRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    provider_id = resolve_provider_id(actor, data.provider_id)
    slot = slot_store.create_slot(
        db,
        provider_id=provider_id,
        slot_date=data.slot_date,
        slot_time=data.slot_time,
        is_available=data.is_available,
        is_blocked=data.is_blocked,
    )
    return SlotResponse.from_slot(slot)


@router.get('', response_model=list[SlotResponse])
def list_slots(
    doctor_id: int | None = Query(default=None, alias='Doctor_id'),
    slot_date: date | None = Query(default=None, alias='date'),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    del actor
    return [
        SlotResponse.from_slot(slot)
        for slot in slot_store.list_slots(db, provider_id=doctor_id, slot_date=slot_date)
    ]


@router.get('/available', response_model=list[SlotResponse])
def list_available_slots(
    doctor_id: int = Query(..., alias='Doctor_id'),
    slot_date: date | None = Query(default=None, alias='date'),
    start_date: date | None = Query(default=None, alias='startDate'),
    end_date: date | None = Query(default=None, alias='endDate'),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    del actor
    if slot_date is not None:
        start_date, end_date = slot_date, slot_date
    if start_date is None:
        raise ValidationFailure('Provide either date or startDate.')

    return [
        SlotResponse.from_slot(slot)
        for slot in find_available(db, doctor_id, start_date, end_date)
    ]


@router.get('/{slot_id}', response_model=SlotResponse)
def get_slot(
    slot_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    del actor
    return SlotResponse.from_slot(slot_store.get_slot(db, slot_id))


@router.patch('/{slot_id}', response_model=SlotResponse)
def update_slot(
    slot_id: int,
    data: UpdateSlotRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    slot = slot_store.get_slot(db, slot_id)
    ensure_can_manage_provider(actor, slot.provider_id)

    return SlotResponse.from_slot(slot_store.set_blocked(db, slot_id, data.is_blocked))


@router.delete('/{slot_id}')
def delete_slot(
    slot_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    slot = slot_store.get_slot(db, slot_id)
    ensure_can_manage_provider(actor, slot.provider_id)

    slot_store.delete_slot(db, slot_id)
    return {'message': 'Appointment slot deleted successfully.'}
