from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from backend.auth.dependencies import Actor, get_current_actor
from backend.database import get_db
from backend.models.enums import Weekday
from backend.models.schedule_template import ScheduleTemplate
from backend.services import templates as template_store
from backend.services.slot_generator import generate_slots
from backend.services.validation import ensure_can_manage_provider, resolve_provider_id

router = APIRouter(tags=['doctor-schedule'])
generation_router = APIRouter(tags=['schedule'])


def _normalize_weekday(value):
    if isinstance(value, str):
        return value.strip().capitalize()
    return value


class CreateScheduleTemplateRequest(BaseModel):
    provider_id: int | None = Field(default=None, alias='Doctor_id')
    weekday: Weekday = Field(alias='Day_Of_The_Week')
    start_time: time = Field(alias='Start_Time')
    end_time: time = Field(alias='End_Time')
    slot_duration_minutes: int = Field(alias='Slot_Duration')
    is_active: bool = Field(default=True, alias='Is_Active')

    class Config:
        populate_by_name = True

    @field_validator('weekday', mode='before')
    @classmethod
    def validate_weekday(cls, value):
        return _normalize_weekday(value)


class UpdateScheduleTemplateRequest(BaseModel):
    weekday: Weekday | None = Field(default=None, alias='Day_Of_The_Week')
    start_time: time | None = Field(default=None, alias='Start_Time')
    end_time: time | None = Field(default=None, alias='End_Time')
    slot_duration_minutes: int | None = Field(default=None, alias='Slot_Duration')
    is_active: bool | None = Field(default=None, alias='Is_Active')

    class Config:
        populate_by_name = True
        extra = 'forbid'

    @field_validator('weekday', mode='before')
    @classmethod
    def validate_weekday(cls, value):
        return _normalize_weekday(value)


class ScheduleTemplateResponse(BaseModel):
    id: int = Field(alias='Schedule_id')
    provider_id: int = Field(alias='Doctor_id')
    weekday: Weekday = Field(alias='Day_Of_The_Week')
    start_time: time = Field(alias='Start_Time')
    end_time: time = Field(alias='End_Time')
    slot_duration_minutes: int = Field(alias='Slot_Duration')
    is_active: bool = Field(alias='Is_Active')
    created_at: datetime = Field(alias='Created_at')
    updated_at: datetime = Field(alias='Updated_at')

    class Config:
        populate_by_name = True

    @classmethod
    def from_template(cls, template: ScheduleTemplate) -> 'ScheduleTemplateResponse':
        return cls(
            id=template.id,
            provider_id=template.provider_id,
            weekday=template.weekday,
            start_time=template.start_time,
            end_time=template.end_time,
            slot_duration_minutes=template.slot_duration_minutes,
            is_active=template.is_active,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )


class GenerateSlotsRequest(BaseModel):
    provider_id: int | None = Field(default=None, alias='Doctor_id')
    start_date: date = Field(alias='startDate')
    end_date: date = Field(alias='endDate')

    class Config:
        populate_by_name = True


class GenerateSlotsResponse(BaseModel):
    message: str
    slots_generated: int = Field(alias='slotsGenerated')

    class Config:
        populate_by_name = True


@router.post('', response_model=ScheduleTemplateResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(
    data: CreateScheduleTemplateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    provider_id = resolve_provider_id(actor, data.provider_id)
    template = template_store.create_template(
        db,
        provider_id=provider_id,
        weekday=data.weekday,
        start_time=data.start_time,
        end_time=data.end_time,
        slot_duration_minutes=data.slot_duration_minutes,
        is_active=data.is_active,
    )
    return ScheduleTemplateResponse.from_template(template)


@router.get('', response_model=list[ScheduleTemplateResponse])
def list_schedules(
    doctor_id: int | None = Query(default=None, alias='Doctor_id'),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    del actor
    return [
        ScheduleTemplateResponse.from_template(template)
        for template in template_store.list_templates(db, provider_id=doctor_id)
    ]


@router.get('/doctor/{doctor_id}', response_model=list[ScheduleTemplateResponse])
def list_schedules_for_doctor(
    doctor_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return list_schedules(doctor_id=doctor_id, actor=actor, db=db)


@router.get('/{schedule_id}', response_model=ScheduleTemplateResponse)
def get_schedule(
    schedule_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    del actor
    return ScheduleTemplateResponse.from_template(template_store.get_template(db, schedule_id))


@router.patch('/{schedule_id}', response_model=ScheduleTemplateResponse)
def update_schedule(
    schedule_id: int,
    data: UpdateScheduleTemplateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    template = template_store.get_template(db, schedule_id)
    ensure_can_manage_provider(actor, template.provider_id)

    updated = template_store.update_template(db, schedule_id, data.model_dump(exclude_unset=True))
    return ScheduleTemplateResponse.from_template(updated)


@router.delete('/{schedule_id}')
def delete_schedule(
    schedule_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    template = template_store.get_template(db, schedule_id)
    ensure_can_manage_provider(actor, template.provider_id)

    template_store.delete_template(db, schedule_id)
    return {'message': 'Doctor schedule deleted successfully.'}


@generation_router.post('/generate-slots', response_model=GenerateSlotsResponse)
def generate_appointment_slots(
    data: GenerateSlotsRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    provider_id = resolve_provider_id(actor, data.provider_id)
    slots_generated = generate_slots(db, provider_id, data.start_date, data.end_date)

    message = (
        'Appointment slots generated successfully.'
        if slots_generated
        else 'No new appointment slots were needed for this range.'
    )
    return GenerateSlotsResponse(message=message, slots_generated=slots_generated)
