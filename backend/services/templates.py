"""Recurring weekly availability templates."""

import logging
from datetime import datetime, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.clock import clinic_now
from backend.core.errors import NotFound, PersistenceFailure, ValidationFailure
from backend.models.enums import Weekday
from backend.models.schedule_template import ScheduleTemplate
from backend.services.validation import validate_template_bounds

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({'weekday', 'start_time', 'end_time', 'slot_duration_minutes', 'is_active'})


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to %s schedule template', action)
        raise PersistenceFailure() from exc


def create_template(
    db: Session,
    provider_id: int,
    weekday: Weekday,
    start_time: time,
    end_time: time,
    slot_duration_minutes: int,
    is_active: bool = True,
    now: datetime | None = None,
) -> ScheduleTemplate:
    validate_template_bounds(start_time, end_time, slot_duration_minutes)
    now = now or clinic_now()

    template = ScheduleTemplate(
        provider_id=provider_id,
        weekday=Weekday(weekday),
        start_time=start_time,
        end_time=end_time,
        slot_duration_minutes=slot_duration_minutes,
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )
    db.add(template)
    _commit(db, 'create')
    db.refresh(template)

    logger.info(
        'Created schedule template %s for provider %s on %s',
        template.id,
        provider_id,
        template.weekday.value,
    )
    return template


def list_templates(db: Session, provider_id: int | None = None) -> list[ScheduleTemplate]:
    query = db.query(ScheduleTemplate)
    if provider_id is not None:
        query = query.filter(ScheduleTemplate.provider_id == provider_id)

    templates = query.all()
    # weekday is stored by name, so calendar order is applied here
    return sorted(templates, key=lambda item: (item.provider_id, item.weekday.ordinal, item.start_time))


def list_active_templates(db: Session, provider_id: int) -> list[ScheduleTemplate]:
    return db.query(ScheduleTemplate).filter(
        ScheduleTemplate.provider_id == provider_id,
        ScheduleTemplate.is_active.is_(True),
    ).all()


def get_template(db: Session, template_id: int) -> ScheduleTemplate:
    template = db.get(ScheduleTemplate, template_id)
    if template is None:
        raise NotFound('Schedule not found.')
    return template


def update_template(db: Session, template_id: int, patch: dict, now: datetime | None = None) -> ScheduleTemplate:
    template = get_template(db, template_id)

    unknown_fields = set(patch) - UPDATABLE_FIELDS
    if unknown_fields:
        raise ValidationFailure(f'Cannot update fields: {", ".join(sorted(unknown_fields))}.')

    merged = {field: getattr(template, field) for field in UPDATABLE_FIELDS}
    merged.update({field: value for field, value in patch.items() if value is not None})
    validate_template_bounds(merged['start_time'], merged['end_time'], merged['slot_duration_minutes'])

    for field, value in merged.items():
        setattr(template, field, Weekday(value) if field == 'weekday' else value)
    template.updated_at = now or clinic_now()

    _commit(db, 'update')
    db.refresh(template)

    logger.info('Updated schedule template %s', template_id)
    return template


def delete_template(db: Session, template_id: int) -> None:
    template = get_template(db, template_id)
    db.delete(template)
    _commit(db, 'delete')

    logger.info('Deleted schedule template %s; generated slots are kept', template_id)
