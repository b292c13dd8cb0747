"""Materialize bookable slots from recurring schedule templates.

Generation is keyed on (provider_id, date, time): re-running it over the
same range only inserts slots that do not exist yet, so it is safe to call
on demand or periodically.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.clock import clinic_now
from backend.core.errors import PersistenceFailure
from backend.models.enums import Weekday
from backend.models.slot import Slot
from backend.services.templates import list_active_templates
from backend.services.validation import iter_dates, iter_slot_times, validate_date_range

logger = logging.getLogger(__name__)

# One retry absorbs a concurrent generator that inserted overlapping keys.
MAX_GENERATION_ATTEMPTS = 2


def build_candidates(templates, start_date: date, end_date: date, now: datetime) -> set[tuple[date, time]]:
    templates_by_weekday = defaultdict(list)
    for template in templates:
        templates_by_weekday[Weekday(template.weekday)].append(template)

    candidates: set[tuple[date, time]] = set()
    for current_day in iter_dates(start_date, end_date):
        for template in templates_by_weekday.get(Weekday.from_date(current_day), []):
            for slot_time in iter_slot_times(
                template.start_time,
                template.end_time,
                template.slot_duration_minutes,
            ):
                if datetime.combine(current_day, slot_time) < now:
                    continue
                candidates.add((current_day, slot_time))

    return candidates


def _existing_slot_keys(db: Session, provider_id: int, start_date: date, end_date: date) -> set[tuple[date, time]]:
    rows = db.query(Slot.date, Slot.time).filter(
        Slot.provider_id == provider_id,
        Slot.date >= start_date,
        Slot.date <= end_date,
    ).all()
    return {(slot_date, slot_time) for slot_date, slot_time in rows}


def generate_slots(
    db: Session,
    provider_id: int,
    start_date: date,
    end_date: date,
    now: datetime | None = None,
) -> int:
    """Create missing slots for ``provider_id`` over the inclusive range.

    Returns the number of slots actually inserted.
    """
    validate_date_range(start_date, end_date)
    now = now or clinic_now()

    templates = list_active_templates(db, provider_id)
    if not templates:
        logger.warning('No active schedule templates for provider %s; nothing to generate', provider_id)
        return 0

    candidates = build_candidates(templates, start_date, end_date, now)
    if not candidates:
        logger.warning(
            'No upcoming template occurrences for provider %s between %s and %s',
            provider_id,
            start_date,
            end_date,
        )
        return 0

    for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
        try:
            existing = _existing_slot_keys(db, provider_id, start_date, end_date)
            new_keys = sorted(candidates - existing)
            db.add_all([
                Slot(
                    provider_id=provider_id,
                    date=slot_date,
                    time=slot_time,
                    is_available=True,
                    is_blocked=False,
                    created_at=now,
                    updated_at=now,
                )
                for slot_date, slot_time in new_keys
            ])
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if attempt == MAX_GENERATION_ATTEMPTS:
                logger.exception('Slot generation for provider %s kept colliding with existing slots', provider_id)
                raise PersistenceFailure() from exc
            logger.warning('Slot generation for provider %s raced another writer; recomputing', provider_id)
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Failed to generate slots for provider %s', provider_id)
            raise PersistenceFailure() from exc

        logger.info(
            'Generated %s new slots for provider %s between %s and %s (%s already existed)',
            len(new_keys),
            provider_id,
            start_date,
            end_date,
            len(candidates) - len(new_keys),
        )
        return len(new_keys)
