"""Validation shared by the scheduling services.

Everything here runs before any write so a rejected request never leaves
partial state behind.
"""

from datetime import date, datetime, time, timedelta

from backend.auth.dependencies import Actor
from backend.core import config
from backend.core.errors import InvalidDateRange, InvalidTemplate, NotPermitted, ValidationFailure
from backend.models.enums import ActorRole

# Any ordinary date works; times are combined with it only to do arithmetic.
_STEP_ANCHOR = date(2000, 1, 1)


def _window_minutes(start_time: time, end_time: time) -> float:
    window = datetime.combine(_STEP_ANCHOR, end_time) - datetime.combine(_STEP_ANCHOR, start_time)
    return window.total_seconds() / 60


def validate_template_bounds(start_time: time, end_time: time, slot_duration_minutes: int) -> None:
    if start_time >= end_time:
        raise InvalidTemplate('Start time must be before end time.')
    if slot_duration_minutes is None or slot_duration_minutes <= 0:
        raise InvalidTemplate('Slot duration must be a positive number of minutes.')

    if slot_duration_minutes > _window_minutes(start_time, end_time):
        raise InvalidTemplate('Slot duration cannot be longer than the schedule window.')


def validate_date_range(start_date: date, end_date: date, max_days: int | None = None) -> None:
    max_days = max_days or config.MAX_GENERATION_RANGE_DAYS
    if start_date > end_date:
        raise InvalidDateRange('Start date must be on or before end date.')
    if (end_date - start_date).days + 1 > max_days:
        raise InvalidDateRange(f'Date range cannot exceed {max_days} days.')


def iter_dates(start_date: date, end_date: date):
    for offset in range((end_date - start_date).days + 1):
        yield start_date + timedelta(days=offset)


def iter_slot_times(start_time: time, end_time: time, slot_duration_minutes: int):
    """Yield slot start times that fit entirely inside [start_time, end_time]."""
    if slot_duration_minutes > _window_minutes(start_time, end_time):
        return

    step = timedelta(minutes=slot_duration_minutes)
    current = datetime.combine(_STEP_ANCHOR, start_time)
    window_end = datetime.combine(_STEP_ANCHOR, end_time)

    while current + step <= window_end:
        yield current.time()
        current += step


def resolve_provider_id(actor: Actor, requested_provider_id: int | None) -> int:
    """Pick the provider a request acts for.

    Providers always act for themselves; admins must name the provider.
    """
    if actor.role == ActorRole.PROVIDER:
        if requested_provider_id is not None and requested_provider_id != actor.user_id:
            raise NotPermitted('Providers can only manage their own schedule.')
        return actor.user_id

    if actor.role == ActorRole.ADMIN:
        if requested_provider_id is None:
            raise ValidationFailure('Doctor_id is required.')
        return requested_provider_id

    raise NotPermitted('Only providers and admins can manage schedules.')


def ensure_can_manage_provider(actor: Actor, provider_id: int) -> None:
    if actor.role == ActorRole.ADMIN:
        return
    if actor.role == ActorRole.PROVIDER and actor.user_id == provider_id:
        return
    raise NotPermitted('Only the owning provider or an admin can change this record.')


def normalize_text(value: str | None, field_name: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    max_length = max_length or config.MAX_NOTES_LENGTH
    if len(normalized) > max_length:
        raise ValidationFailure(f'{field_name} must be {max_length} characters or fewer.')

    return normalized
