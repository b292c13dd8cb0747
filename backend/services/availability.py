"""Read path for bookable slots.

Results are a snapshot: a slot listed here can be claimed by someone else
before the caller books it. Only the booking claim is authoritative.
"""

from datetime import date, datetime

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from backend.core.clock import clinic_now
from backend.models.slot import Slot
from backend.services.validation import validate_date_range


def find_available(
    db: Session,
    provider_id: int,
    start_date: date,
    end_date: date | None = None,
    now: datetime | None = None,
) -> list[Slot]:
    """Open, unblocked slots that start after ``now``, ordered by date and time."""
    end_date = end_date or start_date
    validate_date_range(start_date, end_date)
    now = now or clinic_now()

    return db.query(Slot).filter(
        Slot.provider_id == provider_id,
        Slot.date >= start_date,
        Slot.date <= end_date,
        or_(
            Slot.date > now.date(),
            and_(Slot.date == now.date(), Slot.time > now.time()),
        ),
        Slot.is_available.is_(True),
        Slot.is_blocked.is_(False),
    ).order_by(Slot.date.asc(), Slot.time.asc()).all()
