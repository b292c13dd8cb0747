"""Clinic wall clock.

All dates and times are stored as naive values in the single clinic zone.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from backend.core import config


def clinic_now() -> datetime:
    return datetime.now(ZoneInfo(config.CLINIC_TIMEZONE)).replace(tzinfo=None, microsecond=0)
