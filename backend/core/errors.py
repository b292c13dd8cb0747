"""Scheduling error taxonomy.

Services raise these; the application maps each one to its HTTP status.
"""

from fastapi import status


class SchedulingError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Scheduling request failed.'

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationFailure(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'


class InvalidTemplate(ValidationFailure):
    default_detail = 'Invalid schedule template.'


class InvalidDateRange(ValidationFailure):
    default_detail = 'Invalid date range.'


class NotPermitted(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Not permitted.'


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'


class Conflict(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Request conflicts with current state.'


class SlotUnavailable(Conflict):
    default_detail = 'This slot is no longer available.'


class DuplicateSlot(Conflict):
    default_detail = 'A slot already exists at this date and time.'


class InvalidTransition(Conflict):
    default_detail = 'This status change is not allowed.'


class PersistenceFailure(SchedulingError):
    default_detail = 'Database unavailable. Please try again later.'
