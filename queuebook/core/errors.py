"""
Typed scheduling errors.

Every error the booking core raises derives from SchedulingError and carries
the HTTP status the API layer answers with, so routes stay thin.
"""
from __future__ import annotations

from fastapi import HTTPException, status


class SchedulingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidConfiguration(SchedulingError):
    """Malformed working hours or service data. Needs an operator to fix it."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class SlotUnavailable(SchedulingError):
    """Requested time is not free. Refetch slots and retry."""

    status_code = status.HTTP_409_CONFLICT


class DurationExceedsWindow(SchedulingError):
    """Booking would run past closing time."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransition(SchedulingError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, attempted: str):
        super().__init__(f"Cannot move appointment from '{current}' to '{attempted}'.")
        self.current = current
        self.attempted = attempted


class PartitionConflict(SchedulingError):
    """Another writer won the race for the same slot. Reload and retry."""

    status_code = status.HTTP_409_CONFLICT


class BookingNotAllowed(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class NotWaiting(SchedulingError):
    """Only scheduled or confirmed appointments hold a queue place."""

    status_code = status.HTTP_409_CONFLICT


class QueueEmpty(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


def scheduling_error_to_http(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
