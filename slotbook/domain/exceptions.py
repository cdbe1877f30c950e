"""
Domain-specific exception hierarchy for the appointment book.

The four ``SchedulingError`` subclasses are expected outcomes a caller can
recover from; each carries an ``ErrorKind`` so a front end can map it to a
distinct response. ``StorageError`` is not part of that hierarchy.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence, Tuple
from uuid import UUID

import pendulum
from pendulum import DateTime

if TYPE_CHECKING:
    from .models import Appointment


class ErrorKind(str, Enum):
    """Machine-readable failure codes."""

    INVALID_TIME_RANGE = "INVALID_APPOINTMENT_TIME"
    APPOINTMENT_CONFLICT = "APPOINTMENT_CONFLICT"
    INVALID_DURATION = "INVALID_DURATION"
    NO_FREE_SLOT = "NO_FREE_SLOT"


class SchedulingError(Exception):
    """Base class for all expected scheduling failures."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTimeRange(SchedulingError):
    """Raised when an appointment does not start strictly before it ends."""

    kind = ErrorKind.INVALID_TIME_RANGE

    def __init__(self, start: DateTime, end: DateTime):
        super().__init__(f"Appointment start {start} must be before end {end}")
        self.start = start
        self.end = end


class AppointmentConflict(SchedulingError):
    """Raised when a new appointment would overlap existing ones."""

    kind = ErrorKind.APPOINTMENT_CONFLICT

    def __init__(self, conflicts: Sequence["Appointment"]):
        self.conflicts: Tuple["Appointment", ...] = tuple(conflicts)
        super().__init__(
            f"Appointment overlaps with {len(self.conflicts)} existing appointment(s)"
        )

    @property
    def count(self) -> int:
        return len(self.conflicts)


class InvalidDuration(SchedulingError):
    """Raised when a requested slot duration is zero or negative."""

    kind = ErrorKind.INVALID_DURATION

    def __init__(self, duration: timedelta):
        super().__init__(f"Duration must be positive, got {duration}")
        self.duration = duration


class NoFreeSlotAvailable(SchedulingError):
    """Raised when no gap of the requested duration exists before the bound."""

    kind = ErrorKind.NO_FREE_SLOT

    def __init__(self, duration: timedelta, search_until: Optional[DateTime]):
        words = pendulum.duration(seconds=duration.total_seconds()).in_words()
        super().__init__(
            f"No free slot of {words} available before {search_until}"
        )
        self.duration = duration
        self.search_until = search_until


class StorageError(Exception):
    """Raised when appointments cannot be read from or written to storage."""


class DuplicateAppointmentId(StorageError):
    """Raised when an appointment id is already present in the store."""

    def __init__(self, appointment_id: UUID):
        super().__init__(f"Appointment id {appointment_id} is already booked")
        self.appointment_id = appointment_id
