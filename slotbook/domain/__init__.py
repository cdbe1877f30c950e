"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    AppointmentConflict,
    DuplicateAppointmentId,
    ErrorKind,
    InvalidDuration,
    InvalidTimeRange,
    NoFreeSlotAvailable,
    SchedulingError,
    StorageError,
)
from .models import Appointment, ensure_instant

__all__ = [
    "Appointment",
    "AppointmentConflict",
    "DuplicateAppointmentId",
    "ErrorKind",
    "InvalidDuration",
    "InvalidTimeRange",
    "NoFreeSlotAvailable",
    "SchedulingError",
    "StorageError",
    "ensure_instant",
]
