"""
Domain models for appointments and the instants they are made of.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import pendulum
from pendulum import DateTime


def ensure_instant(value: datetime, name: str = "value") -> DateTime:
    """
    Normalise a timezone-aware datetime to a pendulum DateTime.

    Raises:
        ValueError: If the datetime is naive
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware, got {value}")
    if isinstance(value, DateTime):
        return value
    return pendulum.instance(value)


@dataclass(frozen=True)
class Appointment:
    """
    A single booked appointment.

    Immutable once created. ``start < end`` and the no-overlap rule are
    enforced by the scheduling service, not here.
    """
    id: UUID
    start: DateTime
    end: DateTime
    description: Optional[str] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, start: DateTime, end: DateTime) -> bool:
        """Half-open overlap check of [self.start, self.end) against [start, end)."""
        return self.start < end and self.end > start

    def __str__(self) -> str:
        if self.start.date() == self.end.date():
            span = f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"
        else:
            span = f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('DD.MM.YYYY HH:mm')}"
        if self.description:
            return f"{span} {self.description}"
        return span
