"""
Application service for booking appointments and searching free slots.

The service owns every domain rule: valid time ranges, the no-overlap
invariant, positive durations, and minting appointment ids. Storage is
reached through ``IntervalStoreProtocol`` so the in-memory store can be
swapped for another backend that honours the same ordering and locking
contract.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, ContextManager, List, Optional, Protocol

from pendulum import DateTime

from ..domain.exceptions import (
    AppointmentConflict,
    DuplicateAppointmentId,
    InvalidDuration,
    InvalidTimeRange,
    NoFreeSlotAvailable,
)
from ..domain.models import Appointment, ensure_instant

logger = logging.getLogger(__name__)


class IntervalStoreProtocol(Protocol):
    """Protocol describing the storage behaviour needed by the service."""

    def insert(self, appointment: Appointment) -> None:
        """Insert keeping ascending start order, without any checks."""

    def get(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        """Return the appointment with this id, or None."""

    def find_overlapping(self, start: DateTime, end: DateTime) -> List[Appointment]:
        """Return appointments intersecting [start, end), ascending by start."""

    def find_between(
        self,
        start: DateTime,
        end: Optional[DateTime] = None,
    ) -> List[Appointment]:
        """Return appointments starting in [start, end), ascending by start."""

    def read_lock(self) -> ContextManager[None]:
        """Shared access, re-entrant for the holding thread."""

    def write_lock(self) -> ContextManager[None]:
        """Exclusive access, re-entrant and readable by the holding thread."""


class SchedulingService:
    """
    Creates appointments and answers next-free-slot queries.

    ``create_appointment`` holds the store's write lock across the overlap
    query and the insert, so two concurrent callers can never both pass the
    check for the same range. ``find_next_free_slot`` holds the read lock and
    may run alongside other searches but never alongside a creation.
    """

    def __init__(
        self,
        store: IntervalStoreProtocol,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        self._store = store
        self._id_factory = id_factory

    def create_appointment(
        self,
        start: datetime,
        end: datetime,
        description: Optional[str] = None,
    ) -> Appointment:
        """
        Book a new appointment.

        Raises:
            InvalidTimeRange: If ``start`` is not strictly before ``end``
            AppointmentConflict: If the range intersects a booked appointment
        """
        start = ensure_instant(start, "start")
        end = ensure_instant(end, "end")
        self._check_range(start, end)

        with self._store.write_lock():
            self._check_conflicts(start, end)
            appointment = Appointment(
                id=self._id_factory(),
                start=start,
                end=end,
                description=description,
            )
            self._store.insert(appointment)

        logger.debug("Created appointment %s (%s - %s)", appointment.id, start, end)
        return appointment

    def restore_appointment(self, appointment: Appointment) -> Appointment:
        """
        Re-admit a previously created appointment, keeping its id.

        Used when loading an appointment book. Validation is the same as for
        ``create_appointment``, and the stored copy carries normalised instants.

        Raises:
            InvalidTimeRange: If ``start`` is not strictly before ``end``
            DuplicateAppointmentId: If an appointment with the same id is booked
            AppointmentConflict: If the range intersects a booked appointment
        """
        start = ensure_instant(appointment.start, "start")
        end = ensure_instant(appointment.end, "end")
        self._check_range(start, end)
        restored = dataclasses.replace(appointment, start=start, end=end)

        with self._store.write_lock():
            if self._store.get(restored.id) is not None:
                logger.warning("Rejected duplicate appointment id %s", restored.id)
                raise DuplicateAppointmentId(restored.id)
            self._check_conflicts(start, end)
            self._store.insert(restored)

        logger.debug("Restored appointment %s (%s - %s)", restored.id, start, end)
        return restored

    def find_next_free_slot(
        self,
        from_: datetime,
        duration: timedelta,
        search_until: Optional[datetime] = None,
    ) -> DateTime:
        """
        Find the earliest start of a free slot of ``duration`` at or after ``from_``.

        First fit over the booked appointments starting in
        [from_, search_until):
        1. nothing booked: ``from_`` itself
        2. the gap before the first appointment
        3. the first gap between two consecutive appointments
        4. the tail after the last appointment
        Boundaries are inclusive, so back-to-back fits are accepted. A gap
        whose slot would end after ``search_until`` is skipped, not fatal.

        Raises:
            InvalidDuration: If ``duration`` is zero or negative
            NoFreeSlotAvailable: If no slot fits before ``search_until``
        """
        if duration <= timedelta(0):
            logger.warning("Rejected non-positive slot duration %s", duration)
            raise InvalidDuration(duration)

        from_ = ensure_instant(from_, "from_")
        if search_until is not None:
            search_until = ensure_instant(search_until, "search_until")

        with self._store.read_lock():
            cursor = self._skip_running_appointment(from_, duration)
            candidates = self._store.find_between(from_, search_until)

        def fits(slot_start: DateTime) -> bool:
            return search_until is None or slot_start + duration <= search_until

        slot = None
        if not candidates:
            if fits(cursor):
                slot = cursor
        elif cursor + duration <= candidates[0].start:
            slot = cursor
        else:
            for current, following in zip(candidates, candidates[1:]):
                gap_start = current.end
                if gap_start + duration <= following.start and fits(gap_start):
                    slot = gap_start
                    break
            else:
                last_end = candidates[-1].end
                if fits(last_end):
                    slot = last_end

        if slot is None:
            logger.info(
                "No free slot of %s from %s before %s", duration, from_, search_until
            )
            raise NoFreeSlotAvailable(duration, search_until)

        logger.debug("Next free slot of %s from %s: %s", duration, from_, slot)
        return slot

    def _skip_running_appointment(self, from_: DateTime, duration: timedelta) -> DateTime:
        """
        Move the search cursor past an appointment still running at ``from_``.

        Such an appointment started before ``from_`` and is therefore not a
        window candidate, yet a slot at ``from_`` would overlap it.
        """
        cursor = from_
        for appointment in self._store.find_overlapping(from_, from_ + duration):
            if appointment.start < from_ and appointment.end > cursor:
                cursor = appointment.end
        return cursor

    @staticmethod
    def _check_range(start: DateTime, end: DateTime) -> None:
        if not start < end:
            logger.warning("Invalid appointment time: %s - %s", start, end)
            raise InvalidTimeRange(start, end)

    def _check_conflicts(self, start: DateTime, end: DateTime) -> None:
        overlapping = self._store.find_overlapping(start, end)
        if overlapping:
            logger.info(
                "Appointment %s - %s conflicts with %d existing appointment(s)",
                start,
                end,
                len(overlapping),
            )
            raise AppointmentConflict(overlapping)
