"""
In-memory interval store keeping appointments sorted by start time.
"""

from __future__ import annotations

import threading
from bisect import bisect_left, bisect_right
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional
from uuid import UUID

from pendulum import DateTime

from ..domain.models import Appointment


class ReadWriteLock:
    """
    Many concurrent readers or a single writer.

    Both sides are re-entrant for the thread that holds them, and the writer
    may also take read access. Once a writer is waiting, new readers queue
    behind it so a steady stream of queries cannot starve creations.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers: Dict[int, int] = {}
        self._writer: Optional[int] = None
        self._writer_depth = 0
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                return
            if me in self._readers:
                self._readers[me] += 1
                return
            while self._writer is not None or self._writers_waiting:
                self._cond.wait()
            self._readers[me] = 1

    def release_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth -= 1
                return
            depth = self._readers.get(me)
            if depth is None:
                raise RuntimeError("release_read() called without holding the read lock")
            if depth > 1:
                self._readers[me] = depth - 1
                return
            del self._readers[me]
            if not self._readers:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                return
            if me in self._readers:
                raise RuntimeError("Cannot upgrade a read lock to a write lock")
            self._writers_waiting += 1
            try:
                while self._writer is not None or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = me
            self._writer_depth = 1

    def release_write(self) -> None:
        with self._cond:
            if self._writer != threading.get_ident():
                raise RuntimeError("release_write() called without holding the write lock")
            self._writer_depth -= 1
            if self._writer_depth == 0:
                self._writer = None
                self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class InMemoryIntervalStore:
    """
    Appointment storage backed by a sorted list.

    The store trusts its caller: it keeps appointments ordered by start but
    never checks for overlaps. That rule belongs to ``SchedulingService``,
    which holds ``write_lock()`` across its overlap query and the insert.
    """

    def __init__(self) -> None:
        self._appointments: List[Appointment] = []
        # Parallel list of start instants for binary search
        self._starts: List[DateTime] = []
        self._by_id: Dict[UUID, Appointment] = {}
        self._lock = ReadWriteLock()

    def read_lock(self):
        """Shared access for a group of queries."""
        return self._lock.read_locked()

    def write_lock(self):
        """Exclusive access for a check-then-insert transaction."""
        return self._lock.write_locked()

    def insert(self, appointment: Appointment) -> None:
        """Insert after every appointment starting at or before the new one."""
        with self._lock.write_locked():
            index = bisect_right(self._starts, appointment.start)
            self._starts.insert(index, appointment.start)
            self._appointments.insert(index, appointment)
            self._by_id[appointment.id] = appointment

    def get(self, appointment_id: UUID) -> Optional[Appointment]:
        """Look up an appointment by id."""
        with self._lock.read_locked():
            return self._by_id.get(appointment_id)

    def find_overlapping(self, start: DateTime, end: DateTime) -> List[Appointment]:
        """
        Return all appointments intersecting the half-open range [start, end).

        Appointments starting at or after ``end`` can never overlap, and since
        the list is sorted by start the scan stops at the first of them.
        """
        with self._lock.read_locked():
            stop = bisect_left(self._starts, end)
            return [
                appointment
                for appointment in self._appointments[:stop]
                if appointment.overlaps(start, end)
            ]

    def find_between(
        self,
        start: DateTime,
        end: Optional[DateTime] = None
    ) -> List[Appointment]:
        """
        Return all appointments whose start lies in [start, end).

        With no ``end`` the window is open ended.
        """
        with self._lock.read_locked():
            lo = bisect_left(self._starts, start)
            hi = len(self._starts) if end is None else bisect_left(self._starts, end)
            return self._appointments[lo:hi]

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._appointments)

    def __iter__(self) -> Iterator[Appointment]:
        with self._lock.read_locked():
            snapshot = list(self._appointments)
        return iter(snapshot)
