"""
Tests for the in-memory interval store and its lock.
"""

import threading
import uuid

import pendulum
import pytest

from slotbook.adapters.memory_store import InMemoryIntervalStore, ReadWriteLock
from slotbook.domain.models import Appointment


def _at(value: str):
    return pendulum.parse(f"2025-01-10 {value}", tz="Europe/Amsterdam")


def _appointment(start: str, end: str) -> Appointment:
    return Appointment(id=uuid.uuid4(), start=_at(start), end=_at(end))


@pytest.fixture
def store():
    store = InMemoryIntervalStore()
    # Inserted out of order on purpose
    for start, end in [("13:00", "14:00"), ("09:00", "10:00"), ("11:00", "12:00")]:
        store.insert(_appointment(start, end))
    return store


class TestInsert:
    """Tests for ordered insertion."""

    def test_keeps_ascending_start_order(self, store):
        """Test out-of-order inserts are kept sorted."""
        starts = [appointment.start for appointment in store]

        assert starts == [_at("09:00"), _at("11:00"), _at("13:00")]
        assert len(store) == 3

    def test_equal_start_goes_after_existing(self):
        """Test equal starts keep insertion order."""
        store = InMemoryIntervalStore()
        first = _appointment("09:00", "10:00")
        second = _appointment("09:00", "09:30")

        store.insert(first)
        store.insert(second)

        assert list(store) == [first, second]

    def test_indexes_by_id(self, store):
        """Test inserted appointments can be looked up by id."""
        appointment = _appointment("15:00", "16:00")

        store.insert(appointment)

        assert store.get(appointment.id) is appointment
        assert store.get(uuid.uuid4()) is None


class TestFindOverlapping:
    """Tests for the overlap query."""

    def test_returns_intersecting_appointments_ascending(self, store):
        """Test overlapping appointments come back in start order."""
        result = store.find_overlapping(_at("09:30"), _at("11:30"))

        assert [a.start for a in result] == [_at("09:00"), _at("11:00")]

    def test_touching_boundaries_do_not_overlap(self, store):
        """Test touching ranges are not overlaps."""
        assert store.find_overlapping(_at("10:00"), _at("11:00")) == []
        assert store.find_overlapping(_at("12:00"), _at("13:00")) == []

    def test_nested_range_overlaps(self, store):
        """Test a range inside an appointment overlaps it."""
        result = store.find_overlapping(_at("09:15"), _at("09:45"))

        assert [a.start for a in result] == [_at("09:00")]

    def test_range_covering_everything(self, store):
        """Test a wide range returns every appointment."""
        result = store.find_overlapping(_at("08:00"), _at("15:00"))

        assert len(result) == 3

    def test_empty_store(self):
        """Test an empty store has no overlaps."""
        assert InMemoryIntervalStore().find_overlapping(_at("08:00"), _at("15:00")) == []


class TestFindBetween:
    """Tests for the window query."""

    def test_window_is_half_open_on_start(self, store):
        """Test the window includes its start and excludes its end."""
        result = store.find_between(_at("09:00"), _at("13:00"))

        assert [a.start for a in result] == [_at("09:00"), _at("11:00")]

    def test_open_ended_window(self, store):
        """Test a window without end runs to the last appointment."""
        result = store.find_between(_at("10:00"))

        assert [a.start for a in result] == [_at("11:00"), _at("13:00")]

    def test_appointment_running_at_window_start_is_excluded(self, store):
        """Test an appointment started before the window is left out."""
        result = store.find_between(_at("09:30"), _at("12:00"))

        assert [a.start for a in result] == [_at("11:00")]

    def test_empty_window(self, store):
        """Test empty and late windows return nothing."""
        assert store.find_between(_at("14:00"), _at("14:00")) == []
        assert store.find_between(_at("15:00")) == []


class TestReadWriteLock:
    """Tests for the reader/writer lock."""

    def test_writer_can_read_and_reenter(self):
        """Test the writer may read and re-enter, then fully releases."""
        lock = ReadWriteLock()

        with lock.write_locked():
            with lock.read_locked():
                with lock.write_locked():
                    pass

        # Fully released: another thread can write
        acquired = threading.Event()

        def writer():
            with lock.write_locked():
                acquired.set()

        thread = threading.Thread(target=writer)
        thread.start()
        thread.join(timeout=2)
        assert acquired.is_set()

    def test_readers_share_the_lock(self):
        """Test two readers hold the lock at once."""
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=2)

        def reader():
            with lock.read_locked():
                both_inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=3)

        assert not both_inside.broken

    def test_writer_waits_for_reader(self):
        """Test a writer waits until the reader is done."""
        lock = ReadWriteLock()
        events = []
        writer_started = threading.Event()

        def writer():
            writer_started.set()
            with lock.write_locked():
                events.append("write")

        with lock.read_locked():
            thread = threading.Thread(target=writer)
            thread.start()
            writer_started.wait(timeout=2)
            thread.join(timeout=0.1)
            events.append("read done")

        thread.join(timeout=2)
        assert events == ["read done", "write"]

    def test_upgrade_is_refused(self):
        """Test a reader cannot upgrade to writer."""
        lock = ReadWriteLock()

        with lock.read_locked():
            with pytest.raises(RuntimeError, match="upgrade"):
                lock.acquire_write()

    def test_release_without_holding_raises(self):
        """Test releasing an unheld lock raises."""
        lock = ReadWriteLock()

        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()
