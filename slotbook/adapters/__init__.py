"""
Adapters layer - Storage backends and the appointment book file.
"""

from .appointment_file import load_appointments, open_book, save_appointments
from .memory_store import InMemoryIntervalStore, ReadWriteLock

__all__ = [
    "InMemoryIntervalStore",
    "ReadWriteLock",
    "load_appointments",
    "open_book",
    "save_appointments",
]
