"""
Appointment book file: load and save appointments as YAML.

File format (JSON is accepted too, being valid YAML):

    appointments:
      - id: 0b6c1f5e-3f0e-4a57-9a53-6f0f4c1d8f10
        start: "2025-01-10T09:00:00+01:00"
        end: "2025-01-10T09:30:00+01:00"
        description: Intake
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import pendulum
import yaml
from pendulum import DateTime

from ..domain.exceptions import StorageError
from ..domain.models import Appointment
from ..services.scheduling import SchedulingService
from .memory_store import InMemoryIntervalStore

logger = logging.getLogger(__name__)


def load_appointments(path: Path, timezone: str = "UTC") -> List[Appointment]:
    """
    Read appointments from a book file.

    A missing file is an empty book. Records without an ``id`` get a fresh one.
    Times without an explicit offset are read in ``timezone``.

    Raises:
        StorageError: If the file cannot be read or a record is malformed
    """
    if not path.exists():
        logger.info("Appointment book %s not found, starting empty", path)
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise StorageError(f"Could not read appointment book {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise StorageError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise StorageError(f"Appointment book {path} must contain a mapping at the root level.")

    records = data.get("appointments") or []
    if not isinstance(records, list):
        raise StorageError(f"'appointments' in {path} must be a list.")

    appointments = [
        _parse_record(record, timezone, path, position)
        for position, record in enumerate(records, 1)
    ]
    logger.debug("Loaded %d appointment(s) from %s", len(appointments), path)
    return appointments


def save_appointments(path: Path, appointments: Iterable[Appointment]) -> None:
    """
    Write appointments to a book file, replacing its contents.

    Raises:
        StorageError: If the file cannot be written
    """
    records = [_to_record(appointment) for appointment in appointments]

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                {"appointments": records},
                f,
                sort_keys=False,
                allow_unicode=True,
            )
    except OSError as exc:
        raise StorageError(f"Could not write appointment book {path}: {exc}") from exc

    logger.debug("Saved %d appointment(s) to %s", len(records), path)


def open_book(
    path: Path,
    timezone: str = "UTC"
) -> Tuple[SchedulingService, InMemoryIntervalStore]:
    """
    Build a scheduling service over a fresh in-memory store seeded from a book file.

    Every record goes through ``restore_appointment``, so a file with
    overlapping entries fails with ``AppointmentConflict`` and one that
    repeats an id fails with ``DuplicateAppointmentId``.
    """
    store = InMemoryIntervalStore()
    service = SchedulingService(store)
    for appointment in load_appointments(path, timezone):
        service.restore_appointment(appointment)
    return service, store


def _parse_record(record: Any, timezone: str, path: Path, position: int) -> Appointment:
    if not isinstance(record, dict):
        raise StorageError(f"Appointment #{position} in {path} must be a mapping.")

    try:
        raw_id = record.get("id")
        appointment_id = uuid.UUID(str(raw_id)) if raw_id else uuid.uuid4()
        start = _parse_instant(record["start"], timezone)
        end = _parse_instant(record["end"], timezone)
    except KeyError as exc:
        raise StorageError(
            f"Appointment #{position} in {path} is missing field {exc}"
        ) from exc
    except (ValueError, TypeError) as exc:
        raise StorageError(f"Appointment #{position} in {path} is invalid: {exc}") from exc

    description = record.get("description")
    return Appointment(
        id=appointment_id,
        start=start,
        end=end,
        description=str(description) if description is not None else None,
    )


def _parse_instant(value: Any, timezone: str) -> DateTime:
    # PyYAML turns unquoted timestamps into datetime objects
    if isinstance(value, datetime):
        value = value.isoformat()
    elif not isinstance(value, str):
        raise TypeError(f"Expected an ISO-8601 string, got {value!r}")
    parsed = pendulum.parse(value, tz=timezone)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Not a date and time: {value}")
    return parsed


def _to_record(appointment: Appointment) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": str(appointment.id),
        "start": appointment.start.to_iso8601_string(),
        "end": appointment.end.to_iso8601_string(),
    }
    if appointment.description is not None:
        record["description"] = appointment.description
    return record
