"""Appointment persistence.

The store owns the ``(date, time)`` uniqueness rule among non-cancelled
appointments, so two concurrent bookings for the same slot cannot both
land.  Violations raise :class:`SlotTakenError`.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Protocol

from concierge.scheduling.models import Appointment, AppointmentStatus, ScheduleSettings

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Storage backend failed (network, bad response, ...)."""


class SlotTakenError(StoreError):
    def __init__(self, day: date, slot: str):
        super().__init__(f"{day.isoformat()} {slot} is already booked")
        self.day = day
        self.slot = slot


class AppointmentStore(Protocol):
    def get_settings(self) -> ScheduleSettings: ...

    def list_by_date(self, day: date) -> list[Appointment]: ...

    def get(self, appointment_id: str) -> Appointment | None: ...

    def insert(self, appointment: Appointment) -> Appointment: ...

    def update(self, appointment: Appointment) -> Appointment: ...


class InMemoryAppointmentStore:
    """Process-local store used by tests and when no database is configured."""

    def __init__(self, settings: ScheduleSettings | None = None) -> None:
        self._settings = settings or ScheduleSettings()
        self._rows: dict[str, Appointment] = {}
        self._lock = threading.Lock()

    def get_settings(self) -> ScheduleSettings:
        return self._settings

    def set_settings(self, settings: ScheduleSettings) -> None:
        self._settings = settings

    def list_by_date(self, day: date) -> list[Appointment]:
        with self._lock:
            rows = [a for a in self._rows.values() if a.date == day]
        return sorted(rows, key=lambda a: a.time)

    def get(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            return self._rows.get(appointment_id)

    def _check_unique(self, appointment: Appointment) -> None:
        if appointment.status is AppointmentStatus.CANCELLED:
            return
        for other in self._rows.values():
            if (
                other.id != appointment.id
                and other.is_active
                and other.date == appointment.date
                and other.time == appointment.time
            ):
                raise SlotTakenError(appointment.date, appointment.time)

    def insert(self, appointment: Appointment) -> Appointment:
        with self._lock:
            self._check_unique(appointment)
            self._rows[appointment.id] = appointment
        logger.debug("Stored appointment %s at %s %s", appointment.id, appointment.date, appointment.time)
        return appointment

    def update(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.id not in self._rows:
                raise StoreError(f"appointment {appointment.id} does not exist")
            self._check_unique(appointment)
            self._rows[appointment.id] = appointment
        return appointment
