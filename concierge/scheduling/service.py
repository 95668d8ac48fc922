"""Booking operations over an :class:`AppointmentStore`.

Every write re-reads the day's bookings and re-checks availability before
touching storage; the store's uniqueness constraint closes the remaining
race between that check and the write.  Past days, and today's slots once
the same-day cutoff has passed or the hour has started, are never writable.
Results are always returned as a :class:`BookingResult`, never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from concierge.scheduling import availability
from concierge.scheduling.lifecycle import TransitionError, check_reschedule, check_transition
from concierge.scheduling.models import (
    Actor,
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    ScheduleSettings,
    normalize_slot,
)
from concierge.scheduling.store import AppointmentStore, SlotTakenError
from concierge.services.metrics import metrics

logger = logging.getLogger(__name__)

ERROR_MESSAGES: dict[TransitionError, str] = {
    TransitionError.FORBIDDEN: "Você não tem permissão para alterar este agendamento.",
    TransitionError.INVALID_TRANSITION: "Essa alteração de status não é permitida.",
    TransitionError.ALREADY_CANCELLED: "Este agendamento já foi cancelado. Faça um novo agendamento.",
    TransitionError.SLOT_UNAVAILABLE: "Esse horário não está mais disponível, escolha outro.",
    TransitionError.NOT_FOUND: "Agendamento não encontrado.",
    TransitionError.STORAGE_ERROR: "Não foi possível salvar agora. Tente novamente em instantes.",
}


@dataclass(frozen=True)
class BookingResult:
    ok: bool
    appointment: Appointment | None = None
    error: TransitionError | None = None
    message: str = ""

    @classmethod
    def success(cls, appointment: Appointment) -> BookingResult:
        return cls(ok=True, appointment=appointment)

    @classmethod
    def failure(cls, error: TransitionError) -> BookingResult:
        return cls(ok=False, error=error, message=ERROR_MESSAGES[error])


class SchedulingService:
    def __init__(
        self,
        store: AppointmentStore,
        *,
        same_day_cutoff_hour: int = 12,
        horizon_days: int = 14,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._cutoff = same_day_cutoff_hour
        self._horizon = horizon_days
        self._clock = clock

    # ── Reads ────────────────────────────────────────────────────────

    def settings(self) -> ScheduleSettings:
        return self._store.get_settings()

    def compute_slots(self, day: date) -> list[str]:
        return availability.compute_slots(day, self._store.get_settings(), self._store.list_by_date(day))

    def bookable_dates(self, now: datetime | None = None) -> dict[date, list[str]]:
        now = now or self._clock()
        return availability.bookable_dates(
            self._store.get_settings(),
            self._store.list_by_date,
            today=now.date(),
            now_hour=now.hour,
            same_day_cutoff_hour=self._cutoff,
            horizon_days=self._horizon,
        )

    def _slot_free(self, day: date, slot: str, *, ignore_id: str | None = None) -> bool:
        now = self._clock()
        if not availability.within_booking_window(
            day, slot, today=now.date(), now_hour=now.hour, same_day_cutoff_hour=self._cutoff,
        ):
            return False
        bookings = [a for a in self._store.list_by_date(day) if a.id != ignore_id]
        return slot in availability.compute_slots(day, self._store.get_settings(), bookings)

    # ── Writes ───────────────────────────────────────────────────────

    def _finish(self, outcome: BookingResult, operation: str) -> BookingResult:
        code = "ok" if outcome.ok else outcome.error.value
        metrics.record_booking(code)
        if outcome.ok:
            logger.info("%s succeeded for appointment %s", operation, outcome.appointment.id)
        else:
            logger.info("%s rejected: %s", operation, code)
        return outcome

    def create_appointment(self, request: AppointmentRequest, actor: Actor) -> BookingResult:
        """Book a new ``pending`` appointment for *request*."""
        if not actor.is_admin and actor.user_id != request.client_id:
            return self._finish(BookingResult.failure(TransitionError.FORBIDDEN), "create")
        try:
            if not self._slot_free(request.date, request.time):
                return self._finish(BookingResult.failure(TransitionError.SLOT_UNAVAILABLE), "create")
            stored = self._store.insert(Appointment.from_request(request))
        except SlotTakenError:
            logger.info("Lost booking race for %s %s", request.date, request.time)
            return self._finish(BookingResult.failure(TransitionError.SLOT_UNAVAILABLE), "create")
        except Exception:
            logger.exception("Could not create appointment")
            return self._finish(BookingResult.failure(TransitionError.STORAGE_ERROR), "create")
        return self._finish(BookingResult.success(stored), "create")

    def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        actor: Actor,
    ) -> BookingResult:
        try:
            current = self._store.get(appointment_id)
            if current is None:
                return self._finish(BookingResult.failure(TransitionError.NOT_FOUND), "status")
            error = check_transition(current, status, actor)
            if error is not None:
                return self._finish(BookingResult.failure(error), "status")
            stored = self._store.update(current.model_copy(update={"status": status}))
        except Exception:
            logger.exception("Could not update appointment %s", appointment_id)
            return self._finish(BookingResult.failure(TransitionError.STORAGE_ERROR), "status")
        return self._finish(BookingResult.success(stored), "status")

    def reschedule_appointment(
        self,
        appointment_id: str,
        day: date,
        time: str,
        actor: Actor,
    ) -> BookingResult:
        """Move an appointment to a new slot; it goes back to ``pending``."""
        try:
            slot = normalize_slot(time)
        except ValueError:
            return self._finish(BookingResult.failure(TransitionError.SLOT_UNAVAILABLE), "reschedule")
        try:
            current = self._store.get(appointment_id)
            if current is None:
                return self._finish(BookingResult.failure(TransitionError.NOT_FOUND), "reschedule")
            error = check_reschedule(current, actor)
            if error is not None:
                return self._finish(BookingResult.failure(error), "reschedule")
            if not self._slot_free(day, slot, ignore_id=current.id):
                return self._finish(BookingResult.failure(TransitionError.SLOT_UNAVAILABLE), "reschedule")
            moved = current.model_copy(
                update={"date": day, "time": slot, "status": AppointmentStatus.PENDING}
            )
            stored = self._store.update(moved)
        except SlotTakenError:
            return self._finish(BookingResult.failure(TransitionError.SLOT_UNAVAILABLE), "reschedule")
        except Exception:
            logger.exception("Could not reschedule appointment %s", appointment_id)
            return self._finish(BookingResult.failure(TransitionError.STORAGE_ERROR), "reschedule")
        return self._finish(BookingResult.success(stored), "reschedule")
