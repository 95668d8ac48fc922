"""Who may move an appointment between statuses.

::

    pending ──admin──▶ confirmed
    pending ──owner/admin──▶ cancelled
    confirmed ──owner/admin──▶ cancelled
    pending|confirmed ──owner reschedule──▶ pending (new date/time)

Cancelled appointments are never reopened; the client books a new one.
``confirmed → pending`` only happens through a reschedule.
"""

from __future__ import annotations

from enum import Enum

from concierge.scheduling.models import Actor, Appointment, AppointmentStatus


class TransitionError(str, Enum):
    FORBIDDEN = "forbidden"
    INVALID_TRANSITION = "invalid_transition"
    ALREADY_CANCELLED = "already_cancelled"
    SLOT_UNAVAILABLE = "slot_unavailable"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"


def is_owner(appointment: Appointment, actor: Actor) -> bool:
    return actor.role == "client" and actor.user_id == appointment.client_id


def check_transition(
    appointment: Appointment,
    target: AppointmentStatus,
    actor: Actor,
) -> TransitionError | None:
    """Return why *actor* may not set *target*, or ``None`` if allowed."""
    current = appointment.status
    if current is AppointmentStatus.CANCELLED:
        return TransitionError.ALREADY_CANCELLED

    if target is AppointmentStatus.CONFIRMED:
        if current is not AppointmentStatus.PENDING:
            return TransitionError.INVALID_TRANSITION
        if not actor.is_admin:
            return TransitionError.FORBIDDEN
        return None

    if target is AppointmentStatus.CANCELLED:
        if actor.is_admin or is_owner(appointment, actor):
            return None
        return TransitionError.FORBIDDEN

    # Back to pending is a reschedule, never a plain status change.
    return TransitionError.INVALID_TRANSITION


def check_reschedule(appointment: Appointment, actor: Actor) -> TransitionError | None:
    """Only the owning client reschedules, and never a cancelled booking."""
    if appointment.status is AppointmentStatus.CANCELLED:
        return TransitionError.ALREADY_CANCELLED
    if not is_owner(appointment, actor):
        return TransitionError.FORBIDDEN
    return None
