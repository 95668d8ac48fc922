"""Tests for appointment status transition rules."""

from __future__ import annotations

from datetime import date

import pytest

from concierge.scheduling.lifecycle import TransitionError, check_reschedule, check_transition
from concierge.scheduling.models import (
    Actor,
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    AppointmentType,
)

TUESDAY = date(2026, 10, 20)

ADMIN = Actor(role="admin", user_id="admin-1")
OWNER = Actor(role="client", user_id="c1")
STRANGER = Actor(role="client", user_id="c2")

PENDING = AppointmentStatus.PENDING
CONFIRMED = AppointmentStatus.CONFIRMED
CANCELLED = AppointmentStatus.CANCELLED


def _appointment(status: AppointmentStatus) -> Appointment:
    return Appointment(
        client_id="c1", client_name="Ana", date=TUESDAY, time="10:00",
        type=AppointmentType.MEETING, status=status,
    )


class TestCreation:
    def test_new_appointments_start_pending(self):
        request = AppointmentRequest(client_id="c1", client_name="Ana", date=TUESDAY, time="10:00")
        assert Appointment.from_request(request).status is PENDING


class TestCheckTransition:
    @pytest.mark.parametrize(
        "current, target, actor, expected",
        [
            (PENDING, CONFIRMED, ADMIN, None),
            (PENDING, CONFIRMED, OWNER, TransitionError.FORBIDDEN),
            (PENDING, CANCELLED, OWNER, None),
            (PENDING, CANCELLED, ADMIN, None),
            (PENDING, CANCELLED, STRANGER, TransitionError.FORBIDDEN),
            (CONFIRMED, CANCELLED, OWNER, None),
            (CONFIRMED, CANCELLED, ADMIN, None),
            (CONFIRMED, CONFIRMED, ADMIN, TransitionError.INVALID_TRANSITION),
            (CONFIRMED, PENDING, ADMIN, TransitionError.INVALID_TRANSITION),
            (CONFIRMED, PENDING, OWNER, TransitionError.INVALID_TRANSITION),
            (PENDING, PENDING, ADMIN, TransitionError.INVALID_TRANSITION),
            (CANCELLED, PENDING, ADMIN, TransitionError.ALREADY_CANCELLED),
            (CANCELLED, CONFIRMED, ADMIN, TransitionError.ALREADY_CANCELLED),
            (CANCELLED, CANCELLED, OWNER, TransitionError.ALREADY_CANCELLED),
        ],
    )
    def test_rules(self, current, target, actor, expected):
        assert check_transition(_appointment(current), target, actor) is expected

    def test_admin_acting_as_client_id_is_still_admin(self):
        admin_owner = Actor(role="admin", user_id="c1")
        assert check_transition(_appointment(PENDING), CONFIRMED, admin_owner) is None


class TestCheckReschedule:
    @pytest.mark.parametrize("status", [PENDING, CONFIRMED])
    def test_owner_may_reschedule(self, status):
        assert check_reschedule(_appointment(status), OWNER) is None

    def test_admin_may_not_reschedule(self):
        assert check_reschedule(_appointment(CONFIRMED), ADMIN) is TransitionError.FORBIDDEN

    def test_stranger_may_not_reschedule(self):
        assert check_reschedule(_appointment(PENDING), STRANGER) is TransitionError.FORBIDDEN

    def test_cancelled_is_never_reopened(self):
        assert check_reschedule(_appointment(CANCELLED), OWNER) is TransitionError.ALREADY_CANCELLED
