"""Tests for free slot computation and the booking-wizard date list."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from concierge.scheduling.availability import (
    bookable_dates,
    compute_slots,
    js_weekday,
    within_booking_window,
)
from concierge.scheduling.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    BlockedSlot,
    ScheduleSettings,
)

TUESDAY = date(2026, 10, 20)
SATURDAY = date(2026, 10, 24)

ALL_SLOTS = [f"{h:02d}:00" for h in range(9, 18)]


def _booking(day: date, time: str, status=AppointmentStatus.CONFIRMED) -> Appointment:
    return Appointment(
        client_id="c1", client_name="Ana", date=day, time=time,
        type=AppointmentType.MEETING, status=status,
    )


@pytest.fixture
def settings():
    return ScheduleSettings.model_validate(
        {"workDays": [1, 2, 3, 4, 5], "startHour": "09:00", "endHour": "18:00"},
    )


class TestComputeSlots:
    def test_free_weekday(self, settings):
        assert compute_slots(TUESDAY, settings, []) == ALL_SLOTS
        assert len(ALL_SLOTS) == 9

    def test_confirmed_booking_holds_its_slot(self, settings):
        slots = compute_slots(TUESDAY, settings, [_booking(TUESDAY, "14:00")])
        assert "14:00" not in slots
        assert len(slots) == 8

    def test_pending_booking_holds_its_slot(self, settings):
        slots = compute_slots(TUESDAY, settings, [_booking(TUESDAY, "10:00", AppointmentStatus.PENDING)])
        assert "10:00" not in slots

    def test_cancelled_booking_frees_its_slot(self, settings):
        slots = compute_slots(TUESDAY, settings, [_booking(TUESDAY, "10:00", AppointmentStatus.CANCELLED)])
        assert slots == ALL_SLOTS

    def test_bookings_on_other_days_are_ignored(self, settings):
        other = date(2026, 10, 21)
        assert compute_slots(TUESDAY, settings, [_booking(other, "10:00")]) == ALL_SLOTS

    def test_non_workday_has_no_slots(self, settings):
        assert compute_slots(SATURDAY, settings, []) == []

    def test_sunday_is_zero(self):
        sunday = date(2026, 10, 25)
        assert js_weekday(sunday) == 0
        assert js_weekday(SATURDAY) == 6
        settings = ScheduleSettings(work_days=frozenset({0}))
        assert compute_slots(sunday, settings, []) == ALL_SLOTS

    def test_blocked_date(self, settings):
        blocked = settings.model_copy(update={"blocked_dates": frozenset({TUESDAY})})
        assert compute_slots(TUESDAY, blocked, []) == []

    def test_blocked_slot(self):
        settings = ScheduleSettings(
            blocked_slots=frozenset({BlockedSlot(date=TUESDAY, time="9:00")}),
        )
        slots = compute_slots(TUESDAY, settings, [])
        assert "09:00" not in slots
        assert slots[0] == "10:00"

    def test_disabled_calendar(self):
        assert compute_slots(TUESDAY, ScheduleSettings(enabled=False), []) == []

    def test_slots_are_ascending(self):
        settings = ScheduleSettings(start_hour=7, end_hour=22)
        slots = compute_slots(TUESDAY, settings, [_booking(TUESDAY, "12:00")])
        assert slots == sorted(slots)
        assert slots[0] == "07:00" and slots[-1] == "21:00"


class TestScheduleSettings:
    def test_start_must_precede_end(self):
        with pytest.raises(ValidationError):
            ScheduleSettings(start_hour=18, end_hour=9)

    def test_hours_must_be_whole(self):
        with pytest.raises(ValidationError):
            ScheduleSettings(start_hour="09:30")

    def test_work_days_range(self):
        with pytest.raises(ValidationError):
            ScheduleSettings(work_days=frozenset({7}))


class TestBookableDates:
    MONDAY = date(2026, 10, 19)

    def test_today_before_cutoff_offers_later_hours(self, settings):
        dates = bookable_dates(
            settings, lambda day: [], today=self.MONDAY, now_hour=10, horizon_days=2,
        )
        assert list(dates) == [self.MONDAY, TUESDAY]
        assert dates[self.MONDAY] == [f"{h:02d}:00" for h in range(11, 18)]

    def test_today_after_cutoff_is_skipped(self, settings):
        dates = bookable_dates(
            settings, lambda day: [], today=self.MONDAY, now_hour=13, horizon_days=1,
        )
        assert list(dates) == [TUESDAY]

    def test_weekend_is_skipped(self, settings):
        dates = bookable_dates(
            settings, lambda day: [], today=self.MONDAY, now_hour=15, horizon_days=5,
        )
        assert [d.day for d in dates] == [20, 21, 22, 23, 26]

    def test_fully_booked_day_is_skipped(self, settings):
        booked = [_booking(TUESDAY, slot) for slot in ALL_SLOTS]

        def appointments_for(day):
            return booked if day == TUESDAY else []

        dates = bookable_dates(
            settings, appointments_for, today=self.MONDAY, now_hour=15, horizon_days=1,
        )
        assert list(dates) == [date(2026, 10, 21)]

    def test_disabled_calendar_yields_nothing(self):
        dates = bookable_dates(
            ScheduleSettings(enabled=False), lambda day: [], today=self.MONDAY, now_hour=8,
        )
        assert dates == {}


class TestBookingWindow:
    MONDAY = date(2026, 10, 19)

    @pytest.mark.parametrize(
        "day, slot, now_hour, expected",
        [
            (date(2026, 10, 16), "10:00", 8, False),
            (TUESDAY, "09:00", 23, True),
            (MONDAY, "11:00", 10, True),
            (MONDAY, "10:00", 10, False),
            (MONDAY, "15:00", 12, False),
        ],
    )
    def test_window(self, day, slot, now_hour, expected):
        assert within_booking_window(
            day, slot, today=self.MONDAY, now_hour=now_hour, same_day_cutoff_hour=12,
        ) is expected
