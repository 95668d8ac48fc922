"""Free hour slots for a day, from the studio settings and existing bookings.

:func:`compute_slots` is a pure function of its three inputs.  Deciding
*which* days to probe (e.g. skipping today after the cutoff hour) is the
caller's policy: :func:`within_booking_window` decides it for one slot and
:func:`bookable_dates` applies it across the horizon.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, timedelta

from concierge.scheduling.models import Appointment, ScheduleSettings, format_slot, parse_hour


def js_weekday(day: date) -> int:
    """Weekday with 0 = Sunday … 6 = Saturday (the settings' convention)."""
    return day.isoweekday() % 7


def compute_slots(
    day: date,
    settings: ScheduleSettings,
    appointments: Iterable[Appointment],
) -> list[str]:
    """Return the free ``"HH:00"`` slots on *day*, ascending."""
    if not settings.enabled:
        return []
    if day in settings.blocked_dates:
        return []
    if js_weekday(day) not in settings.work_days:
        return []

    taken = {a.time for a in appointments if a.date == day and a.is_active}
    slots = []
    for hour in range(settings.start_hour, settings.end_hour):
        slot = format_slot(hour)
        if settings.is_blocked_slot(day, slot) or slot in taken:
            continue
        slots.append(slot)
    return slots


def within_booking_window(
    day: date,
    slot: str,
    *,
    today: date,
    now_hour: int,
    same_day_cutoff_hour: int = 12,
) -> bool:
    """Whether *slot* on *day* may still be booked at *now_hour* on *today*.

    Past days never are.  Today is only bookable before
    ``same_day_cutoff_hour``, and then only for hours that have not started.
    """
    if day < today:
        return False
    if day > today:
        return True
    return now_hour < same_day_cutoff_hour and parse_hour(slot) > now_hour


def bookable_dates(
    settings: ScheduleSettings,
    appointments_for: Callable[[date], Iterable[Appointment]],
    *,
    today: date,
    now_hour: int,
    same_day_cutoff_hour: int = 12,
    horizon_days: int = 14,
    max_days_checked: int = 60,
) -> dict[date, list[str]]:
    """Next *horizon_days* dates that still have at least one free slot.

    Today is only offered before ``same_day_cutoff_hour``, and then only
    with the hours that have not started yet.
    """
    result: dict[date, list[str]] = {}
    for offset in range(max_days_checked):
        if len(result) >= horizon_days:
            break
        day = today + timedelta(days=offset)
        if offset == 0 and now_hour >= same_day_cutoff_hour:
            continue
        slots = [
            s for s in compute_slots(day, settings, appointments_for(day))
            if within_booking_window(
                day, s, today=today, now_hour=now_hour, same_day_cutoff_hour=same_day_cutoff_hour,
            )
        ]
        if slots:
            result[day] = slots
    return result
