"""Scheduling data model: studio calendar settings and appointments."""

from __future__ import annotations

import datetime as dt
import re
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

_HOUR_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")


def parse_hour(value: Any) -> int:
    """Accept ``9``, ``"9"``, ``"09:00"`` → ``9``.  Minutes must be ``00``."""
    if isinstance(value, bool):
        raise ValueError("hour must be an int or 'HH:00' string")
    if isinstance(value, int):
        return value
    match = _HOUR_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"invalid hour {value!r}")
    if match.group(2) not in (None, "00"):
        raise ValueError(f"slots are hour-aligned, got {value!r}")
    return int(match.group(1))


def format_slot(hour: int) -> str:
    return f"{hour:02d}:00"


def normalize_slot(value: Any) -> str:
    """``"9:00"`` / ``"09:00"`` / ``9`` → ``"09:00"``."""
    return format_slot(parse_hour(value))


class _SchedulingModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class AppointmentType(str, Enum):
    MEETING = "meeting"
    VISIT = "visit"


class BlockedSlot(_SchedulingModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    date: dt.date
    time: str

    @field_validator("time", mode="before")
    @classmethod
    def _hour_aligned(cls, value: Any) -> str:
        return normalize_slot(value)


class ScheduleSettings(_SchedulingModel):
    """Studio calendar configuration.  ``work_days`` uses 0 = Sunday."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    enabled: bool = True
    work_days: frozenset[int] = frozenset({1, 2, 3, 4, 5})
    start_hour: int = 9
    end_hour: int = 18
    blocked_dates: frozenset[dt.date] = frozenset()
    blocked_slots: frozenset[BlockedSlot] = frozenset()

    @field_validator("start_hour", "end_hour", mode="before")
    @classmethod
    def _parse_hour(cls, value: Any) -> int:
        return parse_hour(value)

    @model_validator(mode="after")
    def _check_ranges(self) -> ScheduleSettings:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(
                f"start_hour ({self.start_hour}) must be before end_hour ({self.end_hour})"
            )
        if not self.work_days <= frozenset(range(7)):
            raise ValueError(f"work_days must be within 0..6, got {sorted(self.work_days)}")
        return self

    def is_blocked_slot(self, day: dt.date, slot: str) -> bool:
        return BlockedSlot(date=day, time=slot) in self.blocked_slots


class Actor(_SchedulingModel):
    """Who is asking.  Identity is asserted by the upstream auth layer."""

    role: Literal["admin", "client"]
    user_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AppointmentRequest(_SchedulingModel):
    """Payload for booking a new appointment."""

    client_id: str
    client_name: str = Field(..., min_length=1)
    date: dt.date
    time: str
    type: AppointmentType = AppointmentType.MEETING
    location: str = ""
    meeting_link: str | None = None
    notes: str | None = None

    @field_validator("time", mode="before")
    @classmethod
    def _hour_aligned(cls, value: Any) -> str:
        return normalize_slot(value)


class Appointment(_SchedulingModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    client_id: str
    client_name: str
    date: dt.date
    time: str
    type: AppointmentType
    location: str = ""
    meeting_link: str | None = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    notes: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("time", mode="before")
    @classmethod
    def _hour_aligned(cls, value: Any) -> str:
        return normalize_slot(value)

    @property
    def is_active(self) -> bool:
        return self.status is not AppointmentStatus.CANCELLED

    @classmethod
    def from_request(cls, request: AppointmentRequest) -> Appointment:
        """New appointments always start out ``pending``."""
        return cls(
            client_id=request.client_id,
            client_name=request.client_name,
            date=request.date,
            time=request.time,
            type=request.type,
            location=request.location,
            meeting_link=request.meeting_link,
            notes=request.notes,
            status=AppointmentStatus.PENDING,
        )
