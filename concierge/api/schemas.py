"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from concierge.models import ChatContext
from concierge.scheduling.models import Actor, AppointmentRequest, AppointmentStatus


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(_Body):
    """Incoming chat message from the website widget."""

    message: str = Field(..., min_length=1, max_length=2000, description="The visitor's message")
    session_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Unique session identifier for conversation continuity",
    )
    context: ChatContext | None = Field(
        None, description="Logged-in user, memories, office status, human availability",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "studio-concierge"


class SlotsResponse(_Body):
    date: dt.date
    slots: list[str]


class BookableDatesResponse(_Body):
    dates: list[SlotsResponse]


class CreateAppointmentBody(_Body):
    actor: Actor
    appointment: AppointmentRequest


class StatusChangeBody(_Body):
    actor: Actor
    status: AppointmentStatus


class RescheduleBody(_Body):
    actor: Actor
    date: dt.date
    time: str


class ErrorDetail(_Body):
    error: str
    message: str
