"""FastAPI route definitions for the concierge API."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import threading

from fastapi import APIRouter, HTTPException, Query, Request
from langchain_core.messages import HumanMessage

from concierge.agent import CANCEL_KEY
from concierge.api.schemas import (
    BookableDatesResponse,
    ChatRequest,
    CreateAppointmentBody,
    HealthResponse,
    RescheduleBody,
    SlotsResponse,
    StatusChangeBody,
)
from concierge.config import MODEL_TIMEOUT_SECONDS
from concierge.models import ChatResponse
from concierge.scheduling.lifecycle import TransitionError
from concierge.scheduling.models import Appointment
from concierge.scheduling.service import BookingResult, SchedulingService
from concierge.services.metrics import metrics
from concierge.synthesizer import ResponseSynthesizer

logger = logging.getLogger(__name__)

router = APIRouter()

_HTTP_STATUS_BY_ERROR = {
    TransitionError.FORBIDDEN: 403,
    TransitionError.NOT_FOUND: 404,
    TransitionError.SLOT_UNAVAILABLE: 409,
    TransitionError.INVALID_TRANSITION: 409,
    TransitionError.ALREADY_CANCELLED: 409,
    TransitionError.STORAGE_ERROR: 503,
}


def _get_agent(request: Request):
    """Retrieve the compiled LangGraph agent from app state.

    The agent is initialised once during the FastAPI lifespan (see
    ``server.py``).
    """
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return agent


def _get_synthesizer(request: Request) -> ResponseSynthesizer:
    return getattr(request.app.state, "synthesizer", None) or ResponseSynthesizer()


def _get_scheduling(request: Request) -> SchedulingService:
    service = getattr(request.app.state, "scheduling", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Scheduling is not available yet.")
    return service


def _unwrap(result: BookingResult) -> Appointment:
    if result.ok:
        return result.appointment
    raise HTTPException(
        status_code=_HTTP_STATUS_BY_ERROR[result.error],
        detail={"error": result.error.value, "message": result.message},
    )


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message to the concierge and get one finished chat response.

    Always answers 200 with a well-formed response: a model failure or a
    call running past ``MODEL_TIMEOUT_SECONDS`` yields the apology reply.
    ``agent.invoke()`` is blocking, so it runs in a worker thread.
    """
    agent = _get_agent(http_request)
    synthesizer = _get_synthesizer(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    cancelled = threading.Event()

    try:
        result = await asyncio.wait_for(
            asyncio.to_thread(
                agent.invoke,
                {
                    "messages": [HumanMessage(content=request.message)],
                    "context": request.context.model_dump() if request.context else None,
                },
                config={"configurable": {"thread_id": request.session_id, CANCEL_KEY: cancelled}},
            ),
            timeout=MODEL_TIMEOUT_SECONDS,
        )
        raw = result.get("response")
        if not raw:
            logger.error("[%s] Agent returned no response", request_id)
            response = synthesizer.apology()
        else:
            response = ChatResponse.model_validate(raw)
    except TimeoutError:
        cancelled.set()
        logger.warning("[%s] Model call timed out after %.0fs", request_id, MODEL_TIMEOUT_SECONDS)
        metrics.record_model_call(
            success=False, latency_ms=MODEL_TIMEOUT_SECONDS * 1000, error_type="Timeout",
        )
        response = synthesizer.apology()
    except Exception:
        # Full traceback stays server-side; the visitor gets the apology.
        logger.exception("[%s] Error processing chat request", request_id)
        response = synthesizer.apology()

    dispatcher = getattr(http_request.app.state, "dispatcher", None)
    if dispatcher is not None and response.actions:
        await asyncio.to_thread(dispatcher.dispatch, response)
    return response


@router.get("/schedule/slots", response_model=SlotsResponse)
async def list_slots(http_request: Request, date: dt.date = Query(...)):
    """Free hour slots for one day."""
    service = _get_scheduling(http_request)
    try:
        slots = await asyncio.to_thread(service.compute_slots, date)
    except Exception as e:
        logger.exception("Could not compute slots for %s", date)
        raise HTTPException(status_code=503, detail="Availability is temporarily unavailable.") from e
    return SlotsResponse(date=date, slots=slots)


@router.get("/schedule/dates", response_model=BookableDatesResponse)
async def list_bookable_dates(http_request: Request):
    """The next dates with at least one free slot, for the booking wizard."""
    service = _get_scheduling(http_request)
    try:
        dates = await asyncio.to_thread(service.bookable_dates)
    except Exception as e:
        logger.exception("Could not compute bookable dates")
        raise HTTPException(status_code=503, detail="Availability is temporarily unavailable.") from e
    return BookableDatesResponse(
        dates=[SlotsResponse(date=day, slots=slots) for day, slots in dates.items()],
    )


@router.post("/appointments", response_model=Appointment, status_code=201)
async def create_appointment(body: CreateAppointmentBody, http_request: Request):
    service = _get_scheduling(http_request)
    result = await asyncio.to_thread(service.create_appointment, body.appointment, body.actor)
    return _unwrap(result)


@router.post("/appointments/{appointment_id}/status", response_model=Appointment)
async def change_status(appointment_id: str, body: StatusChangeBody, http_request: Request):
    service = _get_scheduling(http_request)
    result = await asyncio.to_thread(
        service.update_appointment_status, appointment_id, body.status, body.actor,
    )
    return _unwrap(result)


@router.post("/appointments/{appointment_id}/reschedule", response_model=Appointment)
async def reschedule(appointment_id: str, body: RescheduleBody, http_request: Request):
    service = _get_scheduling(http_request)
    result = await asyncio.to_thread(
        service.reschedule_appointment, appointment_id, body.date, body.time, body.actor,
    )
    return _unwrap(result)
