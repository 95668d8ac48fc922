"""FastAPI server for the studio concierge.

Run with:
    uvicorn concierge.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from concierge.agent import create_concierge_agent
from concierge.api.routes import router
from concierge.config import (
    BOOKING_HORIZON_DAYS,
    CORS_ORIGINS,
    NAVIGATION_DELAY_SECONDS,
    SAME_DAY_CUTOFF_HOUR,
    SERVER_HOST,
    SERVER_PORT,
    SUPABASE_URL,
)
from concierge.dispatcher import ActionDispatcher, LoggingActionSink
from concierge.scheduling.service import SchedulingService
from concierge.scheduling.store import AppointmentStore, InMemoryAppointmentStore
from concierge.synthesizer import ResponseSynthesizer

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


def build_store() -> AppointmentStore:
    """Supabase when configured, else a process-local store."""
    if SUPABASE_URL:
        from concierge.services.supabase_client import get_supabase_store

        logger.info("Using Supabase appointment store at %s", SUPABASE_URL)
        return get_supabase_store()
    logger.warning("SUPABASE_URL not set; appointments are kept in memory only")
    return InMemoryAppointmentStore()


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: compile the agent and wire the collaborators into app state."""
    synthesizer = ResponseSynthesizer()
    application.state.synthesizer = synthesizer
    application.state.scheduling = SchedulingService(
        build_store(),
        same_day_cutoff_hour=SAME_DAY_CUTOFF_HOUR,
        horizon_days=BOOKING_HORIZON_DAYS,
    )
    application.state.dispatcher = ActionDispatcher(
        LoggingActionSink(), navigation_delay=NAVIGATION_DELAY_SECONDS,
    )
    logger.info("Compiling LangGraph agent…")
    application.state.agent = create_concierge_agent(synthesizer)
    logger.info("Agent ready.")
    yield


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Studio Concierge",
    description=(
        "Chat concierge for an architecture studio: answers visitors, "
        "shows portfolio widgets and books meetings and site visits."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (the website widget calls from another origin) ─────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Studio Concierge",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    logger.info("Starting concierge API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "concierge.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
