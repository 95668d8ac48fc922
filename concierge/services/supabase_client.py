"""Appointment store backed by Supabase's PostgREST API, with retry logic
and timeout handling.

Tables (see ``migrations/``):

* ``appointments`` — one row per booking, snake_case columns.
* ``schedule_settings`` — a single row with the studio calendar.

The ``(date, time)`` uniqueness among non-cancelled rows is a partial
unique index in Postgres; PostgREST reports a violation as HTTP 409 with
code ``23505``, which this client turns into :class:`SlotTakenError`.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import date
from typing import Any

import httpx

from concierge.config import SUPABASE_SERVICE_KEY, SUPABASE_URL
from concierge.scheduling.models import Appointment, ScheduleSettings
from concierge.scheduling.store import SlotTakenError, StoreError

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 0.5
REQUEST_TIMEOUT_SECONDS = 10.0

_UNIQUE_VIOLATION = "23505"
_APPOINTMENT_COLUMNS = (
    "id", "client_id", "client_name", "date", "time", "type",
    "location", "meeting_link", "status", "notes", "created_at",
)


class SupabaseAPIError(StoreError):
    """Raised when a PostgREST call fails after all retries."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


def _error_code(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("code") if isinstance(body, dict) else None


def appointment_to_row(appointment: Appointment) -> dict[str, Any]:
    return appointment.model_dump(mode="json", by_alias=False, include=set(_APPOINTMENT_COLUMNS))


def row_to_appointment(row: dict[str, Any]) -> Appointment:
    return Appointment.model_validate(row)


def row_to_settings(row: dict[str, Any]) -> ScheduleSettings:
    # An empty work_days array means the studio is closed every day.
    work_days = row.get("work_days")
    return ScheduleSettings.model_validate({
        "enabled": row.get("enabled", True),
        "work_days": [1, 2, 3, 4, 5] if work_days is None else work_days,
        "start_hour": row.get("start_hour", 9),
        "end_hour": row.get("end_hour", 18),
        "blocked_dates": row.get("blocked_dates") or [],
        "blocked_slots": row.get("blocked_slots") or [],
    })


class SupabaseStore:
    """:class:`~concierge.scheduling.store.AppointmentStore` over PostgREST.

    Settings are read on every call; the admin can change them at any time
    and availability must reflect that.
    """

    def __init__(
        self,
        url: str | None = None,
        service_key: str | None = None,
        *,
        client: httpx.Client | None = None,
    ):
        self._url = (url or SUPABASE_URL).rstrip("/")
        self._key = service_key or SUPABASE_SERVICE_KEY
        self._client = client or httpx.Client(
            base_url=f"{self._url}/rest/v1",
            headers={
                "apikey": self._key,
                "Authorization": f"Bearer {self._key}",
                "Content-Type": "application/json",
            },
            timeout=REQUEST_TIMEOUT_SECONDS,
        )

    # ── Internal helpers ─────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Execute an HTTP request with exponential-backoff retries."""
        last_error: Exception | None = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = self._client.request(
                    method,
                    path,
                    params=params,
                    json=json_body,
                    headers=headers,
                )
                if response.status_code >= 500:
                    raise SupabaseAPIError(
                        f"Server error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                if response.status_code >= 400:
                    raise SupabaseAPIError(
                        f"Client error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                        code=_error_code(response),
                    )
                if not response.content:
                    return None
                return response.json()

            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_error = exc
                logger.warning(
                    "Supabase attempt %d/%d failed (%s). Retrying in %.1fs…",
                    attempt,
                    MAX_RETRIES,
                    type(exc).__name__,
                    INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)),
                )
            except SupabaseAPIError as exc:
                if exc.status_code and exc.status_code >= 500:
                    last_error = exc
                    logger.warning(
                        "Supabase server error on attempt %d/%d. Retrying…",
                        attempt,
                        MAX_RETRIES,
                    )
                else:
                    raise  # 4xx errors are not retried

            if attempt < MAX_RETRIES:
                time.sleep(INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)))

        raise SupabaseAPIError(
            f"Supabase request failed after {MAX_RETRIES} retries: {last_error}"
        )

    def _write(self, method: str, appointment: Appointment, **kwargs: Any) -> Appointment:
        try:
            rows = self._request(
                method,
                "/appointments",
                json_body=appointment_to_row(appointment),
                headers={"Prefer": "return=representation"},
                **kwargs,
            )
        except SupabaseAPIError as exc:
            if exc.status_code == 409 and exc.code in (None, _UNIQUE_VIOLATION):
                raise SlotTakenError(appointment.date, appointment.time) from exc
            raise
        if not rows:
            raise SupabaseAPIError(f"No row returned for appointment {appointment.id}")
        return row_to_appointment(rows[0])

    # ── Public API methods ───────────────────────────────────────────

    def get_settings(self) -> ScheduleSettings:
        rows = self._request("GET", "/schedule_settings", params={"select": "*", "limit": 1})
        if not rows:
            logger.info("No schedule_settings row; using defaults")
            return ScheduleSettings()
        return row_to_settings(rows[0])

    def list_by_date(self, day: date) -> list[Appointment]:
        rows = self._request(
            "GET",
            "/appointments",
            params={"select": "*", "date": f"eq.{day.isoformat()}", "order": "time.asc"},
        )
        return [row_to_appointment(r) for r in rows or []]

    def get(self, appointment_id: str) -> Appointment | None:
        rows = self._request(
            "GET",
            "/appointments",
            params={"select": "*", "id": f"eq.{appointment_id}", "limit": 1},
        )
        return row_to_appointment(rows[0]) if rows else None

    def insert(self, appointment: Appointment) -> Appointment:
        return self._write("POST", appointment)

    def update(self, appointment: Appointment) -> Appointment:
        return self._write("PATCH", appointment, params={"id": f"eq.{appointment.id}"})


# ── Module-level singleton (thread-safe) ────────────────────────────
_store: SupabaseStore | None = None
_store_lock = threading.Lock()


def get_supabase_store() -> SupabaseStore:
    """Return a module-level SupabaseStore singleton."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = SupabaseStore()
    return _store
