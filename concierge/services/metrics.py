"""CloudWatch custom metrics for the concierge, with background batching.

What gets counted:

* model round-trips (latency, failures by error type);
* chat turns (tool calls seen, unknown tool names, clarifying questions,
  turns that needed a fallback message);
* booking attempts by outcome (``ok``, ``slot_unavailable``...);
* dispatched actions by kind and success.

Data points are buffered in memory and flushed by a daemon thread every
``FLUSH_INTERVAL_SECONDS``.  Unless ``METRICS_ENABLED=true`` nothing is
sent; the points are only logged at DEBUG level.

>>> from concierge.services.metrics import metrics
>>> metrics.record_model_call(success=True, latency_ms=812.0)
>>> metrics.record_booking("slot_unavailable")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "Concierge"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit per call


def _point(name: str, value: float, unit: str = "Count", **dimensions: str) -> dict[str, Any]:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
        "Timestamp": datetime.now(UTC),
        "Value": value,
        "Unit": unit,
    }


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Recording ────────────────────────────────────────────────────

    def record_model_call(
        self,
        *,
        success: bool,
        latency_ms: float,
        error_type: str | None = None,
    ) -> None:
        """One round-trip to the language model."""
        status = "success" if success else "failure"
        self._append(_point("Model/RequestCount", 1, Status=status))
        self._append(_point("Model/Latency", latency_ms, "Milliseconds", Status=status))
        if not success:
            self._append(_point("Model/ErrorCount", 1, ErrorType=error_type or "unknown"))
        logger.debug(
            "Metric: model %s latency=%.1fms error=%s", status, latency_ms, error_type,
        )

    def record_turn(
        self,
        *,
        tool_calls: int,
        unknown_tools: int,
        clarifications: int,
        used_fallback: bool,
    ) -> None:
        """One synthesized chat response."""
        self._append(_point("Turn/Count", 1))
        if tool_calls:
            self._append(_point("Turn/ToolCalls", tool_calls))
        if unknown_tools:
            self._append(_point("Turn/UnknownTools", unknown_tools))
        if clarifications:
            self._append(_point("Turn/Clarifications", clarifications))
        if used_fallback:
            self._append(_point("Turn/Fallbacks", 1))

    def record_booking(self, outcome: str) -> None:
        """A create / status change / reschedule attempt and its outcome code."""
        self._append(_point("Booking/Attempts", 1, Outcome=outcome))
        logger.debug("Metric: booking outcome=%s", outcome)

    def record_action(self, kind: str, *, success: bool) -> None:
        """One dispatched chat action."""
        status = "success" if success else "failure"
        self._append(_point("Action/Count", 1, Kind=kind, Status=status))

    # ── Flushing ─────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _append(self, metric_data: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.append(metric_data)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


metrics = MetricsClient()
