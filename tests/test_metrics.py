"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from concierge.services.metrics import MetricsClient


def _dims(metric: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in metric["Dimensions"]}


class TestMetricsRecording:
    """Verify that each record_* call buffers the right data points."""

    def _make_client(self, *, enabled: bool = False) -> MetricsClient:
        with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
            return MetricsClient()

    def test_model_success_appends_count_and_latency(self):
        client = self._make_client()
        client.record_model_call(success=True, latency_ms=812.0)
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"Model/RequestCount", "Model/Latency"}

    def test_model_failure_adds_error_type(self):
        client = self._make_client()
        client.record_model_call(success=False, latency_ms=20_000.0, error_type="Timeout")
        assert len(client._buffer) == 3
        error_metric = next(m for m in client._buffer if m["MetricName"] == "Model/ErrorCount")
        assert _dims(error_metric)["ErrorType"] == "Timeout"

    def test_turn_only_counts_what_happened(self):
        client = self._make_client()
        client.record_turn(tool_calls=0, unknown_tools=0, clarifications=0, used_fallback=False)
        assert [m["MetricName"] for m in client._buffer] == ["Turn/Count"]

    def test_turn_with_everything(self):
        client = self._make_client()
        client.record_turn(tool_calls=2, unknown_tools=1, clarifications=1, used_fallback=True)
        names = {m["MetricName"] for m in client._buffer}
        assert names == {
            "Turn/Count", "Turn/ToolCalls", "Turn/UnknownTools",
            "Turn/Clarifications", "Turn/Fallbacks",
        }
        tool_calls = next(m for m in client._buffer if m["MetricName"] == "Turn/ToolCalls")
        assert tool_calls["Value"] == 2

    def test_booking_outcome_dimension(self):
        client = self._make_client()
        client.record_booking("slot_unavailable")
        (metric,) = client._buffer
        assert _dims(metric) == {"Outcome": "slot_unavailable"}

    def test_action_dimensions(self):
        client = self._make_client()
        client.record_action("saveNote", success=False)
        (metric,) = client._buffer
        assert _dims(metric) == {"Kind": "saveNote", "Status": "failure"}


class TestMetricsFlush:
    """Verify flush behaviour with and without CloudWatch enabled."""

    def test_flush_when_disabled_does_not_call_boto3(self):
        with patch.dict("os.environ", {"METRICS_ENABLED": "false"}):
            client = MetricsClient()
        client.record_booking("ok")
        assert client.flush() == 0

    def test_flush_clears_buffer(self):
        with patch.dict("os.environ", {"METRICS_ENABLED": "false"}):
            client = MetricsClient()
        client.record_model_call(success=True, latency_ms=100.0)
        assert len(client._buffer) == 2
        client.flush()
        assert len(client._buffer) == 0

    def test_flush_when_enabled_calls_put_metric_data(self):
        with patch.dict("os.environ", {"METRICS_ENABLED": "true"}):
            client = MetricsClient()

        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_model_call(success=True, latency_ms=100.0)
        sent = client.flush()

        assert sent == 2
        mock_cw.put_metric_data.assert_called_once()
        call_args = mock_cw.put_metric_data.call_args
        assert call_args[1]["Namespace"] == "Concierge"
        assert len(call_args[1]["MetricData"]) == 2

    def test_flush_failure_is_logged_not_raised(self):
        with patch.dict("os.environ", {"METRICS_ENABLED": "true"}):
            client = MetricsClient()
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")
        client.record_booking("ok")
        assert client.flush() == 0

    def test_flush_empty_buffer_returns_zero(self):
        with patch.dict("os.environ", {"METRICS_ENABLED": "true"}):
            client = MetricsClient()
        assert client.flush() == 0
