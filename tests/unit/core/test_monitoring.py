"""
Unit Tests for Observability
"""

import json
import logging

import pytest

from contextforge.observability import (
    JSONFormatter,
    ObservabilityAdapter,
    get_observability,
    initialize_observability,
    setup_logging,
)


class TestMetrics:
    """Counters and histograms."""

    def test_counters_keyed_by_sorted_tags(self):
        obs = ObservabilityAdapter()

        obs.increment("generation.requests", tags={"provider": "openai", "b": "2"})
        obs.increment("generation.requests", tags={"b": "2", "provider": "openai"})
        obs.increment("tools.calls")

        counters = obs.get_metrics()["counters"]
        assert counters["generation.requests{b=2,provider=openai}"] == 2
        assert counters["tools.calls"] == 1

    def test_histogram_summary(self):
        obs = ObservabilityAdapter()
        for value in (10.0, 20.0, 30.0):
            obs.histogram("generation.latency_ms", value)

        summary = obs.get_metrics()["histograms"]["generation.latency_ms"]
        assert summary == {"count": 3, "sum": 60.0, "min": 10.0, "max": 30.0, "avg": 20.0}

    def test_disabled_metrics(self):
        obs = ObservabilityAdapter(enable_metrics=False)
        obs.increment("x")
        obs.histogram("y", 1.0)

        assert obs.get_metrics() == {"counters": {}, "histograms": {}}

    def test_reset(self):
        obs = ObservabilityAdapter()
        obs.increment("x")
        obs.reset()
        assert obs.get_metrics()["counters"] == {}


class TestTracing:
    """Span tracing."""

    def test_span_duration_recorded(self):
        obs = ObservabilityAdapter()

        with obs.trace("optimizer.run", {"model": "gemini-pro"}):
            pass

        histograms = obs.get_metrics()["histograms"]
        assert histograms["span.duration_ms{span_name=optimizer.run}"]["count"] == 1
        assert obs.get_trace_id() is not None

    def test_span_reraises(self):
        obs = ObservabilityAdapter()

        with pytest.raises(KeyError):
            with obs.trace("failing.span"):
                raise KeyError("missing")

        assert "span.duration_ms{span_name=failing.span}" in obs.get_metrics()["histograms"]

    def test_explicit_trace_id(self):
        obs = ObservabilityAdapter()
        obs.set_trace_id("trace-123")
        assert obs.get_trace_id() == "trace-123"


class TestLogging:
    """Structured logging."""

    def test_json_formatter_includes_extra_fields(self):
        record = logging.LogRecord(
            name="contextforge.generation",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Generation completed in %sms",
            args=(12,),
            exc_info=None,
        )
        record.provider = "openai"

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Generation completed in 12ms"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "contextforge.generation"
        assert payload["provider"] == "openai"
        assert payload["timestamp"].endswith("Z")

    def test_setup_logging(self):
        package_logger = setup_logging(level="WARNING", json_logs=True)
        try:
            assert package_logger.name == "contextforge"
            assert package_logger.level == logging.WARNING
            assert isinstance(package_logger.handlers[0].formatter, JSONFormatter)
        finally:
            package_logger.handlers.clear()
            package_logger.propagate = True
            package_logger.setLevel(logging.NOTSET)


class TestSingleton:
    """Global adapter access."""

    def test_get_observability_is_cached(self):
        assert get_observability() is get_observability()

    def test_metrics_flag_from_environment(self, monkeypatch):
        from contextforge.config import reload_config

        monkeypatch.setenv("ENABLE_METRICS", "false")
        reload_config()

        assert get_observability().enable_metrics is False

    def test_initialize_replaces_instance(self):
        first = get_observability()
        second = initialize_observability(enable_metrics=True, enable_tracing=False)

        assert second is not first
        assert get_observability() is second
        assert second.enable_tracing is False
