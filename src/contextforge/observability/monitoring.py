"""
ContextForge — Observability Monitoring

In-process metrics (counters and histograms), span tracing with trace IDs,
and structured JSON logging.
"""

import contextvars
import json
import logging
import threading
import time
from collections import defaultdict
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

# Trace ID context variable, propagated across awaits within a request
_trace_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)

# LogRecord attributes that are never copied into the JSON payload
_RESERVED_RECORD_KEYS = frozenset(
    {
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "name",
        "message",
        "taskName",
    }
)

logger = logging.getLogger(__name__)


def _metric_key(metric: str, tags: dict[str, str] | None) -> str:
    if not tags:
        return metric
    labels = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
    return f"{metric}{{{labels}}}"


class ObservabilityAdapter:
    """
    Lightweight observability adapter.

    Provides:
    - Counters and histograms held in memory (snapshot via get_metrics)
    - Span tracing with trace IDs from a context variable
    - Structured events through the standard logging pipeline
    """

    def __init__(self, enable_metrics: bool = True, enable_tracing: bool = True):
        self.enable_metrics = enable_metrics
        self.enable_tracing = enable_tracing

        self._lock = threading.Lock()
        self._counters: dict[str, float] = defaultdict(float)
        self._histograms: dict[str, list[float]] = defaultdict(list)

    def increment(
        self,
        metric: str,
        value: float = 1.0,
        tags: dict[str, str] | None = None,
    ) -> None:
        """
        Increment a counter metric.

        Args:
            metric: Metric name (e.g., "generation.requests")
            value: Value to increment by
            tags: Optional metric tags/labels
        """
        if not self.enable_metrics:
            return

        with self._lock:
            self._counters[_metric_key(metric, tags)] += value

    def histogram(
        self,
        metric: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """
        Record a histogram observation (latencies, sizes, savings).

        Args:
            metric: Metric name
            value: Value to record
            tags: Optional metric tags
        """
        if not self.enable_metrics:
            return

        with self._lock:
            self._histograms[_metric_key(metric, tags)].append(value)

    def event(self, name: str, payload: dict[str, Any]) -> None:
        """Record a named event as a structured log line."""
        logger.info(
            f"Event: {name}",
            extra={
                "event_name": name,
                "event_payload": payload,
                "trace_id": self.get_trace_id(),
            },
        )

    @contextmanager
    def trace(self, span_name: str, tags: dict[str, str] | None = None) -> Generator[None, None, None]:
        """
        Context manager for tracing a span.

        Example:
            with observability.trace("generation.dispatch", {"provider": "openai"}):
                result = await adapter.complete(...)
        """
        if not self.enable_tracing:
            yield
            return

        start_time = time.perf_counter()
        trace_id = self.get_trace_id() or self.generate_trace_id()
        tags = tags or {}

        try:
            yield
        except Exception as e:
            logger.warning(
                f"Span error: {span_name}",
                extra={"span_name": span_name, "trace_id": trace_id, "error": str(e), "tags": tags},
            )
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.histogram("span.duration_ms", duration_ms, tags={"span_name": span_name})
            logger.debug(
                f"Span completed: {span_name}",
                extra={
                    "span_name": span_name,
                    "trace_id": trace_id,
                    "duration_ms": round(duration_ms, 2),
                    "tags": tags,
                },
            )

    def get_trace_id(self) -> str | None:
        """Get current trace ID from context."""
        return _trace_id_ctx.get()

    def set_trace_id(self, trace_id: str) -> None:
        """Set trace ID in context."""
        _trace_id_ctx.set(trace_id)

    def generate_trace_id(self) -> str:
        """Generate a new trace ID and set it in context."""
        trace_id = str(uuid4())
        self.set_trace_id(trace_id)
        return trace_id

    def get_metrics(self) -> dict[str, Any]:
        """
        Snapshot of collected metrics.

        Returns:
            Dictionary with "counters" and "histograms" (count, sum, min, max, avg)
        """
        with self._lock:
            counters = dict(self._counters)
            histograms = {
                key: {
                    "count": len(values),
                    "sum": sum(values),
                    "min": min(values),
                    "max": max(values),
                    "avg": sum(values) / len(values),
                }
                for key, values in self._histograms.items()
                if values
            }
        return {"counters": counters, "histograms": histograms}

    def reset(self) -> None:
        """Clear all collected metrics."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        trace_id = _trace_id_ctx.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_logs: bool = True) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Log level name
        json_logs: Emit JSON lines instead of plain text

    Returns:
        The configured "contextforge" logger
    """
    package_logger = logging.getLogger("contextforge")
    package_logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False
    return package_logger


# Global observability adapter instance (singleton)
_observability_adapter: ObservabilityAdapter | None = None


def get_observability() -> ObservabilityAdapter:
    """
    Get the global observability adapter instance.

    Returns:
        Global ObservabilityAdapter instance
    """
    global _observability_adapter

    if _observability_adapter is None:
        from ..config import get_config

        config = get_config().observability
        _observability_adapter = ObservabilityAdapter(enable_metrics=config.enable_metrics)

    return _observability_adapter


def initialize_observability(enable_metrics: bool = True, enable_tracing: bool = True) -> ObservabilityAdapter:
    """
    Initialize the global observability adapter.

    Returns:
        Initialized ObservabilityAdapter instance
    """
    global _observability_adapter

    _observability_adapter = ObservabilityAdapter(enable_metrics=enable_metrics, enable_tracing=enable_tracing)
    return _observability_adapter
