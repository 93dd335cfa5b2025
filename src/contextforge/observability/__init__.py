"""
ContextForge — Observability Module

Metrics, tracing and structured logging.
"""

from .monitoring import (
    JSONFormatter,
    ObservabilityAdapter,
    get_observability,
    initialize_observability,
    setup_logging,
)

__all__ = [
    "ObservabilityAdapter",
    "JSONFormatter",
    "get_observability",
    "initialize_observability",
    "setup_logging",
]
