"""Telemetry for canarypipe: structlog logging and OpenTelemetry tracing."""

from __future__ import annotations

from canarypipe.telemetry.logging import add_trace_context, configure_logging, setup_logging
from canarypipe.telemetry.sanitization import sanitize_error_message
from canarypipe.telemetry.tracing import (
    create_span,
    get_tracer,
    reset_tracer,
    set_tracer,
    traced,
)

__all__ = [
    "add_trace_context",
    "configure_logging",
    "create_span",
    "get_tracer",
    "reset_tracer",
    "sanitize_error_message",
    "set_tracer",
    "setup_logging",
    "traced",
]
