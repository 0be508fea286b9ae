"""OpenTelemetry spans for pipeline runs, stages and analysis checks.

The engine talks to the OpenTelemetry API only; exporting is left to the
embedding process. One tracer named ``canarypipe`` is resolved lazily and
cached. Tests swap it with ``set_tracer()`` and drop it with
``reset_tracer()``.

Span names in use:
    canarypipe.run: One pipeline run
    canarypipe.stage: One stage, child of the run span
    canarypipe.analysis: The evaluator inside an ANALYSIS stage
    canarypipe.analysis.http: One request of the built-in HTTP probe
"""

from __future__ import annotations

import functools
import inspect
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode, Tracer
from opentelemetry.util.types import AttributeValue

from canarypipe.telemetry.sanitization import sanitize_error_message

F = TypeVar("F", bound=Callable[..., Any])

TRACER_NAME = "canarypipe"

_tracer: Tracer | None = None
_lock = threading.Lock()


def get_tracer() -> Tracer:
    """Return the canarypipe tracer, resolving it on first use.

    Falls back to a NoOpTracer if the global provider cannot hand one out.
    """
    global _tracer
    if _tracer is not None:
        return _tracer
    with _lock:
        if _tracer is None:
            try:
                _tracer = trace.get_tracer(TRACER_NAME)
            except Exception:
                _tracer = trace.NoOpTracer()
        return _tracer


def set_tracer(tracer: Tracer | None) -> None:
    """Install a tracer (for testing). ``None`` resolves it again on next use."""
    global _tracer
    with _lock:
        _tracer = tracer


def reset_tracer() -> None:
    """Forget the cached tracer (for testing)."""
    set_tracer(None)


def _mark_failed(span: Span, error: Exception) -> None:
    message = sanitize_error_message(str(error))
    span.set_status(Status(StatusCode.ERROR, message))
    span.set_attribute("exception.type", type(error).__name__)
    span.set_attribute("exception.message", message)


@contextmanager
def create_span(
    name: str,
    attributes: Mapping[str, AttributeValue] | None = None,
) -> Iterator[Span]:
    """Open a span as the current span for the duration of the block.

    Exceptions leaving the block mark the span failed with a sanitized
    message and are re-raised.

    Args:
        name: Span name, e.g. "canarypipe.stage".
        attributes: Attributes set when the span starts.

    Yields:
        The span, for attributes known only later.

    Examples:
        >>> with create_span("canarypipe.run", attributes={"canarypipe.stages": 5}):
        ...     with create_span("canarypipe.stage") as stage_span:
        ...         stage_span.set_attribute("canarypipe.stage.name", "WAIT")
    """
    with get_tracer().start_as_current_span(
        name,
        attributes=dict(attributes) if attributes else None,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            _mark_failed(span, e)
            raise


def traced(
    func: F | None = None,
    *,
    name: str | None = None,
    attributes: Mapping[str, AttributeValue] | None = None,
) -> Any:
    """Run every call of the decorated function inside ``create_span``.

    Works on plain and ``async`` functions, with or without arguments:

        @traced
        def render(): ...

        @traced(name="canarypipe.analysis.http")
        async def query_http(self, check): ...

    Args:
        func: Function being decorated when used without parentheses.
        name: Span name; the function's ``__name__`` if omitted.
        attributes: Attributes set on every span.
    """

    def decorate(fn: F) -> F:
        span_name = name or fn.__name__

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def run_async(*args: Any, **kwargs: Any) -> Any:
                with create_span(span_name, attributes):
                    return await fn(*args, **kwargs)

            return run_async  # type: ignore[return-value]

        @functools.wraps(fn)
        def run(*args: Any, **kwargs: Any) -> Any:
            with create_span(span_name, attributes):
                return fn(*args, **kwargs)

        return run  # type: ignore[return-value]

    return decorate(func) if func is not None else decorate


__all__ = ["TRACER_NAME", "create_span", "get_tracer", "reset_tracer", "set_tracer", "traced"]
