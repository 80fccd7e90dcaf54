"""Span helpers for workflow operations."""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

P = ParamSpec("P")
T = TypeVar("T")

# Only these argument names are recorded; remarks, form data and template bodies never are.
SPAN_ARGUMENTS = frozenset({
    "approval_id", "template_id", "run_id", "document_id", "step_key",
    "user_id", "to", "action",
})

_tracer = trace.get_tracer("docflow")


def traced(
    operation_name: str | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Run an async function inside a span named operation_name.

    Allowlisted arguments (ids, action, escalation target) are recorded as
    ``arg.<name>`` whether passed positionally or by keyword. The span is
    marked ERROR with the exception recorded when the call raises.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with _tracer.start_as_current_span(span_name) as span:
                bound = signature.bind_partial(*args, **kwargs)
                for name, value in bound.arguments.items():
                    if name in SPAN_ARGUMENTS and value is not None:
                        span.set_attribute(f"arg.{name}", str(value))
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span (no-op when nothing is recording)."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)
