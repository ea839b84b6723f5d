"""Tracing helpers. Spans are no-ops unless an OpenTelemetry SDK is installed."""

from __future__ import annotations

from contextlib import nullcontext
from enum import Enum
from typing import Any, Dict

from opentelemetry import trace

_tracer = trace.get_tracer("mediamind")


def _attr(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)


def otel_span(name: str, attrs: Dict[str, Any] | None = None):
    """Span context manager; attributes that are None are dropped."""
    clean = {k: _attr(v) for k, v in (attrs or {}).items() if v is not None}
    try:
        return _tracer.start_as_current_span(name, attributes=clean)
    except Exception:
        return nullcontext()
