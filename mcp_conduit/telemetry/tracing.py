"""Distributed tracing helpers.

Thin wrapper over the OpenTelemetry tracing API.  Without an SDK and
exporter configured the API hands out non-recording spans, so calling these
helpers is always safe.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

logger = logging.getLogger(__name__)

_TRACER_NAME = "mcp_conduit"


def get_tracer() -> trace.Tracer:
    """Return the MCP Conduit tracer."""
    return trace.get_tracer(_TRACER_NAME)


@contextmanager
def start_span(
    name: str,
    attributes: Optional[Dict[str, Any]] = None,
) -> Generator[Span, None, None]:
    """Context manager that starts a span and marks it failed on exceptions.

    The exception is recorded and re-raised unchanged.
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(
        name,
        attributes=attributes or {},
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            raise
