"""Telemetry: in-process request metrics and OpenTelemetry tracing."""

from mcp_conduit.telemetry.metrics import MetricsCollector
from mcp_conduit.telemetry.tracing import get_tracer, start_span

__all__ = ["MetricsCollector", "get_tracer", "start_span"]
