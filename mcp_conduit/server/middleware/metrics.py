"""Metrics middleware: records every finished request in the collector.

A request is recorded exactly once: when the final body chunk has been sent,
or, if the connection ends first (client disconnect mid-stream, exception),
when the downstream app returns.  A body that overflows the size limit while
being read is recorded as 413.  The operation name of a ``tools/call`` is
read from ``request.state.operation``, which the RPC endpoint sets.
"""

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcp_conduit.errors import PayloadTooLargeError
from mcp_conduit.telemetry.metrics import MetricsCollector

logger = logging.getLogger(__name__)

OPERATION_STATE_KEY = "operation"


class MetricsMiddleware:
    def __init__(self, app: ASGIApp, collector: MetricsCollector) -> None:
        self.app = app
        self.collector = collector

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # Shared with request.state downstream.
        state = scope.setdefault("state", {})
        start = time.perf_counter()
        status_code = 500
        recorded = False

        def record() -> None:
            nonlocal recorded
            if recorded:
                return
            recorded = True
            duration_ms = (time.perf_counter() - start) * 1000.0
            self.collector.record_request(status_code, duration_ms, state.get(OPERATION_STATE_KEY))

        async def send_and_record(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                record()

        try:
            await self.app(scope, receive, send_and_record)
        except PayloadTooLargeError as exc:
            # Body overflowed mid-read; the size limit stage answers outside.
            status_code = exc.http_status
            raise
        finally:
            record()
