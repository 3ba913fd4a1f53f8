"""Request body size limit.

A request announcing a ``Content-Length`` above the limit is rejected before
any of its body is read.  Bodies without one (chunked uploads) are counted as
they arrive and the request is aborted once the count passes the limit.  The
caller gets HTTP 413 with an invalid-request envelope in both cases.
"""

import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcp_conduit.constants import MAX_BODY_BYTES
from mcp_conduit.errors import PayloadTooLargeError
from mcp_conduit.server.middleware._asgi import client_identity, header_value
from mcp_conduit.server.schemas import error_envelope

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware:
    """Pure ASGI middleware capping the request body at *max_bytes*.

    Usage::

        middleware = BodySizeLimitMiddleware(app, max_bytes=1024 * 1024)
    """

    def __init__(self, app: ASGIApp, max_bytes: int = MAX_BODY_BYTES) -> None:
        self.app = app
        self.max_bytes = max_bytes

    def _too_large(self) -> PayloadTooLargeError:
        return PayloadTooLargeError(f"Request body exceeds the {self.max_bytes} byte limit")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = header_value(scope, "content-length")
        if declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(self._too_large(), scope, receive, send)
            return

        received = 0
        response_started = False

        async def receive_counted() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise self._too_large()
            return message

        async def send_tracked(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive_counted, send_tracked)
        except PayloadTooLargeError as exc:
            if response_started:
                raise
            await self._reject(exc, scope, receive, send)

    async def _reject(
        self, error: PayloadTooLargeError, scope: Scope, receive: Receive, send: Send
    ) -> None:
        logger.warning(
            "Rejected %s %s from %s: %s.",
            scope.get("method", ""),
            scope.get("path", "/"),
            client_identity(scope),
            error.message,
        )
        response = JSONResponse(error_envelope(None, error), status_code=error.http_status)
        await response(scope, receive, send)
