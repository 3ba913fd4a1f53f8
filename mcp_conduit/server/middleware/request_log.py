"""Request logging middleware.

Logs the method, path and a truncated body preview at DEBUG when a request
arrives, and ``METHOD path - status - Nms`` at INFO when it completes.
"""

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcp_conduit.constants import LOG_BODY_PREVIEW

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    def __init__(self, app: ASGIApp, preview_bytes: int = LOG_BODY_PREVIEW) -> None:
        self.app = app
        self.preview_bytes = preview_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        path = scope.get("path", "/")
        start = time.perf_counter()
        status_code = 0
        preview = bytearray()
        logged_body = False

        async def receive_and_capture() -> Message:
            nonlocal logged_body
            message = await receive()
            if message["type"] == "http.request" and not logged_body:
                if len(preview) < self.preview_bytes:
                    preview.extend(message.get("body", b"")[: self.preview_bytes - len(preview)])
                if not message.get("more_body", False) or len(preview) >= self.preview_bytes:
                    logged_body = True
                    if preview and logger.isEnabledFor(logging.DEBUG):
                        logger.debug(
                            "%s %s body: %s",
                            method,
                            path,
                            preview.decode("utf-8", errors="replace"),
                        )
            return message

        async def send_and_capture(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        logger.debug("%s %s from %s", method, path, (scope.get("client") or ("-",))[0])
        try:
            await self.app(scope, receive_and_capture, send_and_capture)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            logger.info("%s %s - %s - %.0fms", method, path, status_code or "-", elapsed_ms)
