"""Hardening headers and API-key authentication.

The hardening headers are attached to every HTTP response.  The credential
check only runs in guarded mode and only when an API key is configured; the
key is read from ``x-api-key`` or ``Authorization: Bearer <key>``.
"""

import hmac
import logging
from typing import Optional

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcp_conduit.errors import UnauthorizedError
from mcp_conduit.server.middleware._asgi import client_identity, header_value, send_rpc_error

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def extract_credential(scope: Scope) -> str:
    """Return the caller-supplied API key, or ``""`` if none was sent."""
    api_key = header_value(scope, "x-api-key")
    if api_key:
        return api_key
    auth_header = header_value(scope, "authorization")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return ""


class SecurityMiddleware:
    """Pure ASGI middleware adding security headers and enforcing the API key.

    Usage::

        middleware = SecurityMiddleware(app, api_key="my-secret", guarded=True)
    """

    def __init__(self, app: ASGIApp, api_key: Optional[str] = None, guarded: bool = False) -> None:
        self.app = app
        self._api_key = api_key or None
        self._guarded = guarded
        if self.auth_enabled:
            logger.info("API key authentication ENABLED.")
        elif guarded:
            logger.warning(
                "Guarded mode without an API key: requests are NOT authenticated. "
                "Set MCP_API_KEY to secure the endpoint."
            )

    @property
    def auth_enabled(self) -> bool:
        return self._guarded and self._api_key is not None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for key, value in SECURITY_HEADERS.items():
                    headers[key] = value
            await send(message)

        if self.auth_enabled:
            provided = extract_credential(scope)
            # Constant-time comparison
            if not hmac.compare_digest(provided.encode(), self._api_key.encode()):  # type: ignore[union-attr]
                logger.warning(
                    "Rejected request from %s for %s: invalid API key.",
                    client_identity(scope),
                    scope.get("path", "/"),
                )
                await send_rpc_error(
                    UnauthorizedError("Unauthorized - Invalid API key"),
                    scope,
                    receive,
                    send_with_headers,
                )
                return

        await self.app(scope, receive, send_with_headers)
