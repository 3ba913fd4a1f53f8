"""Custom exception classes for MCP Conduit.

Two families live here: operational errors raised while configuring the
server or talking to the backend, and :class:`RpcError` subclasses that map
one-to-one onto JSON-RPC error objects.
"""

from typing import Any, Dict, Optional

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND

# Application-defined server error (rate limit, unauthorized).
SERVER_ERROR = -32000


class ConduitBaseError(Exception):
    """Base class for all custom exceptions in MCP Conduit."""

    pass


class ConfigurationError(ConduitBaseError):
    """Raised when loading or validating the configuration fails."""

    pass


class BackendError(ConduitBaseError):
    """
    Raised when a call to the backend system fails,
    or when the backend reports an error.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        orig_exc: Optional[Exception] = None,
    ):
        self.status_code = status_code
        self.orig_exc = orig_exc

        full_msg = "Backend error"
        if status_code:
            full_msg += f" (HTTP {status_code})"
        full_msg += f": {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


# ── JSON-RPC error taxonomy ──────────────────────────────────────────────


class RpcError(ConduitBaseError):
    """An error that is reported to the client as a JSON-RPC error object."""

    code: int = INTERNAL_ERROR
    http_status: int = 500

    def __init__(self, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class ProtocolError(RpcError):
    """Malformed envelope or misuse of a notification."""

    code = INVALID_REQUEST
    http_status = 400


class PayloadTooLargeError(ProtocolError):
    """Request body exceeds the configured size limit."""

    http_status = 413


class NotFoundError(RpcError):
    """Unknown method, tool, resource or prompt."""

    code = METHOD_NOT_FOUND
    http_status = 404


class InvalidParamsError(RpcError):
    """Parameters failed validation."""

    code = INVALID_PARAMS
    http_status = 400


class InternalError(RpcError):
    """Unexpected failure inside a handler or collaborator."""

    code = INTERNAL_ERROR
    http_status = 500


class UnauthorizedError(RpcError):
    code = SERVER_ERROR
    http_status = 401


class RateLimitedError(RpcError):
    code = SERVER_ERROR
    http_status = 429
