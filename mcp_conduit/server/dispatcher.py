"""JSON-RPC request dispatcher.

:meth:`RequestDispatcher.parse` validates the envelope; :meth:`RequestDispatcher.dispatch`
routes one parsed request to its handler and always returns exactly one
:class:`RpcOutcome`: a result, an error, or a body-less acknowledgment.
Nothing raised by a handler or collaborator escapes ``dispatch``.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import ValidationError

from mcp_conduit.constants import PROTOCOL_VERSION, SERVER_NAME, SERVER_VERSION
from mcp_conduit.errors import (
    BackendError,
    InternalError,
    InvalidParamsError,
    NotFoundError,
    ProtocolError,
    RpcError,
)
from mcp_conduit.providers.base import PromptProvider, ResourceProvider
from mcp_conduit.server.contracts import format_violations
from mcp_conduit.server.registry import OperationRegistry
from mcp_conduit.server.schemas import JSONRPC_VERSION, error_envelope, result_envelope
from mcp_conduit.server.session import SessionStore

logger = logging.getLogger(__name__)

NOTIFICATION_PREFIX = "notifications/"


class RpcMethod(str, enum.Enum):
    """The closed set of JSON-RPC methods this server implements."""

    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"
    NOTIFICATIONS_INITIALIZED = "notifications/initialized"

    @classmethod
    def resolve(cls, name: str) -> Optional["RpcMethod"]:
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class RpcRequest:
    """A validated JSON-RPC envelope."""

    method: str
    id: Any = None
    params: Dict[str, Any] = field(default_factory=dict)
    has_id: bool = False

    @property
    def is_notification(self) -> bool:
        return self.method.startswith(NOTIFICATION_PREFIX)

    @property
    def operation_name(self) -> Optional[str]:
        """The tool name of a ``tools/call`` request, if well-formed."""
        if self.method == RpcMethod.TOOLS_CALL.value:
            name = self.params.get("name")
            if isinstance(name, str) and name:
                return name
        return None


class EnvelopeError(Exception):
    """Raised by :meth:`RequestDispatcher.parse` for an unusable envelope."""

    def __init__(self, error: RpcError, request_id: Any = None) -> None:
        super().__init__(error.message)
        self.error = error
        self.request_id = request_id

    def outcome(self) -> "RpcOutcome":
        return RpcOutcome(request_id=self.request_id, error=self.error)


class _Ack:
    """Marker result for a notification that is acknowledged with no body."""


ACKNOWLEDGED = _Ack()


@dataclass
class RpcOutcome:
    """The single terminal outcome of one request."""

    request_id: Any = None
    result: Any = None
    error: Optional[RpcError] = None
    acknowledged: bool = False
    session_id: Optional[str] = None

    @property
    def body(self) -> Optional[Dict[str, Any]]:
        if self.acknowledged:
            return None
        if self.error is not None:
            return error_envelope(self.request_id, self.error)
        return result_envelope(self.request_id, self.result)

    @property
    def http_status(self) -> int:
        if self.error is not None:
            return self.error.http_status
        return 204 if self.acknowledged else 200


class RequestDispatcher:
    """Routes JSON-RPC requests to the registry and collaborators."""

    def __init__(
        self,
        registry: OperationRegistry,
        sessions: SessionStore,
        resources: ResourceProvider,
        prompts: PromptProvider,
        diagnostic: bool = False,
    ) -> None:
        self.registry = registry
        self.sessions = sessions
        self.resources = resources
        self.prompts = prompts
        self.diagnostic = diagnostic

    # ── Envelope ─────────────────────────────────────────────────────

    def parse(self, body: bytes) -> RpcRequest:
        """Validate a raw request body as a JSON-RPC 2.0 envelope.

        Raises:
            EnvelopeError: The body is not JSON, not an object, carries the
                wrong ``jsonrpc`` tag, or has an unusable ``method``/``params``.
        """
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            raise EnvelopeError(ProtocolError("Invalid Request - body is not valid JSON")) from None
        if not isinstance(payload, dict):
            raise EnvelopeError(ProtocolError("Invalid Request - expected a JSON object"))

        request_id = payload.get("id")
        if payload.get("jsonrpc") != JSONRPC_VERSION:
            raise EnvelopeError(
                ProtocolError("Invalid Request - must use JSON-RPC 2.0"), request_id
            )
        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise EnvelopeError(
                ProtocolError("Invalid Request - method must be a non-empty string"), request_id
            )
        params = payload.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            raise EnvelopeError(InvalidParamsError("params must be an object"), request_id)

        return RpcRequest(
            method=method,
            id=request_id,
            params=params,
            has_id="id" in payload and request_id is not None,
        )

    # ── Dispatch ─────────────────────────────────────────────────────

    async def dispatch(self, request: RpcRequest, session_id: Optional[str] = None) -> RpcOutcome:
        """Run *request* and return its outcome.  Never raises."""
        outcome = RpcOutcome(request_id=request.id, session_id=session_id)
        try:
            result = await self._route(request, outcome)
        except RpcError as exc:
            outcome.error = exc
        except ValidationError as exc:
            outcome.error = InvalidParamsError("Invalid params", data=format_violations(exc))
        except BackendError as exc:
            logger.warning("Backend failure while handling '%s': %s", request.method, exc)
            outcome.error = InternalError(str(exc))
        except Exception as exc:
            logger.exception("Unhandled error while handling '%s'.", request.method)
            outcome.error = self.internal_error(exc)
        else:
            if result is ACKNOWLEDGED:
                outcome.acknowledged = True
            else:
                outcome.result = result

        if outcome.error is not None:
            logger.debug(
                "'%s' failed with %d: %s",
                request.method,
                outcome.error.code,
                outcome.error.message,
            )
        return outcome

    def internal_error(self, exc: BaseException) -> InternalError:
        """Generic internal error; detail only in diagnostic mode."""
        data = {"detail": f"{type(exc).__name__}: {exc}"} if self.diagnostic else None
        return InternalError("Internal error", data=data)

    async def _route(self, request: RpcRequest, outcome: RpcOutcome) -> Any:
        params = request.params

        match RpcMethod.resolve(request.method):
            case RpcMethod.INITIALIZE:
                return self._initialize(outcome)
            case RpcMethod.TOOLS_LIST:
                return {
                    "tools": self.registry.describe(),
                    "categories": self.registry.categories,
                    "totalTools": len(self.registry),
                }
            case RpcMethod.TOOLS_CALL:
                return await self._call_tool(params)
            case RpcMethod.RESOURCES_LIST:
                resources = await self.resources.list()
                return {
                    "resources": resources,
                    "categories": self.resources.categories(),
                    "totalResources": len(resources),
                }
            case RpcMethod.RESOURCES_READ:
                uri = _required_str(params, "uri")
                content = await self.resources.get(uri)
                if content is None:
                    raise NotFoundError(f"Resource not found: {uri}")
                return {"contents": [content]}
            case RpcMethod.PROMPTS_LIST:
                prompts = await self.prompts.list()
                return {"prompts": prompts, "totalPrompts": len(prompts)}
            case RpcMethod.PROMPTS_GET:
                name = _required_str(params, "name")
                arguments = _optional_object(params, "arguments")
                prompt = await self.prompts.get(name, arguments)
                if prompt is None:
                    raise NotFoundError(f"Prompt not found: {name}")
                return prompt
            case RpcMethod.NOTIFICATIONS_INITIALIZED:
                logger.info("Client initialized (session=%s).", outcome.session_id or "-")
                return ACKNOWLEDGED
            case None if request.is_notification:
                if request.has_id:
                    raise ProtocolError("Notifications should not include an id")
                logger.debug("Notification '%s' acknowledged.", request.method)
                return ACKNOWLEDGED
            case _:
                raise NotFoundError(f"Method '{request.method}' not found")

    def _initialize(self, outcome: RpcOutcome) -> Dict[str, Any]:
        if outcome.session_id is None:
            outcome.session_id = self.sessions.create().id
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {
                "tools": {"listChanged": True},
                "resources": {"listChanged": True},
                "prompts": {"listChanged": True},
                "logging": {},
            },
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            "sessionId": outcome.session_id,
        }

    async def _call_tool(self, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise NotFoundError(
                f"Tool '{name}' not found",
                data={"availableTools": self.registry.names()},
            )
        arguments = _optional_object(params, "arguments")
        return await self.registry.invoke(name, arguments)


def _required_str(params: Dict[str, Any], key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidParamsError(f"Missing required parameter: {key}")
    return value


def _optional_object(params: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = params.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidParamsError(f"Parameter '{key}' must be an object")
    return value
