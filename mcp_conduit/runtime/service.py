"""Conduit runtime service: lifecycle management with a state machine.

:class:`ConduitService` is constructed once per process and owns every piece
of shared state: the session store, rate limiter, metrics collector,
operation registry, providers, backend client, transport negotiator and
dispatcher.  The HTTP layer reaches all of them through this object instead
of module globals.
"""

import logging
import time
from typing import Any, Dict, Optional

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.config.schema import ConduitConfig
from mcp_conduit.operations import build_registry
from mcp_conduit.providers.base import CredentialValidator, PromptProvider, ResourceProvider
from mcp_conduit.providers.prompts import StaticPromptProvider
from mcp_conduit.providers.resources import StaticResourceProvider
from mcp_conduit.runtime.models import ServiceState, is_valid_transition
from mcp_conduit.server.dispatcher import RequestDispatcher
from mcp_conduit.server.middleware.ratelimit import RateLimiter
from mcp_conduit.server.registry import OperationRegistry
from mcp_conduit.server.session import SessionStore
from mcp_conduit.server.transport import TransportNegotiator
from mcp_conduit.telemetry.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class _InvalidStateTransition(Exception):
    """Raised internally when an illegal state transition is attempted."""

    def __init__(self, current: ServiceState, target: ServiceState) -> None:
        super().__init__(f"Invalid state transition: {current.value} → {target.value}")
        self.current = current
        self.target = target


class ConduitService:
    """Owns the shared state of one server process.

    State machine::

        PENDING ─► STARTING ─► RUNNING ─► STOPPING ─► STOPPED
                       │                      ▲
                       └──────► ERROR ────────┘

    Collaborators may be injected (tests pass fakes); anything not supplied
    is built from *config*.

    Usage::

        service = ConduitService(config)
        await service.start()
        # ... serve requests ...
        await service.stop()
    """

    def __init__(
        self,
        config: ConduitConfig,
        *,
        client: Optional[FrappeClient] = None,
        registry: Optional[OperationRegistry] = None,
        resources: Optional[ResourceProvider] = None,
        prompts: Optional[PromptProvider] = None,
        validator: Optional[CredentialValidator] = None,
    ) -> None:
        self._config = config
        self._state = ServiceState.PENDING
        self._started_at: Optional[float] = None
        self._error_message: Optional[str] = None

        self.client = client or FrappeClient(
            config.backend.url,
            api_key=config.backend.api_key,
            api_secret=config.backend.api_secret,
            timeout=config.backend.timeout,
        )
        self.metrics = MetricsCollector(
            sample_cap=config.metrics.sample_cap,
            sample_keep=config.metrics.sample_keep,
            compact_interval=config.metrics.compact_interval,
        )
        self.sessions = SessionStore(
            timeout=config.sessions.timeout_seconds,
            sweep_interval=config.sessions.sweep_interval,
            on_change=self.metrics.update_sessions,
        )
        self.rate_limiter = RateLimiter(
            max_requests=config.rate_limit.max_requests,
            window=config.rate_limit.window_seconds,
            sweep_interval=config.rate_limit.sweep_interval,
        )
        self.registry = registry or build_registry(self.client)
        self.resources: ResourceProvider = resources or StaticResourceProvider(self.client)
        self.prompts: PromptProvider = prompts or StaticPromptProvider()
        self.validator: CredentialValidator = validator or self.client
        self.negotiator = TransportNegotiator(
            stream_methods=config.transport.stream_methods,
            stream_denylist=config.transport.stream_denylist,
            heartbeat_interval=config.transport.heartbeat_interval,
        )
        self.dispatcher = RequestDispatcher(
            self.registry,
            self.sessions,
            self.resources,
            self.prompts,
            diagnostic=config.diagnostic,
        )
        logger.info(
            "ConduitService initialized (mode=%s, operations=%d).",
            config.server.mode,
            len(self.registry),
        )

    # ── Properties ───────────────────────────────────────────────────

    @property
    def config(self) -> ConduitConfig:
        return self._config

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ServiceState.RUNNING

    @property
    def guarded(self) -> bool:
        """Production mode: API key check and rate limiting are active."""
        return self._config.guarded

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def uptime_seconds(self) -> Optional[float]:
        if self._started_at is None:
            return None
        return time.monotonic() - self._started_at

    def status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "mode": self._config.server.mode,
            "uptimeSeconds": self.uptime_seconds,
            "sessions": self.sessions.active_count,
            "operations": len(self.registry),
            "error": self._error_message,
        }

    # ── State machine ────────────────────────────────────────────────

    def _transition(self, target: ServiceState) -> None:
        """Transition to *target* state if the move is valid."""
        if not is_valid_transition(self._state, target):
            raise _InvalidStateTransition(self._state, target)
        prev = self._state
        self._state = target
        logger.info("Service state: %s → %s", prev.value, target.value)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Validate backend credentials, then start the background tasks.

        Raises whatever the credential validator raises; the service is then
        left in ``ERROR`` and no background task has been started.
        """
        self._transition(ServiceState.STARTING)
        self._error_message = None
        try:
            if self._config.backend.validate_on_startup:
                logger.info("Validating backend credentials against %s ...", self._config.backend.url)
                await self.validator.validate()
                logger.info("Backend credentials validated.")
            else:
                logger.warning("Backend credential validation is disabled.")

            self.sessions.start()
            self.metrics.start()
            if self.guarded:
                self.rate_limiter.start()
            self._started_at = time.monotonic()
            self._transition(ServiceState.RUNNING)
        except Exception as exc:
            self._error_message = f"{type(exc).__name__}: {exc}"
            logger.error("Service startup failed: %s", self._error_message)
            self._transition(ServiceState.ERROR)
            raise

    async def stop(self) -> None:
        """Stop background tasks, drop sessions and close the backend client.

        Safe to call after a failed start and idempotent once stopped.
        """
        if self._state in (ServiceState.STOPPED, ServiceState.PENDING):
            logger.info("Stop requested but service is already %s.", self._state.value)
            return
        if self._state == ServiceState.STOPPING:
            logger.warning("Stop already in progress; ignoring duplicate call.")
            return
        if self._state == ServiceState.STARTING:
            logger.warning("Stop requested while still STARTING; forcing ERROR state.")
            self._state = ServiceState.ERROR

        self._transition(ServiceState.STOPPING)
        try:
            await self.sessions.stop()
            await self.rate_limiter.stop()
            await self.metrics.stop()
            await self.client.close()
            self._transition(ServiceState.STOPPED)
        except Exception as exc:
            self._error_message = f"Shutdown error: {type(exc).__name__}: {exc}"
            logger.exception("Error during shutdown: %s", exc)
            self._transition(ServiceState.ERROR)
