"""In-memory session store with periodic idle-timeout sweeping."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from mcp_conduit.constants import SESSION_SWEEP_INTERVAL, SESSION_TIMEOUT
from mcp_conduit.runtime.periodic import PeriodicTask
from mcp_conduit.server.session.models import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Outcome of one sweep: how many sessions were evicted and how many remain."""

    removed: int
    live: int


class SessionStore:
    """Creates, looks up, touches and evicts :class:`Session` records.

    Expiry is only evaluated by :meth:`sweep`, which runs every
    *sweep_interval* seconds once :meth:`start` has been called.  Lookups never
    evict, so a session idle past its timeout stays reachable until the next
    sweep tick.

    Parameters
    ----------
    timeout:
        Seconds of inactivity after which a session is evicted.
    sweep_interval:
        Seconds between sweeps.
    clock:
        Zero-argument callable returning the current time in seconds.
    on_change:
        Optional callback invoked with ``(active, created_total)`` after every
        create, remove and sweep.
    """

    def __init__(
        self,
        timeout: float = SESSION_TIMEOUT,
        sweep_interval: float = SESSION_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        on_change: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        self._sessions: Dict[str, Session] = {}
        self._timeout = timeout
        self._clock = clock
        self._on_change = on_change
        self._created_total = 0
        self._sweeper = PeriodicTask("session-sweep", sweep_interval, self.sweep)

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the background sweep loop."""
        self._sweeper.start()
        logger.info(
            "Session sweep started (interval=%.0fs, timeout=%.0fs).",
            self._sweeper.interval,
            self._timeout,
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and drop every session."""
        await self._sweeper.stop()
        count = len(self._sessions)
        self._sessions.clear()
        logger.info("SessionStore stopped. Cleared %d session(s).", count)

    # ── Session CRUD ─────────────────────────────────────────────────

    def create(self, client_id: Optional[str] = None, transport_type: str = "http") -> Session:
        """Create and register a session with a fresh unique id."""
        now = self._clock()
        session = Session(
            client_id=client_id,
            created_at=now,
            last_activity=now,
            transport_type=transport_type,
        )
        while session.id in self._sessions:
            session = Session(
                client_id=client_id,
                created_at=now,
                last_activity=now,
                transport_type=transport_type,
            )
        self._sessions[session.id] = session
        self._created_total += 1
        self._notify()
        logger.info(
            "Session created: id=%s transport=%s client=%s",
            session.id,
            transport_type,
            client_id or "-",
        )
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def touch(self, session_id: str) -> None:
        """Refresh a session's idle timer; unknown ids are ignored."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch(self._clock())

    def remove(self, session_id: str) -> bool:
        """Explicitly remove a session (e.g. on SSE disconnect).

        Returns ``True`` if the session existed.
        """
        if session_id in self._sessions:
            del self._sessions[session_id]
            logger.debug("Session removed: %s", session_id)
            self._notify()
            return True
        return False

    def sweep(self, now: Optional[float] = None) -> SweepResult:
        """Remove every session idle for longer than the timeout.

        Each session's *current* ``last_activity`` is read at sweep time.
        """
        if now is None:
            now = self._clock()
        expired = [
            sid for sid, s in list(self._sessions.items()) if s.is_expired(now, self._timeout)
        ]
        for sid in expired:
            self.remove(sid)
        result = SweepResult(removed=len(expired), live=len(self._sessions))
        self._notify()
        if expired:
            logger.info(
                "Session sweep: removed %d expired session(s), %d remaining.",
                result.removed,
                result.live,
            )
        return result

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    @property
    def created_total(self) -> int:
        """Sessions created since the store was constructed."""
        return self._created_total

    def list_sessions(self) -> List[Dict[str, Any]]:
        now = self._clock()
        return [s.to_dict(now) for s in self._sessions.values()]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    # ── Internal ─────────────────────────────────────────────────────

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(len(self._sessions), self._created_total)
