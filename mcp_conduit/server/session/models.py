"""Session data model for per-client JSON-RPC sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import monotonic
from typing import Any, Dict, List, Optional
from uuid import uuid4


@dataclass
class Session:
    """Correlation record grouping a client's related requests.

    Timestamps come from the owning store's clock (monotonic by default), so
    ``last_activity`` never moves backwards.
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    client_id: Optional[str] = None
    created_at: float = field(default_factory=monotonic)
    last_activity: float = field(default_factory=monotonic)
    message_queue: List[Dict[str, Any]] = field(default_factory=list)
    """Pending outbound items for this session."""

    transport_type: str = "http"
    """``"http"`` for POST-initialised sessions, ``"sse"`` for GET streams."""

    def touch(self, now: float) -> None:
        """Move *last_activity* forward to *now* (never backwards)."""
        if now > self.last_activity:
            self.last_activity = now

    def idle_seconds(self, now: float) -> float:
        return max(0.0, now - self.last_activity)

    def is_expired(self, now: float, timeout: float) -> bool:
        """``True`` once the session has been idle for more than *timeout*."""
        return (now - self.last_activity) > timeout

    def to_dict(self, now: float) -> Dict[str, Any]:
        """Serialise the session for the status endpoints."""
        return {
            "id": self.id,
            "clientId": self.client_id,
            "transport": self.transport_type,
            "ageSeconds": round(max(0.0, now - self.created_at), 1),
            "idleSeconds": round(self.idle_seconds(now), 1),
            "queued": len(self.message_queue),
        }
