"""Runtime request metrics.

:class:`MetricsCollector` keeps the process-local counters served by
``GET /metrics``: totals, success/error split, per-status and per-operation
tallies, a bounded response-time sample buffer and session counts.  Every
recorded request is mirrored onto OpenTelemetry instruments so an installed
SDK can export the same numbers.

The sample buffer is compacted periodically: once it holds more than
*sample_cap* entries only the newest *sample_keep* are retained and the mean
is recomputed from those.  After a compaction ``avgResponseTime`` is
therefore an approximation over recent traffic, not an all-time mean.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from opentelemetry import metrics as otel_metrics

from mcp_conduit.constants import (
    METRICS_COMPACT_INTERVAL,
    RESPONSE_SAMPLE_CAP,
    RESPONSE_SAMPLE_KEEP,
)
from mcp_conduit.runtime.periodic import PeriodicTask

logger = logging.getLogger(__name__)

_METER_NAME = "mcp_conduit"


class _Instruments:
    """OpenTelemetry counters/histograms mirroring the in-process counters."""

    def __init__(self) -> None:
        meter = otel_metrics.get_meter(_METER_NAME)
        self.requests = meter.create_counter(
            "mcp_conduit.requests_total",
            description="Total HTTP requests processed",
        )
        self.errors = meter.create_counter(
            "mcp_conduit.errors_total",
            description="Total HTTP requests answered with a non-2xx status",
        )
        self.duration = meter.create_histogram(
            "mcp_conduit.request_duration_seconds",
            description="Request duration in seconds",
            unit="s",
        )


class MetricsCollector:
    """Aggregate request and session counters for one process."""

    def __init__(
        self,
        sample_cap: int = RESPONSE_SAMPLE_CAP,
        sample_keep: int = RESPONSE_SAMPLE_KEEP,
        compact_interval: float = METRICS_COMPACT_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if sample_keep > sample_cap:
            raise ValueError("sample_keep must not exceed sample_cap")
        self._sample_cap = sample_cap
        self._sample_keep = sample_keep
        self._clock = clock
        self._started_at = clock()
        self._total = 0
        self._success = 0
        self._error = 0
        self._by_tool: Dict[str, int] = {}
        self._by_status: Dict[str, int] = {}
        self._samples: List[float] = []
        self._avg_response_time = 0.0
        self._sessions_total = 0
        self._sessions_active = 0
        self._instruments = _Instruments()
        self._compactor = PeriodicTask("metrics-compact", compact_interval, self.compact)

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        self._compactor.start()

    async def stop(self) -> None:
        await self._compactor.stop()

    # ── Recording ────────────────────────────────────────────────────

    def record_request(
        self,
        status_code: int,
        duration_ms: float,
        operation: Optional[str] = None,
    ) -> None:
        """Record one finished request."""
        self._total += 1
        success = 200 <= status_code < 300
        if success:
            self._success += 1
        else:
            self._error += 1

        status_key = str(status_code)
        self._by_status[status_key] = self._by_status.get(status_key, 0) + 1
        if operation:
            self._by_tool[operation] = self._by_tool.get(operation, 0) + 1

        self._samples.append(duration_ms)
        # Incremental mean over the retained samples.
        n = len(self._samples)
        self._avg_response_time += (duration_ms - self._avg_response_time) / n

        attrs: Dict[str, Any] = {"status_code": status_code}
        if operation:
            attrs["operation"] = operation
        self._instruments.requests.add(1, attrs)
        self._instruments.duration.record(duration_ms / 1000.0, attrs)
        if not success:
            self._instruments.errors.add(1, attrs)

    def update_sessions(self, active: int, total: int) -> None:
        self._sessions_active = active
        self._sessions_total = total

    def compact(self) -> int:
        """Trim the sample buffer if it exceeds the cap.

        Returns the number of samples dropped.
        """
        excess = len(self._samples) - self._sample_cap
        if excess <= 0:
            return 0
        dropped = len(self._samples) - self._sample_keep
        self._samples = self._samples[-self._sample_keep :]
        self._avg_response_time = (
            sum(self._samples) / len(self._samples) if self._samples else 0.0
        )
        logger.debug(
            "Compacted response-time samples: dropped %d, kept %d (avg=%.2fms).",
            dropped,
            len(self._samples),
            self._avg_response_time,
        )
        return dropped

    # ── Reading ──────────────────────────────────────────────────────

    @property
    def total(self) -> int:
        return self._total

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def snapshot(self) -> Dict[str, Any]:
        """Return an independent copy of all counters plus derived uptime."""
        now = self._clock()
        return copy.deepcopy(
            {
                "requests": {
                    "total": self._total,
                    "success": self._success,
                    "error": self._error,
                    "byTool": self._by_tool,
                    "byStatus": self._by_status,
                },
                "sessions": {
                    "total": self._sessions_total,
                    "active": self._sessions_active,
                },
                "performance": {
                    "avgResponseTime": round(self._avg_response_time, 3),
                    "responseTimeHistory": self._samples,
                },
                "uptime": self._started_at,
                "uptimeSeconds": int(max(0.0, now - self._started_at)),
            }
        )
