"""Tests for MetricsCollector and MetricsMiddleware."""

from __future__ import annotations

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from mcp_conduit.server.middleware import MetricsMiddleware
from mcp_conduit.server.middleware.metrics import OPERATION_STATE_KEY
from mcp_conduit.telemetry.metrics import MetricsCollector


# ════════════════════════════════════════════════════════════════════════
#  MetricsCollector tests
# ════════════════════════════════════════════════════════════════════════


class TestMetricsCollector:
    def test_keep_must_not_exceed_cap(self) -> None:
        with pytest.raises(ValueError):
            MetricsCollector(sample_cap=10, sample_keep=11)

    def test_success_plus_error_equals_total(self) -> None:
        m = MetricsCollector()
        for status in (200, 204, 400, 401, 429, 500, 200):
            m.record_request(status, 5.0)
        snap = m.snapshot()
        requests = snap["requests"]
        assert requests["total"] == 7
        assert requests["success"] == 3
        assert requests["error"] == 4
        assert requests["success"] + requests["error"] == requests["total"]
        assert sum(requests["byStatus"].values()) == requests["total"]
        assert requests["byStatus"]["200"] == 2

    def test_by_tool_counts_operations(self) -> None:
        m = MetricsCollector()
        m.record_request(200, 1.0, "ping")
        m.record_request(200, 1.0, "ping")
        m.record_request(400, 1.0, "get_document")
        m.record_request(200, 1.0)
        assert m.snapshot()["requests"]["byTool"] == {"ping": 2, "get_document": 1}

    def test_average_response_time(self) -> None:
        m = MetricsCollector()
        for duration in (10.0, 20.0, 30.0):
            m.record_request(200, duration)
        assert m.snapshot()["performance"]["avgResponseTime"] == pytest.approx(20.0)

    def test_compaction_keeps_newest_and_recomputes_mean(self) -> None:
        m = MetricsCollector(sample_cap=10, sample_keep=4)
        for i in range(12):
            m.record_request(200, float(i))
        assert m.compact() == 8
        assert m.sample_count == 4
        perf = m.snapshot()["performance"]
        assert perf["responseTimeHistory"] == [8.0, 9.0, 10.0, 11.0]
        assert perf["avgResponseTime"] == pytest.approx(9.5)
        assert m.total == 12

    def test_compaction_noop_under_cap(self) -> None:
        m = MetricsCollector(sample_cap=10, sample_keep=4)
        for i in range(10):
            m.record_request(200, float(i))
        assert m.compact() == 0
        assert m.sample_count == 10

    def test_snapshot_is_independent_copy(self) -> None:
        m = MetricsCollector()
        m.record_request(200, 1.0, "ping")
        snap = m.snapshot()
        snap["requests"]["byTool"]["ping"] = 99
        snap["performance"]["responseTimeHistory"].append(123.0)
        fresh = m.snapshot()
        assert fresh["requests"]["byTool"]["ping"] == 1
        assert fresh["performance"]["responseTimeHistory"] == [1.0]

    def test_uptime_and_sessions(self) -> None:
        now = [1000.0]
        m = MetricsCollector(clock=lambda: now[0])
        m.update_sessions(active=2, total=5)
        now[0] += 42.7
        snap = m.snapshot()
        assert snap["uptime"] == 1000.0
        assert snap["uptimeSeconds"] == 42
        assert snap["sessions"] == {"total": 5, "active": 2}


# ════════════════════════════════════════════════════════════════════════
#  MetricsMiddleware tests
# ════════════════════════════════════════════════════════════════════════


def _app(collector: MetricsCollector) -> Starlette:
    async def tool(request: Request) -> JSONResponse:
        setattr(request.state, OPERATION_STATE_KEY, "ping")
        return JSONResponse({"ok": True})

    async def missing(request: Request) -> PlainTextResponse:
        return PlainTextResponse("nope", status_code=404)

    return Starlette(
        routes=[Route("/tool", tool, methods=["POST"]), Route("/missing", missing)],
        middleware=[Middleware(MetricsMiddleware, collector=collector)],
    )


class TestMetricsMiddleware:
    def test_records_each_request_once(self) -> None:
        collector = MetricsCollector()
        with TestClient(_app(collector)) as client:
            client.post("/tool")
            client.get("/missing")
            client.get("/missing")
        snap = collector.snapshot()
        assert snap["requests"]["total"] == 3
        assert snap["requests"]["byStatus"] == {"200": 1, "404": 2}
        assert snap["requests"]["byTool"] == {"ping": 1}
        assert collector.sample_count == 3
