"""Tests for the fixed-window rate limiter and its middleware."""

from __future__ import annotations

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from mcp_conduit.server.middleware import RateLimiter, RateLimitMiddleware


class TestRateLimiter:
    def test_boundary_request_is_allowed_next_is_refused(self) -> None:
        limiter = RateLimiter(max_requests=100, window=60)
        decisions = [limiter.hit("c", now=1000.0 + i * 0.1) for i in range(101)]
        assert all(d.allowed for d in decisions[:100])
        assert decisions[99].remaining == 0
        refused = decisions[100]
        assert not refused.allowed
        assert refused.count == 101
        assert refused.retry_after == 50  # ceil(1060 - 1010)

    def test_window_resets_after_expiry(self) -> None:
        limiter = RateLimiter(max_requests=1, window=60)
        assert limiter.hit("c", now=0.0).allowed
        assert not limiter.hit("c", now=30.0).allowed
        # Still inside the window at exactly reset_time.
        assert not limiter.hit("c", now=60.0).allowed
        fresh = limiter.hit("c", now=60.5)
        assert fresh.allowed
        assert fresh.count == 1
        assert fresh.reset_time == 120.5

    def test_clients_are_independent(self) -> None:
        limiter = RateLimiter(max_requests=1, window=60)
        assert limiter.hit("a", now=0.0).allowed
        assert limiter.hit("b", now=0.0).allowed
        assert not limiter.hit("a", now=1.0).allowed

    def test_headers(self) -> None:
        limiter = RateLimiter(max_requests=5, window=60)
        headers = limiter.hit("c", now=100.2).headers()
        assert headers == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "4",
            "X-RateLimit-Reset": "161",
        }

    def test_sweep_drops_expired_entries(self) -> None:
        limiter = RateLimiter(max_requests=5, window=10)
        limiter.hit("old", now=0.0)
        limiter.hit("new", now=8.0)
        assert limiter.sweep(now=11.0) == 1
        assert limiter.get("old") is None
        assert limiter.get("new") is not None
        assert len(limiter) == 1


def _app(limiter: RateLimiter, enabled: bool) -> Starlette:
    async def ok(request: Request) -> JSONResponse:
        return JSONResponse({"ok": True})

    return Starlette(
        routes=[Route("/", ok, methods=["GET", "POST"])],
        middleware=[Middleware(RateLimitMiddleware, limiter=limiter, enabled=enabled)],
    )


class TestRateLimitMiddleware:
    def test_disabled_is_pass_through(self) -> None:
        limiter = RateLimiter(max_requests=1, window=60)
        with TestClient(_app(limiter, enabled=False)) as client:
            for _ in range(3):
                resp = client.get("/")
                assert resp.status_code == 200
                assert "x-ratelimit-limit" not in resp.headers
        assert len(limiter) == 0

    def test_over_limit_answers_429_envelope(self) -> None:
        limiter = RateLimiter(max_requests=2, window=60)
        with TestClient(_app(limiter, enabled=True)) as client:
            first = client.get("/")
            assert first.status_code == 200
            assert first.headers["x-ratelimit-limit"] == "2"
            assert first.headers["x-ratelimit-remaining"] == "1"
            client.get("/")
            resp = client.post("/", json={"jsonrpc": "2.0", "id": 9, "method": "tools/list"})

        assert resp.status_code == 429
        body = resp.json()
        assert body["id"] == 9
        assert body["error"]["code"] == -32000
        assert body["error"]["message"] == "Rate limit exceeded"
        retry_after = body["error"]["data"]["retryAfter"]
        assert 0 < retry_after <= 60
        assert resp.headers["retry-after"] == str(retry_after)

    def test_forwarded_for_is_not_used_when_peer_known(self) -> None:
        limiter = RateLimiter(max_requests=1, window=60)
        with TestClient(_app(limiter, enabled=True)) as client:
            client.get("/", headers={"x-forwarded-for": "1.1.1.1"})
            resp = client.get("/", headers={"x-forwarded-for": "2.2.2.2"})
        assert resp.status_code == 429


@pytest.mark.asyncio
async def test_stop_clears_entries() -> None:
    limiter = RateLimiter(max_requests=1, window=60, sweep_interval=10)
    limiter.start()
    limiter.hit("c")
    await limiter.stop()
    assert len(limiter) == 0
