"""Tests for the session model and store."""

from __future__ import annotations

import pytest

from mcp_conduit.server.session import Session, SessionStore, SweepResult


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ════════════════════════════════════════════════════════════════════════
#  Session model tests
# ════════════════════════════════════════════════════════════════════════


class TestSession:
    def test_defaults(self) -> None:
        s = Session(created_at=0.0, last_activity=0.0)
        assert s.id
        assert s.transport_type == "http"
        assert s.message_queue == []

    def test_touch_never_moves_backwards(self) -> None:
        s = Session(created_at=10.0, last_activity=10.0)
        s.touch(5.0)
        assert s.last_activity == 10.0
        s.touch(20.0)
        assert s.last_activity == 20.0

    def test_expiry_is_strict(self) -> None:
        s = Session(created_at=0.0, last_activity=0.0)
        assert not s.is_expired(100.0, timeout=100.0)
        assert s.is_expired(100.5, timeout=100.0)

    def test_to_dict(self) -> None:
        s = Session(client_id="10.0.0.1", created_at=0.0, last_activity=5.0, transport_type="sse")
        d = s.to_dict(now=8.0)
        assert d["id"] == s.id
        assert d["clientId"] == "10.0.0.1"
        assert d["transport"] == "sse"
        assert d["ageSeconds"] == 8.0
        assert d["idleSeconds"] == 3.0
        assert d["queued"] == 0


# ════════════════════════════════════════════════════════════════════════
#  SessionStore tests
# ════════════════════════════════════════════════════════════════════════


class TestSessionStore:
    def test_create_and_get(self) -> None:
        store = SessionStore(clock=FakeClock())
        s = store.create(client_id="c1")
        assert store.get(s.id) is s
        assert s.id in store
        assert len(store) == 1
        assert store.created_total == 1

    def test_ids_are_unique(self) -> None:
        store = SessionStore(clock=FakeClock())
        ids = {store.create().id for _ in range(200)}
        assert len(ids) == 200

    def test_touched_session_survives_sweep(self) -> None:
        clock = FakeClock()
        store = SessionStore(timeout=60, clock=clock)
        kept = store.create()
        dropped = store.create()
        clock.advance(50)
        store.touch(kept.id)
        clock.advance(50)
        result = store.sweep()
        assert result == SweepResult(removed=1, live=1)
        assert kept.id in store
        assert dropped.id not in store

    def test_session_idle_exactly_timeout_is_kept(self) -> None:
        clock = FakeClock()
        store = SessionStore(timeout=60, clock=clock)
        s = store.create()
        clock.advance(60)
        assert store.sweep().removed == 0
        assert s.id in store

    def test_lookup_never_evicts(self) -> None:
        clock = FakeClock()
        store = SessionStore(timeout=1, clock=clock)
        s = store.create()
        clock.advance(100)
        assert store.get(s.id) is s

    def test_touch_unknown_is_ignored(self) -> None:
        store = SessionStore(clock=FakeClock())
        store.touch("missing")
        assert len(store) == 0

    def test_remove(self) -> None:
        store = SessionStore(clock=FakeClock())
        s = store.create()
        assert store.remove(s.id) is True
        assert store.remove(s.id) is False
        assert store.active_count == 0
        assert store.created_total == 1

    def test_on_change_reports_active_and_total(self) -> None:
        seen = []
        clock = FakeClock()
        store = SessionStore(timeout=10, clock=clock, on_change=lambda a, t: seen.append((a, t)))
        a = store.create()
        store.create()
        store.remove(a.id)
        clock.advance(20)
        store.sweep()
        assert seen[:3] == [(1, 1), (2, 2), (1, 2)]
        assert seen[-1] == (0, 2)

    def test_list_sessions(self) -> None:
        store = SessionStore(clock=FakeClock())
        store.create(transport_type="sse")
        [entry] = store.list_sessions()
        assert entry["transport"] == "sse"

    @pytest.mark.asyncio
    async def test_stop_clears_sessions(self) -> None:
        store = SessionStore(sweep_interval=10, clock=FakeClock())
        store.start()
        store.create()
        await store.stop()
        assert len(store) == 0
