"""Tests for the in-memory session store."""

import asyncio

import pytest

from mcp_orchestrator.models import UserTurn
from mcp_orchestrator.sessions import SessionStore


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSessionStore:
    def test_creates_empty_transcript_on_first_use(self):
        store = SessionStore()

        transcript = store.get_or_create("s1")

        assert len(transcript) == 0
        assert "s1" in store
        assert len(store) == 1

    def test_returns_same_transcript_by_reference(self):
        store = SessionStore()
        store.get_or_create("s1").append(UserTurn("hello"))

        assert store.get_or_create("s1").turns == (UserTurn("hello"),)

    def test_sessions_are_independent(self):
        store = SessionStore()
        store.get_or_create("a").append(UserTurn("hello"))

        assert len(store.get_or_create("b")) == 0

    def test_get_does_not_create(self):
        store = SessionStore()
        assert store.get("missing") is None
        assert "missing" not in store

    def test_lock_is_per_session(self):
        store = SessionStore()
        assert store.lock("a") is store.lock("a")
        assert store.lock("a") is not store.lock("b")

    def test_no_eviction_by_default(self):
        clock = FakeClock()
        store = SessionStore(clock=clock)
        for i in range(100):
            store.get_or_create(f"s{i}")
        clock.now = 1_000_000

        assert store.evict_expired() == []
        assert len(store) == 100


class TestEviction:
    def test_idle_sessions_expire(self):
        clock = FakeClock()
        store = SessionStore(idle_ttl=60, clock=clock)
        store.get_or_create("old").append(UserTurn("hi"))
        clock.now = 50
        store.get_or_create("recent")
        clock.now = 100

        assert store.evict_expired() == ["old"]
        assert store.session_ids() == ["recent"]

    def test_evicted_session_restarts_empty(self):
        clock = FakeClock()
        store = SessionStore(idle_ttl=10, clock=clock)
        store.get_or_create("s1").append(UserTurn("hi"))
        clock.now = 100

        assert len(store.get_or_create("s1")) == 0

    def test_session_cap_evicts_least_recently_used(self):
        store = SessionStore(max_sessions=2)
        store.get_or_create("a")
        store.get_or_create("b")
        store.get_or_create("a")
        store.get_or_create("c")

        assert store.session_ids() == ["a", "c"]

    @pytest.mark.asyncio
    async def test_locked_session_is_never_evicted(self):
        clock = FakeClock()
        store = SessionStore(idle_ttl=10, clock=clock)
        store.get_or_create("busy")

        async with store.lock("busy"):
            clock.now = 100
            assert store.evict_expired() == []
        assert "busy" in store


class TestSessionContext:
    @pytest.mark.asyncio
    async def test_session_yields_shared_transcript(self):
        store = SessionStore()

        async with store.session("s1") as transcript:
            transcript.append(UserTurn("hi"))

        assert store.get("s1").turns == (UserTurn("hi"),)

    @pytest.mark.asyncio
    async def test_queued_caller_keeps_session_alive(self):
        """A caller waiting for the lock pins the session against cap eviction."""
        store = SessionStore(max_sessions=1)
        first = store.session("s1")
        transcript = await first.__aenter__()
        transcript.append(UserTurn("one"))

        async def second_caller():
            async with store.session("s1") as t:
                t.append(UserTurn("two"))

        waiting = asyncio.create_task(second_caller())
        await asyncio.sleep(0)
        await first.__aexit__(None, None, None)

        # The lock is free but the second caller has not resumed yet.
        store.get_or_create("other")
        await waiting

        assert "s1" in store
        assert store.get("s1").turns == (UserTurn("one"), UserTurn("two"))

    @pytest.mark.asyncio
    async def test_idle_session_expires_after_release(self):
        clock = FakeClock()
        store = SessionStore(idle_ttl=10, clock=clock)

        async with store.session("s1") as transcript:
            transcript.append(UserTurn("hi"))
        clock.now = 100

        assert store.evict_expired() == ["s1"]
