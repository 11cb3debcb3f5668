"""Tests for scheduled tasks and the session registry."""
import asyncio
import pytest
from signlearn.errors import SessionNotFoundError
from signlearn.services.sessions import SessionRegistry
from signlearn.services.timers import RepeatingTask, ScheduledTask


class TestScheduledTask:
    """Tests for fire-once timers."""

    def test_fires_once(self):
        calls = []

        async def run():
            ScheduledTask(0.01, lambda: calls.append("fired")).start()
            await asyncio.sleep(0.05)

        asyncio.run(run())
        assert calls == ["fired"]

    def test_cancel_before_firing(self):
        calls = []

        async def run():
            task = ScheduledTask(0.02, lambda: calls.append("fired")).start()
            task.cancel()
            await asyncio.sleep(0.05)
            return task

        task = asyncio.run(run())
        assert calls == []
        assert not task.pending

    def test_failing_callback_is_contained(self):
        def boom():
            raise RuntimeError("boom")

        async def run():
            task = ScheduledTask(0.01, boom).start()
            await asyncio.sleep(0.05)
            return task

        task = asyncio.run(run())
        assert task.cancelled


class TestRepeatingTask:
    """Tests for re-armed countdown timers."""

    def test_repeats_until_false(self):
        ticks = []

        def on_tick():
            ticks.append(len(ticks))
            return len(ticks) < 3

        async def run():
            RepeatingTask(0.01, on_tick).start()
            await asyncio.sleep(0.1)

        asyncio.run(run())
        assert ticks == [0, 1, 2]

    def test_cancel_stops_chain(self):
        ticks = []

        async def run():
            task = RepeatingTask(0.01, lambda: ticks.append(1) or True).start()
            await asyncio.sleep(0.035)
            task.cancel()
            seen = len(ticks)
            await asyncio.sleep(0.05)
            return seen

        seen = asyncio.run(run())
        assert seen >= 1
        assert len(ticks) == seen


class TestSessionRegistry:
    """Tests for one-session-per-user ownership."""

    def test_get_missing(self):
        registry = SessionRegistry("test")
        with pytest.raises(SessionNotFoundError):
            registry.get("nobody")

    def test_start_replaces_and_bumps_generation(self):
        registry = SessionRegistry("test")
        first = registry.start("u1", "session-a")
        second = registry.start("u1", "session-b")

        assert second.generation == first.generation + 1
        assert first.closed
        assert not registry.is_current(first)
        assert registry.get("u1").session == "session-b"

    def test_end(self):
        registry = SessionRegistry("test")
        registry.start("u1", "s")
        assert registry.end("u1") is True
        assert registry.end("u1") is False
        assert registry.find("u1") is None

    def test_replaced_session_timers_do_not_fire(self):
        registry = SessionRegistry("test")
        calls = []

        async def run():
            old = registry.start("u1", "old")
            registry.schedule(old, 0.02, lambda: calls.append("old"))
            new = registry.start("u1", "new")
            registry.schedule(new, 0.02, lambda: calls.append("new"))
            await asyncio.sleep(0.06)

        asyncio.run(run())
        assert calls == ["new"]

    def test_stale_generation_guard(self):
        """A callback captured for an old entry does nothing even if not cancelled."""
        registry = SessionRegistry("test")
        calls = []
        old = registry.start("u1", "old")
        guarded = registry._guard(old, lambda: calls.append("old") or True)
        registry.start("u1", "new")
        assert guarded() is False
        assert calls == []

    def test_repeat_stops_on_end(self):
        registry = SessionRegistry("test")
        ticks = []

        async def run():
            entry = registry.start("u1", "s")
            registry.repeat(entry, 0.01, lambda: ticks.append(1) or True)
            await asyncio.sleep(0.035)
            registry.end("u1")
            seen = len(ticks)
            await asyncio.sleep(0.05)
            return seen

        seen = asyncio.run(run())
        assert len(ticks) == seen
