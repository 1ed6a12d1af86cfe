"""
Unit tests for the EventBus: tier ordering, deduplication, error isolation
and background (LOW) listeners.
"""

import asyncio

import pytest

from txlogger.core.event import EventBus, ListenerPriority


@pytest.fixture
def bus():
    return EventBus()


@pytest.mark.unit
class TestSubscription:
    async def test_publish_reaches_listener(self, bus):
        received = []

        async def on_event(payload):
            received.append(payload)

        bus.subscribe("log.entries.published", on_event)

        await bus.publish("log.entries.published", {"n": 1})
        await bus.publish("purge.finished", {"n": 2})

        assert received == [{"n": 1}]

    def test_rejects_callback_with_wrong_arity(self, bus):
        async def two_args(payload, extra):
            return None

        with pytest.raises(ValueError, match="exactly 1 parameter"):
            bus.subscribe("x", two_args)

    def test_duplicate_identifier_is_prevented(self, bus):
        async def on_event(payload):
            return None

        bus.subscribe("x", on_event)
        bus.subscribe("x", on_event)

        assert bus.get_listener_count("x") == 1
        assert bus.get_listener_count() == 1

    async def test_unsubscribe(self, bus):
        calls = []

        async def on_event(payload):
            calls.append(payload)

        listener_id = bus.subscribe("x", on_event)

        assert bus.unsubscribe("x", listener_id) is True
        assert bus.unsubscribe("x", listener_id) is False
        await bus.publish("x", {})
        assert calls == []
        assert bus.get_metrics().total_listeners == 0

    async def test_sync_callback_runs_in_executor(self, bus):
        calls = []
        bus.subscribe("x", lambda payload: calls.append(payload["n"]))

        await bus.publish("x", {"n": 5})

        assert calls == [5]


@pytest.mark.unit
class TestTiers:
    async def test_normal_listeners_run_before_low(self, bus):
        order = []

        async def low(payload):
            order.append("low")

        async def normal(payload):
            order.append("normal")
            return "done"

        bus.subscribe("x", low, priority=ListenerPriority.LOW)
        bus.subscribe("x", normal, priority=ListenerPriority.NORMAL)

        results = await bus.publish("x", {})
        await bus.drain(timeout=1.0)

        assert results == ["done"]
        assert order == ["normal", "low"]

    async def test_low_listener_does_not_block_publish(self, bus):
        release = asyncio.Event()
        finished = []

        async def slow_storage(payload):
            await release.wait()
            finished.append(payload)

        bus.subscribe("x", slow_storage, priority=ListenerPriority.LOW)

        results = await bus.publish("x", {"n": 1})

        assert results == []
        assert finished == []
        assert bus.get_metrics().background_tasks == 1

        release.set()
        assert await bus.drain(timeout=1.0) == 0
        assert finished == [{"n": 1}]

    async def test_drain_reports_pending_tasks(self, bus):
        release = asyncio.Event()

        async def blocked(payload):
            await release.wait()

        bus.subscribe("x", blocked, priority=ListenerPriority.LOW)
        await bus.publish("x", {})

        assert await bus.drain(timeout=0.01) == 1

        release.set()
        assert await bus.drain(timeout=1.0) == 0


@pytest.mark.unit
class TestErrorIsolation:
    async def test_failing_listener_does_not_reach_publisher_or_peers(self, bus):
        received = []

        async def broken(payload):
            raise RuntimeError("listener failure")

        async def healthy(payload):
            received.append(payload)

        bus.subscribe("x", broken)
        bus.subscribe("x", healthy)

        await bus.publish("x", {"n": 1})

        assert received == [{"n": 1}]
        summary = bus.get_metrics_summary()
        assert summary["total_errors"] == 1
        assert summary["events_by_type"] == {"x": 1}

    async def test_failing_low_listener_is_contained(self, bus):
        async def broken(payload):
            raise RuntimeError("storage down")

        bus.subscribe("x", broken, priority=ListenerPriority.LOW)

        await bus.publish("x", {})
        await bus.drain(timeout=1.0)

        assert bus.get_metrics_summary()["errors_by_event"] == {"x": 1}
