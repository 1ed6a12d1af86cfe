"""
Integration tests for the asynchronous channel end to end: a pipeline
flushes onto the EventBus and LogEntryConsumer persists the batch in the
background.
"""

import pytest

from txlogger.modules.pipeline import (
    DebugEntryRequest,
    ExceptionEntryRequest,
    FlushChannel,
    OriginType,
    PipelineFactory,
    Severity,
)
from txlogger.modules.storage import LogEntryConsumer


@pytest.fixture
def consumer(event_bus, repository):
    consumer = LogEntryConsumer(event_bus, repository, retry_attempts=3, backoff_base_seconds=0.0)
    consumer.start()
    yield consumer
    consumer.stop()


@pytest.fixture
def factory(settings_provider, context_provider, event_bus, repository):
    return PipelineFactory(
        settings_provider=settings_provider,
        context_provider=context_provider,
        event_bus=event_bus,
        repository=repository,
    )


def info(message):
    return DebugEntryRequest(message=message, origin_type=OriginType.APEX, severity=Severity.INFO)


@pytest.mark.integration
@pytest.mark.database
class TestAsyncChannel:
    async def test_flushed_entries_are_persisted(self, factory, consumer, event_bus, repository):
        # Arrange
        async with factory.transaction() as pipeline:
            await pipeline.record(info("first"))
            await pipeline.record(ExceptionEntryRequest.of(RuntimeError("second"), OriginType.APEX))

        # Act
        assert await event_bus.drain(timeout=5.0) == 0

        # Assert
        record = await repository.get_by_transaction_id(pipeline.get_transaction_id())
        assert record is not None
        assert [(e.severity, e.message) for e in record.entries] == [("INFO", "first"), ("ERROR", "second")]
        status = consumer.get_status()
        assert status["events_received"] == 1
        assert status["entries_persisted"] == 2
        assert status["entries_dropped"] == 0

    async def test_flush_returns_before_storage(self, factory, consumer, event_bus, repository):
        pipeline = factory.create()
        await pipeline.record(info("pending"))

        await pipeline.flush()

        # the LOW-priority consumer task has not run yet
        assert consumer.get_status()["events_received"] == 0
        assert event_bus.get_metrics().background_tasks == 1

        await event_bus.drain(timeout=5.0)
        assert await repository.count_entries() == 1

    async def test_parent_correlation_is_persisted(self, factory, consumer, event_bus, repository):
        pipeline = factory.create(parent_transaction_id="anchor-tx")
        await pipeline.record(info("correlated"))
        await pipeline.flush()
        await event_bus.drain(timeout=5.0)

        record = await repository.get_by_transaction_id(pipeline.get_transaction_id())
        assert record.parent_transaction_id == "anchor-tx"
        assert record.entries[0].transaction_id == "anchor-tx"

    async def test_direct_write_bypasses_the_bus(self, factory, consumer, repository):
        pipeline = factory.create()
        await pipeline.record(info("direct"))

        await pipeline.flush(FlushChannel.DIRECT_WRITE)

        assert await repository.count_entries() == 1
        assert consumer.get_status()["events_received"] == 0

    async def test_stop_unsubscribes(self, consumer, event_bus):
        consumer.stop()

        assert event_bus.get_listener_count("log.entries.published") == 0
        assert consumer.get_status()["is_running"] is False


@pytest.mark.integration
@pytest.mark.database
class TestConsumerRetry:
    async def test_transient_failure_is_retried(self, factory, consumer, event_bus, repository, mocker):
        # Arrange
        real_save = repository.save_entries
        calls = {"n": 0}

        async def flaky(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("database is locked")
            return await real_save(*args, **kwargs)

        mocker.patch.object(repository, "save_entries", side_effect=flaky)
        pipeline = factory.create()
        await pipeline.record(info("eventually stored"))

        # Act
        await pipeline.flush()
        await event_bus.drain(timeout=5.0)

        # Assert
        assert calls["n"] == 2
        assert await repository.count_entries() == 1
        status = consumer.get_status()
        assert status["failures"] == 1
        assert status["entries_persisted"] == 1

    async def test_empty_batch_is_ignored(self, event_bus, repository, mocker):
        # Arrange
        mocker.patch.object(repository, "save_entries", side_effect=RuntimeError("disk full"))
        consumer = LogEntryConsumer(event_bus, repository, retry_attempts=2, backoff_base_seconds=0.0)
        payload = {
            "transaction_id": "tx-drop",
            "retention_days": 14,
            "entries": [],
        }

        # Act
        assert await consumer.handle_published(payload) == 0

        # Assert
        assert repository.save_entries.call_count == 0

    async def test_persistent_failure_drops_entries(self, factory, event_bus, repository, mocker):
        # Arrange
        mocker.patch.object(repository, "save_entries", side_effect=RuntimeError("disk full"))
        consumer = LogEntryConsumer(event_bus, repository, retry_attempts=2, backoff_base_seconds=0.0)
        consumer.start()
        pipeline = factory.create()
        await pipeline.record(info("lost"))
        await pipeline.record(info("also lost"))

        # Act
        await pipeline.flush()
        await event_bus.drain(timeout=5.0)

        # Assert
        status = consumer.get_status()
        assert repository.save_entries.call_count == 2
        assert status["failures"] == 2
        assert status["entries_dropped"] == 2
        assert status["entries_persisted"] == 0
        consumer.stop()

    async def test_malformed_event_is_dropped(self, event_bus, repository):
        consumer = LogEntryConsumer(event_bus, repository, retry_attempts=1, backoff_base_seconds=0.0)

        written = await consumer.handle_published({"transaction_id": "tx", "entries": [{"message": "no id"}]})

        assert written == 0
        assert consumer.get_status()["entries_dropped"] == 1
        assert await repository.count_entries() == 0
