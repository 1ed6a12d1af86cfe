"""Integration tests for runtime wiring and the command line."""

import pytest
import pytest_asyncio

from txlogger.bootstrap import shutdown, startup
from txlogger.core.config.config_manager import ConfigManager
from txlogger.core.database import DatabaseService
from txlogger.main import build_parser
from txlogger.modules.adapters import Logger
from txlogger.modules.pipeline import Severity, StaticContextProvider


@pytest_asyncio.fixture
async def runtime(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "logger.yaml").write_text("logger:\n  minimum_severity: INFO\n", encoding="utf-8")

    runtime = await startup(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'runtime.db'}",
        config_dir=tmp_path / "config",
        configure_logging=False,
        context_provider=StaticContextProvider(username="runtime"),
    )
    try:
        yield runtime
    finally:
        await shutdown(runtime)


@pytest.mark.integration
@pytest.mark.database
class TestRuntime:
    async def test_startup_wires_components(self, runtime):
        assert DatabaseService.is_initialized()
        assert runtime.consumer.get_status()["is_running"] is True
        assert runtime.settings_provider.get_settings().minimum_severity is Severity.INFO

    async def test_logged_entries_reach_storage(self, runtime):
        # Arrange
        log = Logger()

        # Act
        async with runtime.factory.transaction() as pipeline:
            assert await log.debug("below INFO") is None
            await log.info("stored", linked_record_id="order-1")
        await runtime.event_bus.drain(timeout=5.0)

        # Assert
        record = await runtime.repository.get_by_transaction_id(pipeline.get_transaction_id())
        assert [e.message for e in record.entries] == ["stored"]
        assert record.entries[0].linked_record_id == "order-1"
        assert record.entries[0].context["username"] == "runtime"

    async def test_runtime_setting_change_applies_to_next_record(self, runtime):
        pipeline = runtime.factory.create()

        ConfigManager.set_override("logger.minimum_severity", "ERROR")

        assert await Logger(pipeline).warn("now filtered") is None

    async def test_purge_runner_with_nothing_expired(self, runtime):
        state = await runtime.purge_runner().run(50)

        assert state.total_processed == 0
        assert state.chunks_failed == 0

    async def test_shutdown_releases_database(self, runtime):
        await shutdown(runtime)

        assert not DatabaseService.is_initialized()
        assert runtime.consumer.get_status()["is_running"] is False


@pytest.mark.unit
class TestCommandLine:
    def test_purge_arguments(self):
        args = build_parser().parse_args(["--database-url", "sqlite+aiosqlite:///x.db", "purge", "--chunk-size", "25"])

        assert args.command == "purge"
        assert args.chunk_size == 25
        assert args.database_url == "sqlite+aiosqlite:///x.db"

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
