"""
Pytest configuration and shared fixtures for txlogger.

- Unit fixtures: in-memory settings, static context, a recording channel
  (a real EventBus with a capturing listener) and a pipeline factory on top.
- Integration fixtures: a throwaway SQLite database per test through
  aiosqlite, the DatabaseService bound to it, and a LogRepository.

ConfigManager is class-level state, so it is reset around every test.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Generator, List

import pytest
import pytest_asyncio

from txlogger.core.config.config_manager import ConfigManager
from txlogger.core.database.service import DatabaseService
from txlogger.core.event import EventBus, ListenerPriority
from txlogger.modules.pipeline import (
    LOG_ENTRIES_PUBLISHED,
    InMemorySettingsProvider,
    PipelineFactory,
    StaticContextProvider,
)
from txlogger.modules.storage.models import Base
from txlogger.modules.storage.repository import LogRepository

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    os.environ.setdefault("TXLOGGER_ENV", "testing")


@pytest.fixture(autouse=True)
def reset_config_manager() -> Generator[None, None, None]:
    ConfigManager.clear_cache()
    yield
    ConfigManager.clear_cache()


# ============================================================================
# PIPELINE FIXTURES (Unit Tests)
# ============================================================================


class RecordingChannel:
    """EventBus plus a NORMAL-priority listener that keeps every published payload."""

    def __init__(self) -> None:
        self.bus = EventBus()
        self.events: List[Dict[str, Any]] = []
        self.bus.subscribe(LOG_ENTRIES_PUBLISHED, self._capture, priority=ListenerPriority.NORMAL)

    async def _capture(self, payload: Dict[str, Any]) -> None:
        self.events.append(payload)

    @property
    def call_count(self) -> int:
        return len(self.events)

    @property
    def entries(self) -> List[Dict[str, Any]]:
        return [entry for event in self.events for entry in event["entries"]]


@pytest.fixture
def settings_provider() -> InMemorySettingsProvider:
    return InMemorySettingsProvider()


@pytest.fixture
def context_provider() -> StaticContextProvider:
    return StaticContextProvider(
        user_id="user-1",
        username="tester@example.com",
        profile_name="Standard User",
        locale="en_US",
        timezone="UTC",
    )


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recording_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def pipeline_factory(settings_provider, context_provider, recording_channel) -> PipelineFactory:
    return PipelineFactory(
        settings_provider=settings_provider,
        context_provider=context_provider,
        event_bus=recording_channel.bus,
    )


@pytest.fixture
def pipeline(pipeline_factory):
    return pipeline_factory.create()


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[type[DatabaseService], None]:
    """DatabaseService bound to a fresh SQLite file with the log schema created."""
    await DatabaseService.initialize(f"sqlite+aiosqlite:///{tmp_path / 'logs.db'}", echo=False)
    await DatabaseService.create_all(Base.metadata)
    try:
        yield DatabaseService
    finally:
        await DatabaseService.shutdown()


@pytest.fixture
def repository(database) -> LogRepository:
    return LogRepository(database)


# ============================================================================
# MOCK FIXTURES
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    """EventBus double whose publish can be made to fail."""
    mock_bus = mocker.MagicMock(spec=EventBus)
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    return mock_bus


@pytest.fixture
def mock_repository(mocker):
    mock_repo = mocker.MagicMock(spec=LogRepository)
    mock_repo.save_entries = mocker.AsyncMock(side_effect=lambda tx, entries, days, **kw: len(entries))
    return mock_repo
