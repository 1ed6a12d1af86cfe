"""
txlogger runtime wiring.

`startup()` brings the infrastructure up in dependency order and returns a
`LoggerRuntime` holding every shared collaborator; `shutdown()` tears it
down in reverse. Hosts create per-transaction pipelines from
`runtime.factory`.

    runtime = await startup()
    async with runtime.factory.transaction() as pipeline:
        ...
    await shutdown(runtime)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from txlogger.core.config.config import Config
from txlogger.core.config.config_manager import ConfigManager
from txlogger.core.database.service import DatabaseService
from txlogger.core.event import EventBus
from txlogger.core.logging.logger import get_logger, setup_logging, shutdown_logging
from txlogger.modules.pipeline.context import ContextProvider, ProcessContextProvider
from txlogger.modules.pipeline.pipeline import PipelineFactory
from txlogger.modules.pipeline.settings import ConfigSettingsProvider, SettingsProvider
from txlogger.modules.retention.purge_job import LogPurgeJob, PurgeJobRunner
from txlogger.modules.storage.consumer import LogEntryConsumer
from txlogger.modules.storage.models import Base
from txlogger.modules.storage.repository import LogRepository

logger = get_logger(__name__)


@dataclass
class LoggerRuntime:
    event_bus: EventBus
    repository: LogRepository
    consumer: LogEntryConsumer
    settings_provider: SettingsProvider
    context_provider: ContextProvider
    factory: PipelineFactory

    def purge_runner(self) -> PurgeJobRunner:
        job = LogPurgeJob(self.repository, self.factory, self.settings_provider)
        return PurgeJobRunner(job, self.factory)


async def startup(
    *,
    database_url: Optional[str] = None,
    config_dir: Optional[Path] = None,
    create_schema: bool = True,
    configure_logging: bool = True,
    context_provider: Optional[ContextProvider] = None,
) -> LoggerRuntime:
    """Validate config, then bring up logging, settings, database, bus and consumer."""
    if configure_logging:
        setup_logging()

    logger.info("========== TXLOGGER INITIALIZATION START ==========")

    try:
        Config.validate()
        logger.info("✓ Configuration validated", extra=Config.as_dict())
    except ValueError as exc:
        logger.critical("Configuration validation failed", extra={"error": str(exc)})
        raise

    ConfigManager.initialize(config_dir)
    settings_provider = ConfigSettingsProvider()
    logger.info("✓ Logger settings loaded", extra={"minimum_severity": settings_provider.get_settings().minimum_severity.name})

    await DatabaseService.initialize(database_url)
    if create_schema:
        await DatabaseService.create_all(Base.metadata)
    logger.info("✓ Database service initialized")

    event_bus = EventBus()
    repository = LogRepository(DatabaseService)
    consumer = LogEntryConsumer(event_bus, repository)
    consumer.start()
    logger.info("✓ Storage consumer subscribed")

    context_provider = context_provider or ProcessContextProvider()
    factory = PipelineFactory(
        settings_provider=settings_provider,
        context_provider=context_provider,
        event_bus=event_bus,
        repository=repository,
    )

    logger.info("========== TXLOGGER INITIALIZED ==========")
    return LoggerRuntime(
        event_bus=event_bus,
        repository=repository,
        consumer=consumer,
        settings_provider=settings_provider,
        context_provider=context_provider,
        factory=factory,
    )


async def shutdown(runtime: Optional[LoggerRuntime], *, drain_timeout: float = 10.0) -> None:
    """Let in-flight writes finish, then release the consumer, database and logging."""
    logger.info("========== TXLOGGER SHUTDOWN START ==========")

    if runtime is not None:
        pending = await runtime.event_bus.drain(drain_timeout)
        if pending:
            logger.warning("Shutdown with log writes still pending", extra={"pending": pending})
        runtime.consumer.stop()

    try:
        await DatabaseService.shutdown()
        logger.info("✓ Database service shut down")
    except Exception as exc:
        logger.error(
            "Database service shutdown error",
            extra={"error": str(exc), "error_type": type(exc).__name__},
            exc_info=True,
        )

    logger.info("========== SHUTDOWN COMPLETE ==========")
    shutdown_logging()
