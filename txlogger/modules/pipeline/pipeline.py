"""
Per-transaction log pipeline.

A `LogPipeline` owns one TransactionBuffer for one logical unit of work.
`record()` runs a request through the diagnostic sink, the level filter and
the storage toggles, builds the entry and buffers it. `flush()` hands the
whole buffer to a channel in one call.

Pipelines are made by `PipelineFactory`. `PipelineFactory.transaction()`
also binds the pipeline to the current task's context so adapters can find
it without it being passed around:

    async with factory.transaction() as pipeline:
        await pipeline.record(DebugEntryRequest("hello", OriginType.APEX))
    # flushed on exit
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, AsyncIterator, Iterable, Optional

from txlogger.core.event import EventBus
from txlogger.core.logging.logger import LogContext, get_logger, set_log_context
from txlogger.modules.pipeline.buffer import TransactionBuffer
from txlogger.modules.pipeline.builder import EntryBuilder
from txlogger.modules.pipeline.context import ContextProvider
from txlogger.modules.pipeline.entry import (
    DebugEntryRequest,
    EntryRequest,
    ErrorLike,
    ExceptionEntryRequest,
    FieldLimits,
    LogEntry,
)
from txlogger.modules.pipeline.publisher import FlushChannel, Publisher
from txlogger.modules.pipeline.settings import SettingsProvider
from txlogger.modules.pipeline.severity import EntryKind, OriginType, Severity

if TYPE_CHECKING:
    from txlogger.modules.storage.repository import LogRepository

logger = get_logger(__name__)
diagnostics = get_logger("txlogger.diagnostics")

FLUSH_SUPPRESSED_MESSAGE = "Flush suppressed: logging is suspended"

_current_pipeline: ContextVar[Optional[LogPipeline]] = ContextVar("txlogger_pipeline", default=None)


def current_pipeline() -> Optional[LogPipeline]:
    return _current_pipeline.get()


def bind_pipeline(pipeline: Optional[LogPipeline]) -> Token[Optional[LogPipeline]]:
    return _current_pipeline.set(pipeline)


def unbind_pipeline(token: Token[Optional[LogPipeline]]) -> None:
    _current_pipeline.reset(token)


class LogPipeline:
    def __init__(
        self,
        *,
        settings_provider: SettingsProvider,
        builder: EntryBuilder,
        publisher: Publisher,
        buffer: Optional[TransactionBuffer] = None,
    ) -> None:
        self._settings_provider = settings_provider
        self._builder = builder
        self._publisher = publisher
        self._buffer = buffer if buffer is not None else TransactionBuffer()

    # ------------------------------------------------------------------ #
    # Recording
    # ------------------------------------------------------------------ #

    async def record(self, request: EntryRequest) -> Optional[str]:
        """
        File one entry. Returns its entry id, or None when policy dropped it.

        Dropping is never an error; nothing is raised for filtered entries.
        """
        settings = self._settings_provider.get_settings()
        severity = request.effective_severity

        if settings.debug_sink_enabled:
            self._emit_diagnostic(severity, request)

        if severity < settings.minimum_severity:
            return None

        if request.kind is EntryKind.DEBUG and not settings.store_debug_entries:
            return None
        if request.kind is EntryKind.EXCEPTION and not settings.store_exception_entries:
            return None

        entry = self._builder.build(request, self._buffer.effective_transaction_id)
        self._buffer.append(entry)

        if request.kind is EntryKind.EXCEPTION and settings.auto_flush_on_exception:
            await self.flush()

        return entry.entry_id

    async def record_message(
        self,
        severity: Optional[Severity],
        message: Optional[str],
        origin_type: OriginType,
        origin_location: Optional[str] = None,
        linked_record_id: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        error: Optional[ErrorLike] = None,
    ) -> Optional[str]:
        """Flat form of `record()`: an `error` selects the exception variant."""
        tag_tuple = tuple(tags or ())
        request: EntryRequest
        if error is not None:
            request = ExceptionEntryRequest.of(
                error,
                origin_type,
                origin_location=origin_location,
                linked_record_id=linked_record_id,
                tags=tag_tuple,
                requested_severity=severity,
            )
        else:
            request = DebugEntryRequest(
                message=message or "",
                origin_type=origin_type,
                origin_location=origin_location,
                severity=severity,
                linked_record_id=linked_record_id,
                tags=tag_tuple,
            )
        return await self.record(request)

    def _emit_diagnostic(self, severity: Severity, request: EntryRequest) -> None:
        diagnostics.log(
            severity.to_logging_level(),
            "%s",
            request.message,
            extra={
                "severity": severity.name,
                "entry_kind": request.kind.value,
                "origin_type": request.origin_type.value,
                "origin_location": request.origin_location,
                "transaction_id": self._buffer.effective_transaction_id,
            },
        )

    # ------------------------------------------------------------------ #
    # Flushing
    # ------------------------------------------------------------------ #

    async def flush(self, via: FlushChannel = FlushChannel.ASYNC_CHANNEL) -> str:
        """
        Publish every buffered entry through `via` and clear the buffer.

        Suspended: buffers one INFO "flush suppressed" entry and contacts no
        channel. Empty buffer: contacts no channel. Returns the transaction id
        in every case.
        """
        transaction_id = self.get_transaction_id()

        if self._buffer.suspended:
            self._buffer.append(self._suppressed_entry())
            logger.debug(
                "Flush suppressed while suspended",
                extra={"transaction_id": transaction_id, "buffered": len(self._buffer)},
            )
            return transaction_id

        if not len(self._buffer):
            return transaction_id

        self._publisher.ensure_supported(via)
        entries = self._buffer.drain()
        settings = self._settings_provider.get_settings()

        await self._publisher.publish(
            entries,
            transaction_id=transaction_id,
            parent_transaction_id=self._buffer.parent_transaction_id,
            retention_days=settings.default_retention_days,
            via=via,
        )
        logger.debug(
            "Log buffer flushed",
            extra={"transaction_id": transaction_id, "entry_count": len(entries), "channel": via.value},
        )
        return transaction_id

    def _suppressed_entry(self) -> LogEntry:
        request = DebugEntryRequest(
            message=FLUSH_SUPPRESSED_MESSAGE,
            origin_type=OriginType.APEX,
            origin_location=f"{type(self).__name__}.flush",
            severity=Severity.INFO,
        )
        return self._builder.build(request, self._buffer.effective_transaction_id)

    def discard(self) -> int:
        """Drop pending entries without publishing them."""
        return len(self._buffer.drain())

    # ------------------------------------------------------------------ #
    # Transaction state
    # ------------------------------------------------------------------ #

    def suspend(self) -> None:
        self._buffer.suspended = True

    def resume(self) -> None:
        self._buffer.suspended = False

    @property
    def is_suspended(self) -> bool:
        return self._buffer.suspended

    def set_parent_correlation(self, transaction_id: Optional[str]) -> None:
        """Stamp entries built from now on with `transaction_id` instead of this pipeline's own id."""
        self._buffer.parent_transaction_id = transaction_id
        if current_pipeline() is self:
            set_log_context(correlation_id=self.correlation_id)

    def get_transaction_id(self) -> str:
        return self._buffer.transaction_id

    @property
    def correlation_id(self) -> str:
        """The id stamped on new entries: the parent override when set."""
        return self._buffer.effective_transaction_id

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    @property
    def pending_entries(self) -> tuple[LogEntry, ...]:
        return self._buffer.peek()


class PipelineFactory:
    """Creates pipelines that share settings, context, limits and channels."""

    def __init__(
        self,
        *,
        settings_provider: SettingsProvider,
        context_provider: ContextProvider,
        event_bus: Optional[EventBus] = None,
        repository: Optional[LogRepository] = None,
        limits: Optional[FieldLimits] = None,
    ) -> None:
        self.settings_provider = settings_provider
        self._builder = EntryBuilder(context_provider, limits=limits)
        self._publisher = Publisher(event_bus=event_bus, repository=repository)

    def create(self, *, transaction_id: Optional[str] = None, parent_transaction_id: Optional[str] = None) -> LogPipeline:
        pipeline = LogPipeline(
            settings_provider=self.settings_provider,
            builder=self._builder,
            publisher=self._publisher,
            buffer=TransactionBuffer(transaction_id),
        )
        if parent_transaction_id:
            pipeline.set_parent_correlation(parent_transaction_id)
        return pipeline

    @asynccontextmanager
    async def transaction(
        self,
        *,
        parent_transaction_id: Optional[str] = None,
        flush_on_exit: bool = True,
        via: FlushChannel = FlushChannel.ASYNC_CHANNEL,
    ) -> AsyncIterator[LogPipeline]:
        """
        Scope a pipeline to a block and bind it to the current context.

        Pending entries are flushed on exit, also when the block raises.
        """
        pipeline = self.create(parent_transaction_id=parent_transaction_id)
        token = bind_pipeline(pipeline)
        try:
            with LogContext(
                transaction_id=pipeline.get_transaction_id(),
                correlation_id=pipeline.correlation_id,
                component="pipeline",
            ):
                try:
                    yield pipeline
                except BaseException:
                    if flush_on_exit:
                        await _flush_after_failure(pipeline, via)
                    raise
                if flush_on_exit:
                    await pipeline.flush(via)
        finally:
            unbind_pipeline(token)


async def _flush_after_failure(pipeline: LogPipeline, via: FlushChannel) -> None:
    try:
        await pipeline.flush(via)
    except Exception as exc:
        logger.error(
            "Flush on scope exit failed",
            extra={
                "transaction_id": pipeline.get_transaction_id(),
                "buffered": pipeline.buffer_size,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
            exc_info=True,
        )
