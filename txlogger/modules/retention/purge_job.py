"""
Retention Purge Job

Purpose
-------
Deletes log records whose retention date has passed, in bounded chunks,
reporting its own progress through the log pipeline.

State machine
-------------
Started → Executing (once per chunk) → Finished

The host drives the phases. Each phase runs in its own host transaction and
therefore with its own, freshly empty pipeline. The job ties all of them
together by stamping every entry with the transaction id captured at
`start()` (the anchor).

Failure handling
----------------
A chunk that fails to delete produces an ERROR entry and a failed
`ChunkResult`; the job carries on with the next chunk and never retries the
failed one. The chunk's pipeline is flushed whether the chunk succeeded or
not.

Example Usage
-------------
>>> runner = PurgeJobRunner(LogPurgeJob(repository, factory, settings), factory)
>>> state = await runner.run(chunk_size=200)
>>> state.total_processed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, AsyncIterator, List, Optional, Sequence

from txlogger.core.logging.logger import LogContext, get_logger
from txlogger.modules.pipeline.entry import DebugEntryRequest
from txlogger.modules.pipeline.pipeline import LogPipeline, PipelineFactory
from txlogger.modules.pipeline.settings import SettingsProvider
from txlogger.modules.pipeline.severity import OriginType, Severity

if TYPE_CHECKING:
    from txlogger.modules.storage.repository import LogRepository

logger = get_logger(__name__)

ORIGIN = "LogPurgeJob"


@dataclass(frozen=True)
class ChunkResult:
    log_ids: tuple[int, ...]
    success: bool
    records_processed: int = 0
    rows_removed: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class PurgeJobState:
    anchor_transaction_id: Optional[str] = None
    total_processed: int = 0
    chunks_succeeded: int = 0
    chunks_failed: int = 0
    rows_removed: int = 0
    failures: List[ChunkResult] = field(default_factory=list)

    def apply(self, result: ChunkResult) -> None:
        if result.success:
            self.chunks_succeeded += 1
            self.total_processed += result.records_processed
            self.rows_removed += result.rows_removed
        else:
            self.chunks_failed += 1
            self.failures.append(result)


class ExpiredLogCursor:
    """
    Lazy, restartable cursor over expired record ids.

    Pages by id (keyset), so deleting earlier chunks never shifts later
    ones. A host that stops part-way can call `resume_after(last_id)`.
    """

    def __init__(self, repository: LogRepository, *, today: Optional[date] = None,
                 after_id: Optional[int] = None) -> None:
        self._repository = repository
        self.today = today or datetime.now(timezone.utc).date()
        self.last_id: Optional[int] = after_id

    def resume_after(self, last_id: Optional[int]) -> ExpiredLogCursor:
        return ExpiredLogCursor(self._repository, today=self.today, after_id=last_id)

    async def chunks(self, size: int) -> AsyncIterator[List[int]]:
        if size <= 0:
            raise ValueError("chunk size must be positive")
        while True:
            ids = await self._repository.iter_expired_ids(today=self.today, after_id=self.last_id, limit=size)
            if not ids:
                return
            self.last_id = ids[-1]
            yield ids


class LogPurgeJob:
    def __init__(
        self,
        repository: LogRepository,
        pipeline_factory: PipelineFactory,
        settings_provider: SettingsProvider,
    ) -> None:
        self._repository = repository
        self._pipeline_factory = pipeline_factory
        self._settings_provider = settings_provider
        self.state = PurgeJobState()

    async def _info(self, pipeline: LogPipeline, message: str) -> Optional[str]:
        return await pipeline.record(
            DebugEntryRequest(
                message=message,
                origin_type=OriginType.APEX,
                origin_location=ORIGIN,
                severity=Severity.INFO,
            )
        )

    # ------------------------------------------------------------------ #
    # Phases
    # ------------------------------------------------------------------ #

    async def start(self, pipeline: LogPipeline, *, today: Optional[date] = None) -> ExpiredLogCursor:
        self.state = PurgeJobState(anchor_transaction_id=pipeline.get_transaction_id())

        if self._settings_provider.get_settings().system_messages_enabled:
            await self._info(pipeline, "Log purge job starting")
            await pipeline.flush()

        logger.info("Log purge job started", extra={"anchor_transaction_id": self.state.anchor_transaction_id})
        return ExpiredLogCursor(self._repository, today=today)

    async def execute(self, pipeline: LogPipeline, log_ids: Sequence[int]) -> ChunkResult:
        ids = tuple(log_ids)
        pipeline.set_parent_correlation(self.state.anchor_transaction_id)

        try:
            await self._info(pipeline, f"Deleting {len(ids)} records")

            records = await self._repository.load_with_children(ids)
            deletion_set = [record.id for record in records]
            child_count = sum(len(record.entries) for record in records)

            await self._repository.soft_delete(deletion_set)
            removed = await self._repository.purge(deletion_set)

            result = ChunkResult(
                log_ids=ids,
                success=True,
                records_processed=len(records),
                rows_removed=removed,
            )
            logger.debug(
                "Purge chunk deleted",
                extra={
                    "anchor_transaction_id": self.state.anchor_transaction_id,
                    "records": len(records),
                    "children": child_count,
                    "rows_removed": removed,
                },
            )

        except Exception as exc:
            result = ChunkResult(
                log_ids=ids,
                success=False,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            logger.error(
                "Purge chunk failed",
                extra={
                    "anchor_transaction_id": self.state.anchor_transaction_id,
                    "log_ids": list(ids),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            await pipeline.record(
                DebugEntryRequest(
                    message=f"Failed to delete {len(ids)} records ({type(exc).__name__}: {exc}); ids={list(ids)}",
                    origin_type=OriginType.APEX,
                    origin_location=ORIGIN,
                    severity=Severity.ERROR,
                )
            )

        finally:
            await pipeline.flush()

        self.state.apply(result)
        return result

    async def finish(self, pipeline: LogPipeline) -> PurgeJobState:
        pipeline.set_parent_correlation(self.state.anchor_transaction_id)
        await self._info(pipeline, f"Log purge job finished, total {self.state.total_processed} records processed")
        await pipeline.flush()

        logger.info(
            "Log purge job finished",
            extra={
                "anchor_transaction_id": self.state.anchor_transaction_id,
                "total_processed": self.state.total_processed,
                "chunks_succeeded": self.state.chunks_succeeded,
                "chunks_failed": self.state.chunks_failed,
            },
        )
        return self.state


class PurgeJobRunner:
    """Host driver: start, one execute per chunk, finish; a fresh pipeline for each."""

    def __init__(self, job: LogPurgeJob, pipeline_factory: PipelineFactory) -> None:
        self._job = job
        self._pipeline_factory = pipeline_factory

    async def run(self, chunk_size: int, *, today: Optional[date] = None) -> PurgeJobState:
        start_pipeline = self._pipeline_factory.create()
        cursor = await self._job.start(start_pipeline, today=today)
        anchor = self._job.state.anchor_transaction_id

        with LogContext(transaction_id=anchor, component="retention", operation="purge"):
            async for ids in cursor.chunks(chunk_size):
                await self._job.execute(self._pipeline_factory.create(), ids)

            return await self._job.finish(self._pipeline_factory.create())
