"""Adapter for declarative workflow log actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from txlogger.core.logging.logger import get_logger
from txlogger.modules.pipeline.entry import DebugEntryRequest
from txlogger.modules.pipeline.pipeline import LogPipeline
from txlogger.modules.pipeline.publisher import FlushChannel
from txlogger.modules.pipeline.severity import OriginType, Severity

logger = get_logger(__name__)


@dataclass(frozen=True)
class FlowLogEntry:
    """One log action emitted by a workflow step."""

    message: str
    origin_name: str
    severity_name: Optional[str] = None
    linked_record_id: Optional[str] = None
    tags: Sequence[str] = field(default_factory=tuple)
    trigger_flush: bool = False


class WorkflowLogAdapter:
    def __init__(self, pipeline: LogPipeline) -> None:
        self._pipeline = pipeline

    async def log_entries(self, entries: Sequence[FlowLogEntry]) -> List[Optional[str]]:
        """
        Record every entry in order; returns the entry id (or None) for each.

        Flushes at most once, after the whole list, when any entry asked for it.
        """
        results: List[Optional[str]] = []
        flush_requested = False

        for item in entries:
            request = DebugEntryRequest(
                message=item.message,
                origin_type=OriginType.WORKFLOW,
                origin_location=item.origin_name,
                severity=Severity.parse(item.severity_name),
                linked_record_id=item.linked_record_id,
                tags=tuple(item.tags or ()),
            )
            results.append(await self._pipeline.record(request))
            flush_requested = flush_requested or item.trigger_flush

        if flush_requested:
            await self._pipeline.flush(FlushChannel.ASYNC_CHANNEL)

        logger.debug(
            "Workflow log entries processed",
            extra={
                "received": len(entries),
                "recorded": sum(1 for r in results if r is not None),
                "flushed": flush_requested,
            },
        )
        return results
