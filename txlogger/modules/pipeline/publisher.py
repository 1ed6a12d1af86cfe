"""
Hands drained entries to a channel.

ASYNC_CHANNEL publishes one LOG_ENTRIES_PUBLISHED event on the EventBus.
Storage happens in a LOW-priority listener, so the publish returns before
anything is written and a storage failure never reaches the pipeline.
Delivery is at-most-once: once the buffer is drained the entries are gone
from the pipeline whether or not they reach storage.

DIRECT_WRITE awaits the repository and lets its errors propagate.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence

from txlogger.core.event import EventBus
from txlogger.core.exceptions import TxLoggerError
from txlogger.core.logging.logger import get_logger
from txlogger.modules.pipeline.entry import LogEntry

if TYPE_CHECKING:
    from txlogger.modules.storage.repository import LogRepository

logger = get_logger(__name__)

LOG_ENTRIES_PUBLISHED = "log.entries.published"


class FlushChannel(str, Enum):
    ASYNC_CHANNEL = "async_channel"
    DIRECT_WRITE = "direct_write"


class Publisher:
    def __init__(self, event_bus: Optional[EventBus] = None, repository: Optional[LogRepository] = None) -> None:
        self._event_bus = event_bus
        self._repository = repository

    def supports(self, via: FlushChannel) -> bool:
        if via is FlushChannel.DIRECT_WRITE:
            return self._repository is not None
        return self._event_bus is not None

    def ensure_supported(self, via: FlushChannel) -> None:
        if not self.supports(via):
            raise TxLoggerError(
                f"Flush channel '{via.value}' is not configured",
                details={"channel": via.value},
                error_code="CHANNEL_UNAVAILABLE",
            )

    async def publish(
        self,
        entries: Sequence[LogEntry],
        *,
        transaction_id: str,
        parent_transaction_id: Optional[str],
        retention_days: int,
        via: FlushChannel,
    ) -> None:
        if via is FlushChannel.DIRECT_WRITE:
            assert self._repository is not None
            await self._repository.save_entries(
                transaction_id,
                entries,
                retention_days,
                parent_transaction_id=parent_transaction_id,
            )
            return

        assert self._event_bus is not None
        payload: dict[str, Any] = {
            "transaction_id": transaction_id,
            "parent_transaction_id": parent_transaction_id,
            "retention_days": retention_days,
            "published_at": datetime.now(timezone.utc).isoformat(),
            "entries": [entry.to_payload() for entry in entries],
        }
        try:
            await self._event_bus.publish(LOG_ENTRIES_PUBLISHED, payload)
        except Exception as exc:
            # at-most-once: entries are already drained and are lost here
            logger.error(
                "Failed to hand log entries to the async channel",
                extra={
                    "transaction_id": transaction_id,
                    "entries_lost": len(entries),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
