"""
Log Entry Consumer

Purpose
-------
Bridge between the asynchronous channel and storage. Subscribes to the
pipeline's "log.entries.published" event at LOW priority (so the EventBus
runs it as a background task and `flush()` never waits on it) and writes
each published batch through `LogRepository.save_entries`.

Responsibilities
----------------
- Rebuild `LogEntry` values from the event payload
- Persist them with retry and exponential backoff
- Track metrics (events received, entries persisted, entries dropped)

Non-Responsibilities
--------------------
- No acknowledgment back to the pipeline: a batch that still fails after
  the last retry is dropped and logged. This is the known gap of the
  fire-and-forget channel.

Configuration Keys
------------------
- consumer.retry_attempts       : int   (default 3)
- consumer.backoff_base_seconds : float (default 0.5)

Example Usage
-------------
>>> consumer = LogEntryConsumer(event_bus, repository)
>>> consumer.start()
>>> status = consumer.get_status()
>>> consumer.stop()
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from txlogger.core.config.config_manager import ConfigManager
from txlogger.core.event import ListenerPriority
from txlogger.core.logging.logger import get_logger
from txlogger.modules.pipeline.entry import LogEntry
from txlogger.modules.pipeline.publisher import LOG_ENTRIES_PUBLISHED

if TYPE_CHECKING:
    from txlogger.core.event import EventBus
    from txlogger.modules.storage.repository import LogRepository

logger = get_logger(__name__)


class LogEntryConsumer:
    LISTENER_ID = "txlogger.storage.LogEntryConsumer"

    def __init__(
        self,
        event_bus: EventBus,
        repository: LogRepository,
        *,
        retry_attempts: Optional[int] = None,
        backoff_base_seconds: Optional[float] = None,
    ) -> None:
        self._event_bus = event_bus
        self._repository = repository

        self._retry_attempts = max(1, int(
            retry_attempts if retry_attempts is not None
            else ConfigManager.get("consumer.retry_attempts", 3)
        ))
        self._backoff_base = float(
            backoff_base_seconds if backoff_base_seconds is not None
            else ConfigManager.get("consumer.backoff_base_seconds", 0.5)
        )

        self._is_running: bool = False

        # Metrics
        self._events_received: int = 0
        self._entries_persisted: int = 0
        self._entries_dropped: int = 0
        self._failures: int = 0
        self._last_persist_time: Optional[float] = None

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════════

    def start(self) -> None:
        if self._is_running:
            logger.warning("LogEntryConsumer already running")
            return

        self._event_bus.subscribe(
            LOG_ENTRIES_PUBLISHED,
            self.handle_published,
            priority=ListenerPriority.LOW,
            identifier=self.LISTENER_ID,
        )
        self._is_running = True
        logger.info(
            "LogEntryConsumer started",
            extra={
                "event_name": LOG_ENTRIES_PUBLISHED,
                "retry_attempts": self._retry_attempts,
                "backoff_base_seconds": self._backoff_base,
            },
        )

    def stop(self) -> None:
        if not self._is_running:
            return
        self._event_bus.unsubscribe(LOG_ENTRIES_PUBLISHED, self.LISTENER_ID)
        self._is_running = False
        logger.info("LogEntryConsumer stopped", extra=self.get_status())

    # ═══════════════════════════════════════════════════════════════════════
    # EVENT HANDLING
    # ═══════════════════════════════════════════════════════════════════════

    async def handle_published(self, payload: Dict[str, Any]) -> int:
        """
        Persist one published batch. Returns the number of entries written.

        Never raises: failures end up in the logs and the dropped counter.
        """
        self._events_received += 1
        transaction_id = payload.get("transaction_id")

        try:
            entries: List[LogEntry] = [LogEntry.from_payload(item) for item in payload.get("entries") or []]
        except (KeyError, ValueError, TypeError) as exc:
            dropped = len(payload.get("entries") or [])
            self._entries_dropped += dropped
            self._failures += 1
            logger.error(
                "Malformed log entries event, dropping batch",
                extra={
                    "transaction_id": transaction_id,
                    "count": dropped,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return 0

        if not entries or not transaction_id:
            return 0

        retention_days = int(payload.get("retention_days", 0))
        parent_transaction_id = payload.get("parent_transaction_id")

        for attempt in range(1, self._retry_attempts + 1):
            try:
                start_time = time.monotonic()
                count = await self._repository.save_entries(
                    transaction_id,
                    entries,
                    retention_days,
                    parent_transaction_id=parent_transaction_id,
                )
                self._entries_persisted += count
                self._last_persist_time = time.time()
                logger.debug(
                    "Published log entries persisted",
                    extra={
                        "transaction_id": transaction_id,
                        "count": count,
                        "attempt": attempt,
                        "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
                    },
                )
                return count

            except Exception as exc:
                self._failures += 1
                logger.error(
                    "Failed to persist published log entries",
                    extra={
                        "transaction_id": transaction_id,
                        "count": len(entries),
                        "attempt": attempt,
                        "max_attempts": self._retry_attempts,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                if attempt >= self._retry_attempts:
                    self._entries_dropped += len(entries)
                    logger.critical(
                        "Dropped log entries after all retry attempts",
                        extra={
                            "transaction_id": transaction_id,
                            "count": len(entries),
                            "total_dropped": self._entries_dropped,
                        },
                    )
                    return 0

                backoff_seconds = self._backoff_base * (2 ** (attempt - 1))
                logger.info(
                    "Retrying log persistence after backoff",
                    extra={"attempt": attempt, "backoff_seconds": backoff_seconds},
                )
                await asyncio.sleep(backoff_seconds)

        return 0

    # ═══════════════════════════════════════════════════════════════════════
    # STATUS
    # ═══════════════════════════════════════════════════════════════════════

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_running": self._is_running,
            "events_received": self._events_received,
            "entries_persisted": self._entries_persisted,
            "entries_dropped": self._entries_dropped,
            "failures": self._failures,
            "last_persist_time": self._last_persist_time,
            "retry_attempts": self._retry_attempts,
        }
