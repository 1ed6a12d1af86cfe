"""
Log storage repository.

Pure data access over `LogRecord` / `LogEntryRecord`:

- writes: `save_entries` (one parent per transaction id, children appended)
- retention: `iter_expired_ids`, `load_with_children`, `soft_delete`, `purge`
- lookups used by hosts and tests

Every write runs inside `DatabaseService.get_transaction()`; failures are
logged with context and re-raised for the caller (consumer retry loop,
direct-write flush, or purge chunk) to handle.
"""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import selectinload

from txlogger.core.logging.logger import get_logger
from txlogger.modules.pipeline.entry import LogEntry
from txlogger.modules.storage.models import LogEntryRecord, LogRecord, compute_retention_date

if TYPE_CHECKING:
    from txlogger.core.database.service import DatabaseService

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogRepository:
    def __init__(self, database_service: type[DatabaseService]) -> None:
        self._db_service = database_service

    # ═══════════════════════════════════════════════════════════════════════
    # WRITE OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    async def save_entries(
        self,
        transaction_id: str,
        entries: Sequence[LogEntry],
        retention_days: int,
        *,
        parent_transaction_id: Optional[str] = None,
    ) -> int:
        """
        Persist a flushed batch under its transaction's parent record.

        The parent row is created on the first flush of a transaction and
        reused by later flushes; its retention date is fixed at creation.

        Returns
        -------
        int
            Number of entry rows written.
        """
        if not entries:
            return 0

        start_time = time.monotonic()
        try:
            async with self._db_service.get_transaction() as session:
                result = await session.execute(
                    select(LogRecord).where(LogRecord.transaction_id == transaction_id)
                )
                record = result.scalar_one_or_none()

                if record is None:
                    created_at = _utcnow()
                    record = LogRecord(
                        transaction_id=transaction_id,
                        parent_transaction_id=parent_transaction_id,
                        created_at=created_at,
                        retention_date=compute_retention_date(created_at, retention_days),
                        entry_count=0,
                    )
                    session.add(record)
                    await session.flush()

                for entry in entries:
                    child = LogEntryRecord.from_entry(entry)
                    child.log_id = record.id
                    session.add(child)
                record.entry_count = (record.entry_count or 0) + len(entries)

            logger.debug(
                "Log entries persisted",
                extra={
                    "transaction_id": transaction_id,
                    "log_id": record.id,
                    "count": len(entries),
                    "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
                },
            )
            return len(entries)

        except Exception as exc:
            logger.error(
                "Failed to persist log entries",
                extra={
                    "transaction_id": transaction_id,
                    "count": len(entries),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise

    # ═══════════════════════════════════════════════════════════════════════
    # RETENTION
    # ═══════════════════════════════════════════════════════════════════════

    async def iter_expired_ids(
        self,
        *,
        today: Optional[date] = None,
        after_id: Optional[int] = None,
        limit: int = 200,
    ) -> List[int]:
        """
        One keyset page of expired record ids still in storage, ascending.

        Expired means `retention_date` is set and on or before `today`.
        Soft-deleted rows are included so a run can finish what an earlier
        run left behind after a failed purge.
        Paging by `id > after_id` stays correct while earlier pages are
        being deleted.
        """
        today = today or _utcnow().date()
        stmt = (
            select(LogRecord.id)
            .where(
                LogRecord.retention_date.is_not(None),
                LogRecord.retention_date <= today,
            )
            .order_by(LogRecord.id)
            .limit(limit)
        )
        if after_id is not None:
            stmt = stmt.where(LogRecord.id > after_id)

        async with self._db_service.get_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def load_with_children(self, ids: Sequence[int]) -> List[LogRecord]:
        if not ids:
            return []
        async with self._db_service.get_session() as session:
            result = await session.execute(
                select(LogRecord)
                .where(LogRecord.id.in_(ids))
                .options(selectinload(LogRecord.entries))
                .order_by(LogRecord.id)
            )
            return list(result.scalars().all())

    async def soft_delete(self, ids: Sequence[int]) -> int:
        """
        Mark records and their entries deleted (the recycle bin).

        Returns the number of rows marked, parents plus children.
        """
        if not ids:
            return 0
        now = _utcnow()
        async with self._db_service.get_transaction() as session:
            parents = await session.execute(
                update(LogRecord)
                .where(LogRecord.id.in_(ids), LogRecord.deleted_at.is_(None))
                .values(deleted_at=now)
            )
            children = await session.execute(
                update(LogEntryRecord)
                .where(LogEntryRecord.log_id.in_(ids), LogEntryRecord.deleted_at.is_(None))
                .values(deleted_at=now)
            )
        return (parents.rowcount or 0) + (children.rowcount or 0)

    async def purge(self, ids: Sequence[int]) -> int:
        """
        Permanently remove soft-deleted records and their entries.

        Rows not yet soft-deleted are left alone. Returns the number of rows
        removed, parents plus children.
        """
        if not ids:
            return 0
        async with self._db_service.get_transaction() as session:
            purgeable = select(LogRecord.id).where(LogRecord.id.in_(ids), LogRecord.deleted_at.is_not(None))
            children = await session.execute(
                delete(LogEntryRecord).where(LogEntryRecord.log_id.in_(purgeable))
            )
            parents = await session.execute(
                delete(LogRecord).where(LogRecord.id.in_(ids), LogRecord.deleted_at.is_not(None))
            )
        removed = (parents.rowcount or 0) + (children.rowcount or 0)
        logger.debug("Log records purged", extra={"requested": len(ids), "rows_removed": removed})
        return removed

    # ═══════════════════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════════════════

    async def get_by_transaction_id(self, transaction_id: str) -> Optional[LogRecord]:
        async with self._db_service.get_session() as session:
            result = await session.execute(
                select(LogRecord)
                .where(LogRecord.transaction_id == transaction_id)
                .options(selectinload(LogRecord.entries))
            )
            return result.scalar_one_or_none()

    async def get_entries_for_correlation(self, correlation_id: str) -> List[LogEntryRecord]:
        """Entries stamped with `correlation_id`, across every parent record."""
        async with self._db_service.get_session() as session:
            result = await session.execute(
                select(LogEntryRecord)
                .where(LogEntryRecord.transaction_id == correlation_id)
                .order_by(LogEntryRecord.id)
            )
            return list(result.scalars().all())

    async def count_records(self) -> int:
        async with self._db_service.get_session() as session:
            return int((await session.execute(select(func.count(LogRecord.id)))).scalar_one())

    async def count_entries(self) -> int:
        async with self._db_service.get_session() as session:
            return int((await session.execute(select(func.count(LogEntryRecord.id)))).scalar_one())
