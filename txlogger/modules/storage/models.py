"""
Persistent log schema.

- `LogRecord`: one row per flushed transaction id (parent). Carries the
  retention date the purge job selects on and the soft-delete marker.
- `LogEntryRecord`: one row per entry (child), removed with its parent via
  ON DELETE CASCADE.

Context snapshots are stored as JSON (JSONB on PostgreSQL).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

from txlogger.modules.pipeline.entry import LogEntry, join_tags

Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY
_PK = BigInteger().with_variant(Integer, "sqlite")
_JSON = JSON().with_variant(JSONB, "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_retention_date(created_at: datetime, retention_days: int) -> Optional[date]:
    """Date after which a record may be purged; None keeps it forever."""
    if retention_days <= 0:
        return None
    return created_at.date() + timedelta(days=retention_days)


class LogRecord(Base):
    __tablename__ = "log_records"

    id = Column(_PK, primary_key=True, autoincrement=True)
    transaction_id = Column(String(64), nullable=False, unique=True, index=True)
    parent_transaction_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    retention_date = Column(Date, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    entry_count = Column(Integer, nullable=False, default=0)

    entries = relationship(
        "LogEntryRecord",
        back_populates="log",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LogEntryRecord.id",
    )

    __table_args__ = (
        Index("ix_log_records_retention", "retention_date", "deleted_at", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<LogRecord(id={self.id}, transaction_id={self.transaction_id!r}, "
            f"entries={self.entry_count}, retention_date={self.retention_date})>"
        )


class LogEntryRecord(Base):
    __tablename__ = "log_entries"

    id = Column(_PK, primary_key=True, autoincrement=True)
    log_id = Column(_PK, ForeignKey("log_records.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_id = Column(String(64), nullable=False, unique=True)
    transaction_id = Column(String(64), nullable=False, index=True)

    severity = Column(String(16), nullable=False)
    severity_ordinal = Column(Integer, nullable=False)
    kind = Column(String(16), nullable=False)
    message = Column(Text, nullable=False, default="")
    message_truncated = Column(Boolean, nullable=False, default=False)

    origin_type = Column(String(32), nullable=False)
    origin_location = Column(String(255), nullable=True)
    origin_location_truncated = Column(Boolean, nullable=False, default=False)

    linked_record_id = Column(String(255), nullable=True, index=True)
    tags = Column(Text, nullable=True)

    exception_type = Column(String(255), nullable=True)
    exception_type_truncated = Column(Boolean, nullable=False, default=False)
    exception_message = Column(Text, nullable=True)
    stack_trace = Column(Text, nullable=True)
    stack_trace_truncated = Column(Boolean, nullable=False, default=False)

    timestamp = Column(DateTime(timezone=True), nullable=False)
    context = Column(_JSON, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    log = relationship("LogRecord", back_populates="entries")

    @classmethod
    def from_entry(cls, entry: LogEntry) -> LogEntryRecord:
        return cls(
            entry_id=entry.entry_id,
            transaction_id=entry.transaction_id,
            severity=entry.severity.name,
            severity_ordinal=int(entry.severity),
            kind=entry.kind.value,
            message=entry.message,
            message_truncated=entry.message_truncated,
            origin_type=entry.origin_type.value,
            origin_location=entry.origin_location,
            origin_location_truncated=entry.origin_location_truncated,
            linked_record_id=entry.linked_record_id,
            tags=join_tags(entry.tags),
            exception_type=entry.exception_type,
            exception_type_truncated=entry.exception_type_truncated,
            exception_message=entry.exception_message,
            stack_trace=entry.stack_trace,
            stack_trace_truncated=entry.stack_trace_truncated,
            timestamp=entry.timestamp,
            context=entry.context.to_dict(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "log_id": self.log_id,
            "entry_id": self.entry_id,
            "transaction_id": self.transaction_id,
            "severity": self.severity,
            "kind": self.kind,
            "message": self.message,
            "message_truncated": self.message_truncated,
            "origin_type": self.origin_type,
            "origin_location": self.origin_location,
            "linked_record_id": self.linked_record_id,
            "tags": self.tags,
            "exception_type": self.exception_type,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
