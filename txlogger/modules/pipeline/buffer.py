"""Per-transaction entry buffer."""

from __future__ import annotations

import uuid
from typing import Optional

from txlogger.modules.pipeline.entry import LogEntry


class TransactionBuffer:
    """
    Ordered pending entries for one logical transaction.

    Insertion order is flush order. Not safe for concurrent mutation; a
    buffer belongs to exactly one pipeline, which belongs to one task.
    """

    def __init__(self, transaction_id: Optional[str] = None) -> None:
        self.transaction_id: str = transaction_id or str(uuid.uuid4())
        self.parent_transaction_id: Optional[str] = None
        self.suspended: bool = False
        self._entries: list[LogEntry] = []

    @property
    def effective_transaction_id(self) -> str:
        return self.parent_transaction_id or self.transaction_id

    def append(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    def drain(self) -> list[LogEntry]:
        entries, self._entries = self._entries, []
        return entries

    def peek(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
