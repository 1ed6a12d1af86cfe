"""Builds `LogEntry` values from requests: truncation, tags, context and ids."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from txlogger.modules.pipeline.context import ContextProvider
from txlogger.modules.pipeline.entry import (
    EntryRequest,
    ExceptionEntryRequest,
    FieldLimits,
    LogEntry,
    normalize_tags,
    truncate,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntryBuilder:
    def __init__(
        self,
        context_provider: ContextProvider,
        *,
        limits: Optional[FieldLimits] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._context_provider = context_provider
        self.limits = limits or FieldLimits()
        self._clock = clock
        self._id_factory = id_factory

    def build(self, request: EntryRequest, transaction_id: str) -> LogEntry:
        """
        Populate a full entry.

        Each capped field is truncated independently and flags its own
        truncation. The context snapshot is captured here, after policy
        checks have passed.
        """
        message, message_truncated = truncate(request.message, self.limits.message)
        origin_location, origin_truncated = truncate(request.origin_location, self.limits.origin_location)

        exception_type = exception_message = stack_trace = None
        type_truncated = stack_truncated = False
        if isinstance(request, ExceptionEntryRequest):
            exception_type, type_truncated = truncate(request.error.type_name, self.limits.exception_type)
            exception_message, _ = truncate(request.error.message, self.limits.message)
            stack_trace, stack_truncated = truncate(request.error.stack_trace, self.limits.stack_trace)

        return LogEntry(
            entry_id=self._id_factory(),
            transaction_id=transaction_id,
            severity=request.effective_severity,
            kind=request.kind,
            message=message or "",
            message_truncated=message_truncated,
            origin_type=request.origin_type,
            origin_location=origin_location,
            origin_location_truncated=origin_truncated,
            timestamp=self._clock(),
            context=self._context_provider.capture(),
            linked_record_id=request.linked_record_id,
            tags=normalize_tags(request.tags),
            exception_type=exception_type,
            exception_type_truncated=type_truncated,
            exception_message=exception_message,
            stack_trace=stack_trace,
            stack_trace_truncated=stack_truncated,
        )
