"""
Log entry model and the request variants that produce it.

Callers never build a `LogEntry` directly. They hand the pipeline one of:

- `DebugEntryRequest`: a message at a caller-chosen severity
- `ExceptionEntryRequest`: an error; always kind EXCEPTION at ERROR
  severity, and the message comes from the error

`ErrorPayload` is the language-neutral shape of an error, so adapters that
receive errors as data (UI components) and in-process callers holding a live
exception feed the same variant.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from txlogger.modules.pipeline.context import ContextSnapshot
from txlogger.modules.pipeline.severity import EntryKind, OriginType, Severity

MAX_MESSAGE_LENGTH = 131_072
MAX_EXCEPTION_TYPE_LENGTH = 255
MAX_STACK_TRACE_LENGTH = 131_072
MAX_ORIGIN_LOCATION_LENGTH = 255

TAG_SEPARATOR = "\n"


@dataclass(frozen=True)
class FieldLimits:
    """Declared maximum lengths of the stored text fields."""

    message: int = MAX_MESSAGE_LENGTH
    exception_type: int = MAX_EXCEPTION_TYPE_LENGTH
    stack_trace: int = MAX_STACK_TRACE_LENGTH
    origin_location: int = MAX_ORIGIN_LOCATION_LENGTH


def truncate(value: Optional[str], max_length: int) -> tuple[Optional[str], bool]:
    """
    Cut `value` to `max_length` characters.

    >>> truncate("0123456789ABC", 10)
    ('0123456789', True)
    >>> truncate("short", 10)
    ('short', False)
    """
    if value is None or len(value) <= max_length:
        return value, False
    return value[:max_length], True


def normalize_tags(tags: Optional[Iterable[str]]) -> tuple[str, ...]:
    """Strip, drop empties, escape embedded newlines, de-duplicate in order."""
    if not tags:
        return ()
    if isinstance(tags, str):
        tags = [tags]

    seen: dict[str, None] = {}
    for tag in tags:
        if tag is None:
            continue
        cleaned = str(tag).strip().replace("\r\n", "\n").replace("\n", "\\n")
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


def join_tags(tags: Iterable[str]) -> Optional[str]:
    joined = TAG_SEPARATOR.join(tags)
    return joined or None


def split_tags(joined: Optional[str]) -> tuple[str, ...]:
    if not joined:
        return ()
    return tuple(joined.split(TAG_SEPARATOR))


@dataclass(frozen=True)
class ErrorPayload:
    type_name: str
    message: str
    stack_trace: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorPayload:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(
            type_name=f"{type(exc).__module__}.{type(exc).__qualname__}".removeprefix("builtins."),
            message=str(exc),
            stack_trace=stack,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ErrorPayload:
        """Build from a `{type, message, stack}` object as sent by UI components."""
        return cls(
            type_name=str(data.get("type") or "Error"),
            message=str(data.get("message") or ""),
            stack_trace=data.get("stack") or None,
        )


ErrorLike = Union[BaseException, ErrorPayload]


@dataclass(frozen=True)
class DebugEntryRequest:
    message: str
    origin_type: OriginType
    origin_location: Optional[str] = None
    severity: Optional[Severity] = None
    linked_record_id: Optional[str] = None
    tags: tuple[str, ...] = ()

    kind = EntryKind.DEBUG

    @property
    def effective_severity(self) -> Severity:
        return self.severity if self.severity is not None else Severity.DEBUG

    @property
    def error(self) -> None:
        return None


@dataclass(frozen=True)
class ExceptionEntryRequest:
    """An error entry. Severity is always ERROR; any requested severity is ignored."""

    error: ErrorPayload
    origin_type: OriginType
    origin_location: Optional[str] = None
    linked_record_id: Optional[str] = None
    tags: tuple[str, ...] = ()
    requested_severity: Optional[Severity] = None

    kind = EntryKind.EXCEPTION

    @classmethod
    def of(cls, error: ErrorLike, origin_type: OriginType, **kwargs: Any) -> ExceptionEntryRequest:
        payload = error if isinstance(error, ErrorPayload) else ErrorPayload.from_exception(error)
        return cls(error=payload, origin_type=origin_type, **kwargs)

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def effective_severity(self) -> Severity:
        return Severity.ERROR


EntryRequest = Union[DebugEntryRequest, ExceptionEntryRequest]


@dataclass(frozen=True)
class LogEntry:
    """One built, immutable log entry."""

    entry_id: str
    transaction_id: str
    severity: Severity
    kind: EntryKind
    message: str
    message_truncated: bool
    origin_type: OriginType
    origin_location: Optional[str]
    origin_location_truncated: bool
    timestamp: datetime
    context: ContextSnapshot = field(default_factory=ContextSnapshot)
    linked_record_id: Optional[str] = None
    tags: tuple[str, ...] = ()
    exception_type: Optional[str] = None
    exception_type_truncated: bool = False
    exception_message: Optional[str] = None
    stack_trace: Optional[str] = None
    stack_trace_truncated: bool = False

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation published on the channel."""
        return {
            "entry_id": self.entry_id,
            "transaction_id": self.transaction_id,
            "severity": self.severity.name,
            "kind": self.kind.value,
            "message": self.message,
            "message_truncated": self.message_truncated,
            "origin_type": self.origin_type.value,
            "origin_location": self.origin_location,
            "origin_location_truncated": self.origin_location_truncated,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict(),
            "linked_record_id": self.linked_record_id,
            "tags": join_tags(self.tags),
            "exception_type": self.exception_type,
            "exception_type_truncated": self.exception_type_truncated,
            "exception_message": self.exception_message,
            "stack_trace": self.stack_trace,
            "stack_trace_truncated": self.stack_trace_truncated,
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> LogEntry:
        return cls(
            entry_id=data["entry_id"],
            transaction_id=data["transaction_id"],
            severity=Severity[data["severity"]],
            kind=EntryKind(data["kind"]),
            message=data["message"],
            message_truncated=bool(data.get("message_truncated", False)),
            origin_type=OriginType(data["origin_type"]),
            origin_location=data.get("origin_location"),
            origin_location_truncated=bool(data.get("origin_location_truncated", False)),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            context=ContextSnapshot.from_dict(data.get("context")),
            linked_record_id=data.get("linked_record_id"),
            tags=split_tags(data.get("tags")),
            exception_type=data.get("exception_type"),
            exception_type_truncated=bool(data.get("exception_type_truncated", False)),
            exception_message=data.get("exception_message"),
            stack_trace=data.get("stack_trace"),
            stack_trace_truncated=bool(data.get("stack_trace_truncated", False)),
        )
